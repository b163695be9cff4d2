import io
import os
import stat
import sys
from typing import TextIO

from press.log import get_logger

log = get_logger("console")


def tail_lines(text: str, n: int) -> str:
    lines = text.splitlines()
    return "\n".join(lines[-n:]) if n > 0 else ""


def _has_finite_input(stream: TextIO) -> bool:
    """Only pipes and regular files are read; a terminal or device could block forever."""
    try:
        fd = stream.fileno()
    except (io.UnsupportedOperation, ValueError):
        # in-memory stream
        return True
    mode = os.fstat(fd).st_mode
    return stat.S_ISFIFO(mode) or stat.S_ISREG(mode)


def capture_piped_output(n_lines: int, stream: TextIO | None = None) -> str:
    """
    Return the last ``n_lines`` lines piped into stdin, e.g.
    ``pytest 2>&1 | press --pipe-output ...``. Empty when stdin is a terminal
    or anything else that is not a pipe or a redirected file.
    """
    stream = stream if stream is not None else sys.stdin
    if stream is None or stream.isatty() or not _has_finite_input(stream):
        log.warning("--pipe-output given but nothing is piped into stdin.")
        return ""
    return tail_lines(stream.read(), n_lines)
