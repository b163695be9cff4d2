"""Filename-marker grammar shared by the aggregator and the response parser.

A file block looks like::

    @@@ FILE src/relative/path.py
    ...content...
    @@@ END

Rules:

* The path on the open marker is URL-quoted (``quote(path, safe="/")``) when
  written and unquoted when read, so a path containing ``@@@`` or spaces stays
  on one unambiguous line. Plain paths written by a model unquote to themselves.
* A content line that starts with ``@@@`` or a ``` fence (after any number of
  backslashes) gets one extra leading backslash when written; the reader
  removes it. A bare fence around a whole block therefore never comes from a
  writer, only from a model, and the parser is free to strip it.
* A piece of a file that was split across chunks is returned in a part
  block, ``@@@ PART path i/n`` ... ``@@@ END``, holding only the lines of
  that piece.
* A writer appends one newline to non-empty content before ``@@@ END``;
  the reader drops exactly one trailing line break from the block.
"""

from __future__ import annotations

import re
from urllib.parse import quote, unquote

TOKEN = "@@@"
OPEN_PREFIX = f"{TOKEN} FILE "
PART_PREFIX = f"{TOKEN} PART "
CLOSE_LINE = f"{TOKEN} END"

_OPEN_RE = re.compile(r"^@@@ FILE[ \t]+(?P<path>\S.*?)[ \t]*$")
_CLOSE_RE = re.compile(r"^@@@ END[ \t]*$")
_PART_RE = re.compile(r"^@@@ PART[ \t]+(?P<path>\S.*?)[ \t]+(?P<number>\d+)/(?P<count>\d+)[ \t]*$")
_ESCAPED_RE = re.compile(r"^(\\*)(?:@@@|```)")


def encode_path(path: str) -> str:
    return quote(path, safe="/")


def decode_path(raw: str) -> str:
    return unquote(raw.strip())


def escape_line(line: str) -> str:
    if _ESCAPED_RE.match(line):
        return "\\" + line
    return line


def unescape_line(line: str) -> str:
    m = _ESCAPED_RE.match(line)
    if m and m.group(1):
        return line[1:]
    return line


def escape_content(content: str) -> str:
    return "".join(escape_line(line) for line in content.splitlines(keepends=True))


def unescape_content(content: str) -> str:
    return "".join(unescape_line(line) for line in content.splitlines(keepends=True))


def open_marker(path: str) -> str:
    return f"{OPEN_PREFIX}{encode_path(path)}"


def wrap(path: str, content: str) -> str:
    """Return the full marker block for one file, newline-terminated."""
    body = escape_content(content)
    if body:
        body += "\n"
    return f"{open_marker(path)}\n{body}{CLOSE_LINE}\n"


def match_open(line: str) -> str | None:
    """Return the decoded path if ``line`` is an open marker, else None."""
    m = _OPEN_RE.match(line.rstrip("\r\n"))
    if not m:
        return None
    return decode_path(m.group("path"))


def part_marker(path: str, number: int, count: int) -> str:
    return f"{PART_PREFIX}{encode_path(path)} {number}/{count}"


def match_part(line: str) -> tuple[str, int, int] | None:
    """Return ``(path, number, count)`` if ``line`` opens a part block, else None."""
    m = _PART_RE.match(line.rstrip("\r\n"))
    if not m:
        return None
    return decode_path(m.group("path")), int(m.group("number")), int(m.group("count"))


def is_close(line: str) -> bool:
    return bool(_CLOSE_RE.match(line.rstrip("\r\n")))
