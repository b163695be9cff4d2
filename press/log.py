"""Logger setup for press.

All modules log through children of the ``press`` logger. The CLI configures
the base logger once with the user's ``--log-level``; library code only calls
``get_logger``.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

HANDLER_NAME = "press"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(name: str) -> int:
    try:
        return LEVELS[name.lower().strip()]
    except KeyError:
        raise ValueError(f"Unknown log level '{name}'. Choose from: {', '.join(LEVELS)}") from None


def setup_base_logger(*, level: int = logging.INFO, stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure the base 'press' logger once and return it.

    Calling it again reuses the same handler, only changing the level and,
    when one is given, the stream.
    """
    base = logging.getLogger("press")
    for existing in base.handlers:
        if existing.get_name() == HANDLER_NAME:
            base.setLevel(level)
            if stream is not None and isinstance(existing, logging.StreamHandler):
                existing.setStream(stream)
            return base

    base.setLevel(level)
    base.propagate = False

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    base.addHandler(handler)
    return base


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a namespaced logger under 'press'."""
    if not name or name == "press":
        return logging.getLogger("press")
    if name.startswith("press."):
        return logging.getLogger(name)
    return logging.getLogger(f"press.{name}")
