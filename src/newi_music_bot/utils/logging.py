"""Colored logging formatter for console output."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any


class ColoredFormatter(logging.Formatter):
    """Logging formatter that colours the levelname field with ANSI codes.

    Colour is off when ``NO_COLOR`` is set or the target stream is not a TTY.
    ``force_color`` overrides the TTY probe (but never ``NO_COLOR``).
    """

    COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Any = "%",
        *,
        stream: IO[str] | None = None,
        force_color: bool = False,
    ) -> None:
        super().__init__(fmt, datefmt, style)
        self._stream = stream
        self._force_color = force_color

    def _use_color(self) -> bool:
        if os.environ.get("NO_COLOR") is not None:
            return False
        if self._force_color:
            return True
        stream = self._stream or sys.stdout
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if self._use_color():
            color = self.COLORS.get(record.levelno, "")
            # Copy so other handlers still see the plain levelname.
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)
