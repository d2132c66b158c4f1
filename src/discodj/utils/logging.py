"""Console log formatting for the bot process."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any

_ANSI_RESET = "\033[0m"

_LEVEL_ANSI: dict[int, str] = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


def _wants_ansi(stream: IO[Any] | None) -> bool:
    if "NO_COLOR" in os.environ:
        return False
    isatty = getattr(stream if stream is not None else sys.stderr, "isatty", None)
    return bool(isatty and isatty())


class ColoredFormatter(logging.Formatter):
    """Tints the level name per severity when writing to a terminal.

    Honours ``NO_COLOR``. The check runs once, when the formatter is built,
    against ``stream`` (stderr by default, matching ``StreamHandler``).
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        *,
        stream: IO[Any] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)  # type: ignore[arg-type]
        self.colorize = _wants_ansi(stream)

    def format(self, record: logging.LogRecord) -> str:
        tint = _LEVEL_ANSI.get(record.levelno) if self.colorize else None
        if tint is None:
            return super().format(record)
        # Other handlers share the record; format a copy.
        tinted = logging.makeLogRecord(vars(record))
        tinted.levelname = f"{tint}{record.levelname}{_ANSI_RESET}"
        return super().format(tinted)
