"""Logging setup backed by rich."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "griddash"
LOG_LEVEL_ENV = "GRIDDASH_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class FileRichHandler(RichHandler):
    """RichHandler writing to a file it owns and closes."""

    def __init__(self, path: Path) -> None:
        self.stream: TextIO = path.open("a", encoding="utf-8")
        super().__init__(
            console=Console(file=self.stream, width=140, no_color=True, soft_wrap=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )

    def close(self) -> None:
        try:
            if not self.stream.closed:
                self.stream.close()
        finally:
            super().close()


def configure_logging(level: str = "WARNING", log_file: str | None = None) -> logging.Logger:
    """Route ``griddash.*`` loggers through a single RichHandler.

    With ``log_file`` the handler writes to that file so nothing is printed
    over the live screen. Calling this again replaces (and closes) the
    previous handler.
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {level}")

    if log_file:
        handler: RichHandler = FileRichHandler(Path(log_file).expanduser())
    else:
        handler = RichHandler(
            console=Console(stderr=True), show_path=False, markup=False, rich_tracebacks=True
        )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger(LOGGER_NAME)
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return root
