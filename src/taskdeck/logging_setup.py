# src/taskdeck/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskdeck.log"
_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Stderr shares the terminal with the REPL, so only app records pass freely.
    Storage backends speak up at WARNING, everything else (including
    captured 'py.warnings') at ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("taskdeck.storage."):
            return record.levelno >= logging.WARNING
        if name.startswith("taskdeck."):
            return True
        return record.levelno >= logging.ERROR


def _handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskdeck",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route all records to <log_dir>/taskdeck.log and a filtered slice to stderr.

    Replaces whatever handlers the root logger already has. Returns the log
    file path so the entry point can mention it.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)
    console = _handler(logging.StreamHandler(sys.stderr), console_level, fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)
    root.addHandler(_handler(logging.FileHandler(str(log_file), encoding="utf-8"), file_level, fmt))

    logging.captureWarnings(True)
    return log_file
