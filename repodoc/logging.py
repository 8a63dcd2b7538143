"""Logging utilities for repodoc commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

_LOGGER_NAME = "repodoc"

ProgressSink = Callable[[int, int, str], None]


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repodoc hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the repodoc logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[repodoc] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def logging_progress(logger: logging.Logger | None = None) -> ProgressSink:
    """Return a progress sink that reports item completion through ``logger``."""
    target = logger or get_logger("progress")

    def _report(completed: int, total: int, key: str) -> None:
        target.info("Documented %d/%d: %s", completed, total, key)

    return _report


__all__ = ["ProgressSink", "configure_logging", "get_logger", "logging_progress"]
