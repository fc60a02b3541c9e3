"""Logging setup for the long-running archive service."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from autobackup.config.models import LoggingSettings

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(settings: LoggingSettings, *, console: Console | None = None) -> logging.Logger:
    """Attach console and optional rotating file handlers to the package logger.

    Handlers installed by a previous call are replaced, so the function is safe
    to call more than once per process.

    Args:
        settings: Logging section of the resolved configuration.
        console: Rich console used for terminal output; stderr when omitted.

    Returns:
        logging.Logger: The configured ``autobackup`` logger.
    """
    logger = logging.getLogger("autobackup")
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format=f"[{DATE_FORMAT}]",
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=max(0, settings.backup_count),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
