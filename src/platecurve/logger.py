"""Logging setup for applications embedding the calibration core."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "platecurve"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_CONSOLE_HANDLER: logging.Handler | None = None
_FILE_HANDLER: logging.Handler | None = None


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    level_str = str(level).upper()
    if level_str == "ALL":
        level_str = "DEBUG"
    return getattr(logging, level_str, logging.INFO)


def _add_file_handler(logger: logging.Logger, log_dir: Path | str) -> logging.Handler:
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"platecurve_{timestamp}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)
    logger.setLevel(logging.DEBUG)
    logger.info("Logging to file: %s", log_file)
    return file_handler


def setup_logging(
    level: str | int = "INFO",
    log_dir: Path | str | None = None,
) -> logging.Logger:
    """
    Configure (or update) the ``platecurve`` logger.

    The first call attaches a console handler and, when ``log_dir`` is given,
    a timestamped file handler that records everything at DEBUG. Later calls
    change the console level and attach the file handler if ``log_dir`` is
    given and none exists yet. Records do not propagate to the root logger.
    """
    global _CONSOLE_HANDLER, _FILE_HANDLER
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False
    console_level = _resolve_level(level)

    if _CONSOLE_HANDLER is not None:
        _CONSOLE_HANDLER.setLevel(console_level)
        if _FILE_HANDLER is None and log_dir is not None:
            _FILE_HANDLER = _add_file_handler(logger, log_dir)
        elif _FILE_HANDLER is None:
            logger.setLevel(console_level)
        logger.info("Log level updated to: %s", logging.getLevelName(console_level))
        return logger

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console)
    _CONSOLE_HANDLER = console

    if log_dir is not None:
        _FILE_HANDLER = _add_file_handler(logger, log_dir)
    else:
        logger.setLevel(console_level)

    logger.debug("Logging started")
    return logger


__all__ = ["LOGGER_NAME", "setup_logging"]
