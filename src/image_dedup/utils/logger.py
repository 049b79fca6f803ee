"""Logging configuration for image-dedup."""

import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "image_dedup"


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Args:
        name: Logger name
        level: Logging level (default: INFO)
        log_file: Optional file path for log output

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(fmt="%(levelname)s: %(message)s")
    )
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # More verbose in file
        file_format = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger


def set_verbosity(level: int) -> None:
    """
    Change the level of every logger belonging to the package.

    Module loggers each carry their own console handler, so the level has to
    be pushed to the handlers as well as the loggers.

    Args:
        level: New logging level
    """
    for name in list(logging.root.manager.loggerDict):
        if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
            continue
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(
                handler, logging.FileHandler
            ):
                handler.setLevel(level)
