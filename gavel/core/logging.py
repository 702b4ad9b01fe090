"""
Provides support for logging
"""

import logging
import time
from typing import Any


def configure_logging(
    level: int = logging.WARNING,
    handlers: list[logging.Handler] | None = None,
):
    """
    Configures logging format and log level.

    :param level: default = logging.WARNING
    :return: None

    - log format: %(asctime)s [%(levelname)s] [%(name)s] %(message)s
    - timestamps are UTC
    - loggers are named after the class that logs, see `get_logger()`

    >>> configure_logging(level=logging.DEBUG)
    >>> logger = logging.getLogger('AuctionStore')
    >>> logger.info('bid accepted') # doctest: +SKIP
    2026-10-19 14:48:20,594 [INFO] [AuctionStore] bid accepted

    """
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        level=level,
        handlers=handlers,
        force=True,
    )
    logging.captureWarnings(True)


def parse_level(level: str | int) -> int:
    """
    Resolves a log level name, e.g. "INFO", to its numeric value.

    :exception ValueError: if the level name is unknown
    """
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level}")
    return resolved


def get_logger(obj: Any, name: str | None = None) -> logging.Logger:
    """
    Returns a logger using the class name as the logger name.
    If `name` is specifed, then it is appended to the class name: `{self.__class__.__name__}.{name}`
    """
    logger = logging.getLogger(obj.__class__.__name__)
    if name is None:
        return logger

    return logger.getChild(name)
