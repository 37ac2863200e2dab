"""
Logging configuration for the feed parser.
"""

import logging
import sys
from typing import Optional, Union

# Finer than DEBUG, used for outbound request tracing
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# ANSI color per level name
LEVEL_COLORS = {
    "TRACE": 36,     # cyan
    "DEBUG": 37,     # gray
    "INFO": 34,      # blue
    "WARNING": 33,   # yellow
    "ERROR": 31,     # red
    "CRITICAL": 31,
}


class ColorFormatter(logging.Formatter):
    """Formatter that wraps each record in the color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelname, 0)
        return f"\033[{color}m{message}\033[0m"


def resolve_level(level: Union[int, str]) -> int:
    """Turn 'debug' / 'TRACE' / 20 into a numeric logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if isinstance(value, int):
        return value
    raise ValueError(f"unknown log level: {level!r}")


def setup_logger(
    name: str = "feed_parser",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    color: Optional[bool] = None
) -> logging.Logger:
    """
    Set up and return a logger instance.

    Args:
        name: Logger name
        level: Logging level (default: INFO), numeric or by name
        log_file: Optional file path for logging
        color: Colorize console output by level (default: only when
            stderr is a terminal)

    Returns:
        Configured logger instance
    """
    level = resolve_level(level)
    logger = logging.getLogger(name)

    # Console output goes to stderr so JSON on stdout stays clean.
    # Calling again only adjusts the level; handlers are attached once
    if logger.handlers:
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.setLevel(level)

    fmt = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    if color is None:
        color = sys.stderr.isatty()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if color:
        console_handler.setFormatter(ColorFormatter(fmt, datefmt=datefmt))
    else:
        console_handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    logger.addHandler(console_handler)

    # File output is never colorized
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
        logger.addHandler(file_handler)

    return logger


# Default logger instance, created once at import time
logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get a child logger for a specific module.

    Child loggers (e.g. "feed_parser.extractor") inherit the root logger's
    handlers and level.

    Args:
        module_name: Name of the module (e.g., 'search', 'extractor')

    Returns:
        Child logger instance
    """
    return logging.getLogger(f"feed_parser.{module_name}")
