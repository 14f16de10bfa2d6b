"""
Logging utilities for the BambooHR timesheet client.

All modules log through the 'bamboo_timesheet' logger; the CLI attaches
a console handler with level colors when writing to a terminal.
"""

import logging
import sys
from typing import Optional


LOGGER_NAME = 'bamboo_timesheet'
LOG_FORMAT = '%(levelname)-8s | %(message)s'


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(verbose: bool = False, use_colors: bool = True, stream=None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbose: If True, log at DEBUG level; otherwise INFO
        use_colors: Color level names when the stream is a terminal
        stream: Output stream (defaults to sys.stderr)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.handlers.clear()

    if stream is None:
        stream = sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)

    is_tty = hasattr(stream, 'isatty') and stream.isatty()
    if use_colors and is_tty:
        handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger() -> logging.Logger:
    """Return the package logger."""
    return logging.getLogger(LOGGER_NAME)


def log_section(title: str, logger: Optional[logging.Logger] = None):
    """Log a section header."""
    logger = logger or get_logger()
    logger.info("=" * 60)
    logger.info(f"  {title}")
    logger.info("=" * 60)


def log_step(step: str, logger: Optional[logging.Logger] = None):
    """Log a processing step."""
    logger = logger or get_logger()
    logger.info(f"→ {step}")


def log_success(message: str, logger: Optional[logging.Logger] = None):
    logger = logger or get_logger()
    logger.info(f"✓ {message}")


def log_warning(warning: str, logger: Optional[logging.Logger] = None):
    logger = logger or get_logger()
    logger.warning(f"⚠ {warning}")


def log_error(error: str, logger: Optional[logging.Logger] = None):
    logger = logger or get_logger()
    logger.error(f"✗ {error}")
