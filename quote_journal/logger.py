"""
Logging setup for the Quote Journal service.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG"

    Returns:
        The configured ``quote_journal`` logger
    """
    logger = logging.getLogger("quote_journal")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Calling twice (reloads, tests) must not duplicate output
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    return logger
