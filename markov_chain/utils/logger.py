"""
Logging setup shared by the CLI and the HTTP service.
"""
import logging
import sys
from typing import Optional

from markov_chain.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with a single stderr handler attached.

    Args:
        name: Logger name (usually the module's __name__)
        level: Level name; defaults to settings.LOG_LEVEL

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    logger.setLevel((level or settings.LOG_LEVEL).upper())
    return logger
