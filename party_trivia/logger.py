# party_trivia/logger.py
import logging
from typing import Optional

from party_trivia.config import Config

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Install a single console handler on the package logger.
    Safe to call more than once.
    """
    logger = logging.getLogger("party_trivia")
    logger.setLevel((level or Config.LOG_LEVEL).upper())

    # Prevent duplicate handlers
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
