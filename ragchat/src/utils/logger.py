"""
RagChat - Logging
==================
Named-logger factory shared by every RagChat module.

Each logger gets one stdout handler with the common line format and a
level picked from ``settings.ENV`` (``dev`` → DEBUG, ``prod`` → WARNING).
Records do not propagate to the root logger, so uvicorn's own handlers
never print them twice.

Usage:
    from ragchat.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("[RAG] Manager created")
"""

import logging
import sys

from ragchat.config.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_BY_ENV = {"dev": logging.DEBUG, "prod": logging.WARNING}


def _level_for_env() -> int:
    return _LEVEL_BY_ENV.get(settings.ENV, logging.INFO)


def _stdout_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return the logger called *name*, attaching the stdout handler once.

    *level* overrides the environment-derived level; it only takes effect
    the first time a given name is requested.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    effective = _level_for_env() if level is None else level
    logger.setLevel(effective)
    logger.addHandler(_stdout_handler(effective))
    logger.propagate = False
    return logger
