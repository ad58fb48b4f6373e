"""Shared logging utilities for consistent engine observability.

Usage example:
    from employer_rating_engine.observability.logging import get_logger

    logger = get_logger("employer_rating_engine.batch")
    logger.info("Rated %s employers", employer_count)
"""

from __future__ import annotations

import logging
import time

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _utc_formatter() -> logging.Formatter:
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def get_logger(name: str, *, level: int = logging.INFO) -> logging.Logger:
    """Return an engine logger writing UTC-stamped lines to stderr.

    The handler is attached once per name, so repeated calls (one per worker
    thread, for example) never duplicate output. ``level`` only applies the
    first time a name is configured.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_utc_formatter())
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
    return logger
