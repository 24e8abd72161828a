# Andy Zhao
"""
Logging helpers for georobust.

Every module grabs its logger with get_logger(__name__). Nothing is printed
unless the application configures logging (or calls setup_logger).

Set GEOROBUST_DEBUG=1 to switch the package logger to DEBUG, which makes the
consensus loop report every improvement of the best hypothesis.
"""

from __future__ import annotations

import logging
import os
import sys

PACKAGE_LOGGER = "georobust"
_DEBUG = os.environ.get("GEOROBUST_DEBUG", "0") == "1"


def setup_logger(
        name: str = PACKAGE_LOGGER,
        level: str = "INFO",
        *,
        console: bool = True,
        force: bool = False,
) -> logging.Logger:
    """
    Configure a logger with a console handler.

    Only configures once unless force=True, so calling it from several entry
    points is harmless.
    """
    logger = logging.getLogger(name)
    if logger.handlers and not force:
        return logger

    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []

    # [2026-01-31 10:15:30] [INFO] [georobust.consensus.core] message
    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if console:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a georobust module."""
    if _DEBUG:
        logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)
    return logging.getLogger(name)
