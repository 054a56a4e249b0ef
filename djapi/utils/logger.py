"""
utils/logger.py
---------------
Centralized logging configuration.
All modules should use `get_logger(__name__)` to obtain a logger instance.

Besides the standard levels a TRACE level sits below DEBUG for the most
verbose diagnostics (driver errors, connection set-up).
"""

import logging
import sys

from djapi.config import LOG_LEVEL

TRACE = 5
PACKAGE_LOGGER = "djapi"

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False

logging.addLevelName(TRACE, "TRACE")


def _resolve_level(name: str) -> int:
    """Numeric level for ``name``; unknown names fall back to INFO."""
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _init_logging() -> None:
    """
    Configure the package logger once.

    Only the ``djapi`` logger is touched. The stdout handler is added when
    the application has not configured the root logger itself; otherwise
    records simply propagate to the application's handlers.
    """
    global _initialized
    if _initialized:
        return
    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(_resolve_level(LOG_LEVEL))
    if not logging.getLogger().handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        package.addHandler(handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)
