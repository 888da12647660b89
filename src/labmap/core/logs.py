"""
Logging setup.

Library modules only ever call logging.getLogger(__name__), so everything
lands under the "labmap" logger. Entry points call configure_logging once.
"""

from __future__ import annotations

import logging

LOGGER_NAME = "labmap"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_logger = logging.getLogger(LOGGER_NAME)


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """
    Ensure the labmap logger has a handler in case the app didn't configure logging.
    Safe to call multiple times.
    """
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    _logger.setLevel(level)
    return _logger
