"""Logging configuration for the API process."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

# Handlers installed by configure_logging; only these are replaced on reconfiguration.
_installed_handlers: List[logging.Handler] = []


def build_handlers(log_dir: Optional[str] = None) -> List[logging.Handler]:
    """Return the console handler, plus rotating files when ``log_dir`` is set."""

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        for filename, handler_level in (("error.log", logging.ERROR), ("combined.log", logging.NOTSET)):
            handler = RotatingFileHandler(
                os.path.join(log_dir, filename),
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
            handler.setLevel(handler_level)
            handlers.append(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(level: str = "info", log_dir: Optional[str] = None) -> None:
    """Attach the app's handlers to the root logger.

    Handlers installed by someone else (a host process, a test harness) are
    left in place; a second call swaps out only the handlers from the first.
    """

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()
    for handler in build_handlers(log_dir):
        root.addHandler(handler)
        _installed_handlers.append(handler)
    root.setLevel(numeric_level)

    # Request lines are written by the app's own access log.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
