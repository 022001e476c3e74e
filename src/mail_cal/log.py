"""Structured logging setup for mail-cal.

Provides a consistent log format across the application with ISO 8601
timestamps and pipe-separated fields.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Marks the handler added by setup_logging so repeated calls do not stack
# handlers and externally added handlers are left alone.
_HANDLER_ATTR = "_mail_cal_log_handler"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a structured formatter.

    Sets the root logger level and attaches a :class:`logging.StreamHandler`
    that writes to *stderr* using the project log format.  Calling this
    function more than once only updates the level.

    Args:
        level: A standard logging level name (e.g. ``"DEBUG"``,
            ``"INFO"``, ``"WARNING"``).

    Raises:
        ValueError: If *level* is not a recognised logging level string.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers:
        if getattr(handler, _HANDLER_ATTR, False):
            handler.setLevel(numeric_level)
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))

    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)

    # The Google client libraries are chatty at DEBUG.
    if numeric_level <= logging.DEBUG:
        for noisy in ("googleapiclient.discovery_cache", "urllib3", "httpx"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
