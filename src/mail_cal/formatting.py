"""Human-readable date and time formatting.

Turns iCalendar timestamps (``YYYYMMDDTHHMMSS`` with an optional ``Z``) into
the long-form strings used in reply emails, e.g. ``"14th March 2025"`` and
``"13:05"``.  The same long-date style is used in the extraction prompt.
"""

from __future__ import annotations

import re
from datetime import date, datetime

TIMESTAMP_PATTERN = re.compile(r"^\d{8}T\d{6}Z?$")
"""iCalendar date-time in basic format, optionally marked as UTC."""

_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"


def parse_timestamp(timestamp: str) -> datetime:
    """Parse an iCalendar timestamp into a naive :class:`datetime`.

    A trailing ``Z`` is accepted and dropped; callers that care about UTC
    check :func:`is_utc` separately.

    Args:
        timestamp: A ``YYYYMMDDTHHMMSS`` or ``YYYYMMDDTHHMMSSZ`` string.

    Returns:
        The parsed datetime.

    Raises:
        ValueError: If *timestamp* does not match the pattern or is not a
            real calendar date/time (e.g. month 13).
    """
    if not TIMESTAMP_PATTERN.match(timestamp):
        raise ValueError(f"Not an iCalendar timestamp: {timestamp!r}")
    return datetime.strptime(timestamp.rstrip("Z"), _TIMESTAMP_FORMAT)


def is_utc(timestamp: str) -> bool:
    """Return ``True`` when *timestamp* carries the UTC ``Z`` suffix."""
    return timestamp.endswith("Z")


def ordinal_suffix(day: int) -> str:
    """Return the English ordinal suffix for a day of the month.

    >>> [ordinal_suffix(d) for d in (1, 2, 3, 4, 11, 12, 13, 21, 22, 23)]
    ['st', 'nd', 'rd', 'th', 'th', 'th', 'th', 'st', 'nd', 'rd']
    """
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_long_date(value: date) -> str:
    """Format a date as ``"1st March 2025"``."""
    return f"{value.day}{ordinal_suffix(value.day)} {value:%B %Y}"


def format_date(timestamp: str) -> str:
    """Format the date part of an iCalendar timestamp.

    Args:
        timestamp: A ``YYYYMMDDTHHMMSS[Z]`` string.

    Returns:
        The long-form date, e.g. ``"14th March 2025"``.

    Raises:
        ValueError: If *timestamp* is not a valid iCalendar timestamp.
    """
    return format_long_date(parse_timestamp(timestamp))


def format_time(timestamp: str) -> str:
    """Format the time part of an iCalendar timestamp as 24-hour ``HH:MM``.

    Raises:
        ValueError: If *timestamp* is not a valid iCalendar timestamp.
    """
    return f"{parse_timestamp(timestamp):%H:%M}"
