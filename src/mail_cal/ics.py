"""iCalendar invite generation.

Renders a validated :class:`~mail_cal.models.extraction.EventRecord` as a
minimal RFC 5545 ``VCALENDAR`` document and writes the plain-text reply that
accompanies it.

Only ``SUMMARY`` and ``LOCATION`` carry free text, so only they are escaped.
Timestamps are written exactly as the validator accepted them.
"""

from __future__ import annotations

import logging

from mail_cal.exceptions import InviteError, InviteErrorKind
from mail_cal.formatting import format_date, format_time, is_utc
from mail_cal.models.extraction import EventRecord
from mail_cal.models.invite import InviteDocument

logger = logging.getLogger(__name__)

CRLF = "\r\n"

_RESERVED = ("\\", ";", ",")
_UNESCAPES = {"\\": "\\", ";": ";", ",": ",", "n": "\n", "N": "\n"}


def escape_text(text: str) -> str:
    """Escape a TEXT property value.

    Backslash, semicolon and comma are each prefixed with a backslash in a
    single pass, then line breaks (``\\r\\n``, ``\\r`` or ``\\n``) become
    the two characters ``\\n``.  Newlines are handled last so the backslash
    they introduce is not escaped again.

    Text containing ``\\r`` does not round-trip: a bare CR would break the
    CRLF line structure, so it is folded into ``\\n``.  Values coming from
    :func:`~mail_cal.extraction.validate_extraction` are already LF-only.

    >>> escape_text("Room 5, Building A; bring\\nlaptop")
    'Room 5\\\\, Building A\\\\; bring\\\\nlaptop'
    """
    escaped = "".join("\\" + char if char in _RESERVED else char for char in text)
    return escaped.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\\n")


def unescape_text(text: str) -> str:
    """Reverse :func:`escape_text`.

    A backslash that is not followed by a known escape character is kept
    as-is.
    """
    chars: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 1 < len(text) and text[index + 1] in _UNESCAPES:
            chars.append(_UNESCAPES[text[index + 1]])
            index += 2
            continue
        chars.append(char)
        index += 1
    return "".join(chars)


def build_invite(event: EventRecord) -> InviteDocument:
    """Render *event* as an iCalendar invite.

    Args:
        event: The validated event.

    Returns:
        An :class:`InviteDocument` whose content uses CRLF line endings and
        ends with a trailing CRLF.  The ``LOCATION`` line is omitted when the
        event has no location.

    Raises:
        InviteError: With kind ``MISSING_REQUIRED_FIELD`` if the title or
            either timestamp is empty.
    """
    for name in ("title", "start_timestamp", "end_timestamp"):
        if not getattr(event, name):
            logger.error("Refusing to build invite, %s is empty: %r", name, event)
            raise InviteError(
                InviteErrorKind.MISSING_REQUIRED_FIELD,
                f"Missing required event data: {name}",
                field=name,
            )

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "BEGIN:VEVENT",
        f"SUMMARY:{escape_text(event.title)}",
        f"DTSTART:{event.start_timestamp}",
        f"DTEND:{event.end_timestamp}",
    ]
    if event.location:
        lines.append(f"LOCATION:{escape_text(event.location)}")
    lines.extend(["END:VEVENT", "END:VCALENDAR"])

    content = CRLF.join(lines) + CRLF
    logger.debug("Generated invite:\n%s", content.replace(CRLF, "\\r\\n\n"))
    return InviteDocument(content=content)


def build_reply_body(event: EventRecord, assistant_name: str = "Calendar Assistant") -> str:
    """Write the plain-text reply that accompanies the invite.

    Args:
        event: The validated event.
        assistant_name: Name used in the sign-off.

    Returns:
        The reply body with the title, formatted start and end, and the
        location when there is one.
    """
    lines = [
        "Hello!",
        "",
        "I've created a calendar event based on the email you forwarded:",
        "",
        f"Event: {event.title}",
        f"Start: {_describe(event.start_timestamp)}",
        f"End: {_describe(event.end_timestamp)}",
    ]
    if event.location:
        lines.append(f"Location: {event.location}")
    lines.extend(
        [
            "",
            "I've attached the calendar invite (invite.ics) to this email. "
            "Open it to add the event to your calendar.",
            "",
            "Best regards,",
            assistant_name,
        ]
    )
    return "\n".join(lines) + "\n"


def _describe(timestamp: str) -> str:
    """Render a timestamp as ``"14th March 2025 at 13:05"``."""
    text = f"{format_date(timestamp)} at {format_time(timestamp)}"
    if is_utc(timestamp):
        text += " UTC"
    return text
