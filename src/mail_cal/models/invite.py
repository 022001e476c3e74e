"""Calendar-invite document model."""

from __future__ import annotations

from dataclasses import dataclass

INVITE_FILENAME = "invite.ics"
INVITE_MIME_TYPE = "text/calendar; charset=UTF-8; method=REQUEST"


@dataclass(frozen=True)
class InviteDocument:
    """An iCalendar document ready to be attached to a reply.

    Attributes:
        content: The ``VCALENDAR`` text with CRLF line endings.
        filename: Attachment file name.
        mime_type: Full attachment content type, including charset and
            iTIP method.
    """

    content: str
    filename: str = INVITE_FILENAME
    mime_type: str = INVITE_MIME_TYPE

    def to_bytes(self) -> bytes:
        """Return the document encoded as UTF-8."""
        return self.content.encode("utf-8")
