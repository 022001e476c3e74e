"""Email data models.

:class:`EmailRecord` is the only input the extraction pipeline needs from a
mailbox.  It is an intentionally simple stdlib dataclass so the pure parts of
the pipeline do not depend on any mail library.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EmailRecord:
    """A single unread email to turn into a calendar invite.

    Attributes:
        subject: Subject line, possibly empty.
        body: Plain-text body, possibly empty.
        sender_address: ``From`` header of the message.  Replies go here.
        thread_id: Mailbox thread handle the reply is attached to.
        message_id: Mailbox handle of the message itself, used to mark it
            as read.  Empty when the record was not read from a mailbox.
        rfc822_message_id: The ``Message-ID`` header, used for the reply's
            ``In-Reply-To`` and ``References`` headers.
    """

    subject: str
    body: str
    sender_address: str
    thread_id: str
    message_id: str = ""
    rfc822_message_id: str = ""
