"""Gmail client for reading forwarded emails and sending invite replies.

Provides :class:`GmailClient`, a thin wrapper around the Gmail API that
covers the three mailbox operations the pipeline needs:

- **List** -- find unread messages sent to the assistant address and turn
  them into :class:`~mail_cal.models.email.EmailRecord` values.
- **Reply** -- send the reply body with ``invite.ics`` attached on the
  original thread.
- **Mark read** -- clear the ``UNREAD`` label once a reply was sent.

All API calls are wrapped with :func:`~mail_cal.mail.exceptions.with_retry`.
"""

from __future__ import annotations

import base64
import logging
from email.message import EmailMessage
from email.utils import formataddr, parseaddr
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from mail_cal.mail.exceptions import with_retry
from mail_cal.models.email import EmailRecord
from mail_cal.models.invite import InviteDocument

logger = logging.getLogger(__name__)

# Gmail API alias for the authenticated account.
_ME = "me"
_UNREAD_LABEL = "UNREAD"


class GmailClient:
    """High-level client for the Gmail operations used by the pipeline.

    Args:
        credentials: Valid Google OAuth 2.0 credentials.
        service: Optional pre-built ``googleapiclient`` service resource.
            If ``None``, one is built from *credentials*.  Pass a mock here
            in tests.
    """

    def __init__(
        self,
        credentials: Credentials,
        service: Any | None = None,
    ) -> None:
        self._credentials = credentials
        self._service = service or build("gmail", "v1", credentials=credentials)

    # ------------------------------------------------------------------
    # Credential refresh hook (used by @with_retry on 401)
    # ------------------------------------------------------------------

    def _refresh_credentials(self) -> None:
        """Refresh the OAuth credentials and rebuild the service resource."""
        from google.auth.transport.requests import Request

        self._credentials.refresh(Request())
        self._service = build("gmail", "v1", credentials=self._credentials)
        logger.info("Credentials refreshed and service rebuilt")

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    @with_retry()
    def list_unread(self, target_address: str) -> list[EmailRecord]:
        """Return unread messages addressed to *target_address*.

        Follows pagination and fetches each message in full.  Messages are
        returned in the order the API enumerates them.

        Args:
            target_address: The assistant's mailbox address.

        Returns:
            One :class:`EmailRecord` per unread message.
        """
        query = f"is:unread to:{target_address}"
        message_ids: list[str] = []
        page_token: str | None = None

        while True:
            kwargs: dict[str, Any] = {"userId": _ME, "q": query}
            if page_token:
                kwargs["pageToken"] = page_token
            response = self._service.users().messages().list(**kwargs).execute()
            message_ids.extend(m["id"] for m in response.get("messages", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.info("Found %d unread message(s) for %s", len(message_ids), target_address)
        return [self._fetch_message(message_id) for message_id in message_ids]

    # ------------------------------------------------------------------
    # Reply
    # ------------------------------------------------------------------

    @with_retry(idempotent=False)
    def send_reply(
        self,
        email: EmailRecord,
        body: str,
        invite: InviteDocument,
        from_address: str,
        from_name: str = "Calendar Assistant",
    ) -> dict:
        """Reply to *email* on its thread with *invite* attached.

        Args:
            email: The message being answered.
            body: Plain-text reply body.
            invite: The invite document to attach.
            from_address: Address the reply is sent from.
            from_name: Display name for the ``From`` header.

        Returns:
            The API response ``dict`` for the sent message.
        """
        message = build_reply_message(email, body, invite, from_address, from_name)
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")
        payload: dict[str, Any] = {"raw": raw}
        if email.thread_id:
            payload["threadId"] = email.thread_id

        result = (
            self._service.users().messages().send(userId=_ME, body=payload).execute()
        )
        logger.info(
            "Sent invite reply to %s (id=%s, thread=%s)",
            email.sender_address,
            result.get("id", "?"),
            email.thread_id,
        )
        return result

    # ------------------------------------------------------------------
    # Mark read
    # ------------------------------------------------------------------

    @with_retry()
    def mark_read(self, email: EmailRecord) -> None:
        """Remove the ``UNREAD`` label from *email*.

        Raises:
            ValueError: If *email* has no mailbox ``message_id``.
        """
        if not email.message_id:
            raise ValueError("Cannot mark a message read without its message_id")
        (
            self._service.users()
            .messages()
            .modify(
                userId=_ME,
                id=email.message_id,
                body={"removeLabelIds": [_UNREAD_LABEL]},
            )
            .execute()
        )
        logger.info("Marked message %s as read", email.message_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fetch_message(self, message_id: str) -> EmailRecord:
        """Fetch one message in full and convert it to an :class:`EmailRecord`."""
        message = (
            self._service.users()
            .messages()
            .get(userId=_ME, id=message_id, format="full")
            .execute()
        )
        return message_to_record(message)


# ---------------------------------------------------------------------------
# Message conversion
# ---------------------------------------------------------------------------


def message_to_record(message: dict) -> EmailRecord:
    """Convert a Gmail API message resource into an :class:`EmailRecord`.

    Args:
        message: A ``users.messages.get`` response with ``format="full"``.

    Returns:
        The email record.  The body is the first ``text/plain`` part, or
        ``""`` when the message has none.
    """
    payload = message.get("payload", {})
    headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}

    from_header = headers.get("from", "")
    _, address = parseaddr(from_header)

    body = _find_plain_text(payload)
    if body is None:
        logger.warning("Message %s has no text/plain part", message.get("id", "?"))
        body = ""

    return EmailRecord(
        subject=headers.get("subject", ""),
        body=body,
        sender_address=address or from_header,
        thread_id=message.get("threadId", ""),
        message_id=message.get("id", ""),
        rfc822_message_id=headers.get("message-id", ""),
    )


def build_reply_message(
    email: EmailRecord,
    body: str,
    invite: InviteDocument,
    from_address: str,
    from_name: str = "Calendar Assistant",
) -> EmailMessage:
    """Build the MIME reply carrying *body* and the ``invite.ics`` attachment."""
    message = EmailMessage()
    message["To"] = email.sender_address
    message["From"] = formataddr((from_name, from_address))
    message["Subject"] = _reply_subject(email.subject)
    if email.rfc822_message_id:
        message["In-Reply-To"] = email.rfc822_message_id
        message["References"] = email.rfc822_message_id

    message.set_content(body)

    maintype, _, rest = invite.mime_type.partition("/")
    subtype, *raw_params = (part.strip() for part in rest.split(";"))
    params = dict(p.split("=", 1) for p in raw_params if "=" in p)
    message.add_attachment(
        invite.to_bytes(),
        maintype=maintype,
        subtype=subtype,
        filename=invite.filename,
        params=params,
    )
    return message


def _reply_subject(subject: str) -> str:
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}" if subject else "Re: your calendar event"


def _find_plain_text(part: dict) -> str | None:
    """Depth-first search for the first ``text/plain`` body in *part*."""
    if part.get("mimeType") == "text/plain":
        data = part.get("body", {}).get("data")
        if data is not None:
            return _decode_body(data)

    for child in part.get("parts", []) or []:
        text = _find_plain_text(child)
        if text is not None:
            return text
    return None


def _decode_body(data: str) -> str:
    """Decode a base64url Gmail body, tolerating missing padding."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
