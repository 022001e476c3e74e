"""Pipeline orchestrator for the email-to-invite workflow.

Wires the pure extraction components to the outside world:

- :func:`process_email` runs prompt building, the injected model call,
  validation and invite generation for a single email.
- :func:`run_pipeline` performs one polling pass over the mailbox: every
  unread message sent to the assistant address is processed, answered and
  marked read.
- :func:`watch` repeats passes on a fixed interval.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from mail_cal.config import Settings
from mail_cal.extraction import validate_extraction
from mail_cal.formatting import is_utc, parse_timestamp
from mail_cal.ics import build_invite, build_reply_body
from mail_cal.llm import GeminiClient
from mail_cal.mail.auth import get_gmail_credentials
from mail_cal.mail.client import GmailClient
from mail_cal.mail.exceptions import MailAPIError
from mail_cal.models.email import EmailRecord
from mail_cal.models.extraction import EventRecord, ExtractionRequest
from mail_cal.models.invite import InviteDocument
from mail_cal.prompts import build_extraction_request

logger = logging.getLogger(__name__)

CompleteFn = Callable[[ExtractionRequest], str]
"""Sends an extraction request to the model and returns its raw text."""


class Mailbox(Protocol):
    """The mailbox operations a polling pass relies on."""

    def list_unread(self, target_address: str) -> list[EmailRecord]: ...

    def send_reply(
        self,
        email: EmailRecord,
        body: str,
        invite: InviteDocument,
        from_address: str,
        from_name: str = ...,
    ) -> dict: ...

    def mark_read(self, email: EmailRecord) -> None: ...


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessedEmail:
    """Everything produced for one successfully processed email.

    Attributes:
        email: The input email.
        event: The validated event extracted from it.
        invite: The generated ``invite.ics`` document.
        reply_body: Plain-text reply summarising the event.
    """

    email: EmailRecord
    event: EventRecord
    invite: InviteDocument
    reply_body: str


@dataclass(frozen=True)
class MessageOutcome:
    """A message that was processed during a pass.

    Attributes:
        processed: The pipeline output for the message.
        reply_sent: Whether the reply went out (``False`` in dry-run mode).
        marked_read: Whether the message was marked read afterwards.  A
            sent reply with ``marked_read=False`` left the message unread.
    """

    processed: ProcessedEmail
    reply_sent: bool = False
    marked_read: bool = False


@dataclass(frozen=True)
class FailedMessage:
    """A message that could not be processed or answered.

    Attributes:
        email: The message that failed.  It is left unread.
        error: Human-readable error description.
        error_type: Exception class name, e.g. ``"ExtractionError"``.
    """

    email: EmailRecord
    error: str
    error_type: str


@dataclass
class PassResult:
    """Aggregated result of one polling pass.

    Attributes:
        target_address: The mailbox address that was polled.
        messages_found: Number of unread messages found.
        outcomes: Messages processed successfully, in processing order.
        failures: Messages that failed, in processing order.
        dry_run: Whether replies and read-marking were skipped.
        duration_seconds: Wall-clock time for the pass.
    """

    target_address: str
    messages_found: int = 0
    outcomes: list[MessageOutcome] = field(default_factory=list)
    failures: list[FailedMessage] = field(default_factory=list)
    dry_run: bool = False
    duration_seconds: float = 0.0

    @property
    def replies_sent(self) -> int:
        """Number of replies actually sent."""
        return sum(1 for outcome in self.outcomes if outcome.reply_sent)

    @property
    def has_failures(self) -> bool:
        """Whether any message failed during the pass."""
        return bool(self.failures)


# ---------------------------------------------------------------------------
# Single email
# ---------------------------------------------------------------------------


def process_email(
    email: EmailRecord,
    complete: CompleteFn,
    now: datetime,
    assistant_name: str = "Calendar Assistant",
) -> ProcessedEmail:
    """Turn one email into an invite and reply body.

    Args:
        email: The email to process.
        complete: The model call, ``ExtractionRequest -> raw text``.
        now: Current wall-clock time, used to resolve relative dates.
        assistant_name: Name used to sign the reply.

    Returns:
        The :class:`ProcessedEmail` for *email*.

    Raises:
        ExtractionError: If the model response is unusable.
        InviteError: If the invite cannot be rendered.
        Exception: Anything raised by *complete* propagates unchanged.
    """
    request = build_extraction_request(email, now)
    raw_text = complete(request)
    event = validate_extraction(raw_text)

    # A floating time has no zone, so it cannot be ordered against UTC.
    if is_utc(event.start_timestamp) != is_utc(event.end_timestamp):
        logger.debug(
            "Not comparing %s with %s: one is UTC, the other floating",
            event.start_timestamp,
            event.end_timestamp,
        )
    elif parse_timestamp(event.end_timestamp) < parse_timestamp(event.start_timestamp):
        logger.warning(
            "Event '%s' ends (%s) before it starts (%s)",
            event.title,
            event.end_timestamp,
            event.start_timestamp,
        )

    invite = build_invite(event)
    reply_body = build_reply_body(event, assistant_name=assistant_name)

    logger.info(
        "Extracted event '%s' | %s - %s | location=%r",
        event.title,
        event.start_timestamp,
        event.end_timestamp,
        event.location,
    )
    return ProcessedEmail(email=email, event=event, invite=invite, reply_body=reply_body)


# ---------------------------------------------------------------------------
# Polling pass
# ---------------------------------------------------------------------------


def run_pipeline(
    settings: Settings,
    mailbox: Mailbox | None = None,
    complete: CompleteFn | None = None,
    dry_run: bool = False,
    current_datetime: datetime | None = None,
    answered: set[str] | None = None,
) -> PassResult:
    """Run one polling pass over the assistant mailbox.

    Each unread message is processed independently and in the order the
    mailbox lists them.  A message that fails before its reply is sent is
    recorded in :attr:`PassResult.failures`, logged and left unread so the
    next pass picks it up again; the pass then continues with the next
    message.

    Once the reply is sent the message counts as answered.  If marking it
    read then fails, a warning is logged and the outcome records
    ``marked_read=False``.  When *answered* is given, the message id is
    added to it, and later passes sharing the set only retry the
    read-marking instead of replying a second time.

    Args:
        settings: Application settings.
        mailbox: Mailbox client.  Defaults to a :class:`GmailClient` built
            from the Gmail settings.
        complete: Model call.  Defaults to a :class:`GeminiClient`.
        dry_run: If ``True``, extract and build invites but neither reply
            nor mark messages as read.
        current_datetime: Override for "now" (useful for testing).
            Defaults to ``datetime.now()`` if not provided.
        answered: Ids of messages already replied to but still unread.
            Updated in place.

    Returns:
        A :class:`PassResult` describing the pass.
    """
    start_time = time.monotonic()
    now = current_datetime or datetime.now()
    result = PassResult(target_address=settings.target_address, dry_run=dry_run)

    if mailbox is None:
        mailbox = _build_mailbox(settings)
    if complete is None:
        complete = GeminiClient(api_key=settings.gemini_api_key, model=settings.gemini_model)

    emails = mailbox.list_unread(settings.target_address)
    result.messages_found = len(emails)
    logger.info("Processing %d unread message(s)", len(emails))

    for email in emails:
        logger.info(
            "Processing message %s from %s: %r",
            email.message_id or "?",
            email.sender_address,
            email.subject,
        )
        if answered is not None and email.message_id in answered:
            logger.info("Message %s was already answered, not replying again", email.message_id)
            if not dry_run and _mark_read(mailbox, email):
                answered.discard(email.message_id)
            continue

        try:
            processed = process_email(
                email,
                complete,
                now,
                assistant_name=settings.assistant_name,
            )
            if not dry_run:
                mailbox.send_reply(
                    email,
                    processed.reply_body,
                    processed.invite,
                    from_address=settings.target_address,
                    from_name=settings.assistant_name,
                )
        except Exception as exc:
            logger.error(
                "Failed to process message %s from %s: %s",
                email.message_id or "?",
                email.sender_address,
                exc,
            )
            result.failures.append(
                FailedMessage(email=email, error=str(exc), error_type=type(exc).__name__)
            )
            continue

        if dry_run:
            result.outcomes.append(MessageOutcome(processed=processed))
            continue

        # The reply is out; from here on the message is a success.
        marked_read = _mark_read(mailbox, email)
        if not marked_read and answered is not None and email.message_id:
            answered.add(email.message_id)
        result.outcomes.append(
            MessageOutcome(processed=processed, reply_sent=True, marked_read=marked_read)
        )

    result.duration_seconds = time.monotonic() - start_time
    logger.info(
        "Pass complete in %.1fs: %d processed, %d failed",
        result.duration_seconds,
        len(result.outcomes),
        len(result.failures),
    )
    return result


def watch(
    settings: Settings,
    mailbox: Mailbox | None = None,
    complete: CompleteFn | None = None,
    dry_run: bool = False,
    interval_seconds: int | None = None,
    max_passes: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_pass: Callable[[PassResult], None] | None = None,
) -> int:
    """Run polling passes until interrupted or *max_passes* is reached.

    Clients are built once and reused across passes.

    Args:
        settings: Application settings.
        mailbox: Mailbox client, as for :func:`run_pipeline`.
        complete: Model call, as for :func:`run_pipeline`.
        dry_run: Passed through to every pass.
        interval_seconds: Delay between passes.  Defaults to
            ``settings.poll_interval_seconds``.
        max_passes: Stop after this many passes.  ``None`` runs forever.
        sleep: Sleep function (injected in tests).
        on_pass: Called with each :class:`PassResult`.

    Returns:
        The number of passes completed.
    """
    interval = interval_seconds or settings.poll_interval_seconds
    if mailbox is None:
        mailbox = _build_mailbox(settings)
    if complete is None:
        complete = GeminiClient(api_key=settings.gemini_api_key, model=settings.gemini_model)

    logger.info(
        "Watching %s every %ds%s",
        settings.target_address,
        interval,
        " (dry run)" if dry_run else "",
    )

    answered: set[str] = set()
    passes = 0
    while max_passes is None or passes < max_passes:
        result = run_pipeline(
            settings,
            mailbox=mailbox,
            complete=complete,
            dry_run=dry_run,
            answered=answered,
        )
        passes += 1
        if on_pass is not None:
            on_pass(result)
        if max_passes is not None and passes >= max_passes:
            break
        sleep(interval)
    return passes


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _mark_read(mailbox: Mailbox, email: EmailRecord) -> bool:
    """Mark an answered message read, returning whether that worked."""
    try:
        mailbox.mark_read(email)
    except (MailAPIError, ValueError) as exc:
        logger.warning(
            "Replied to message %s but could not mark it read: %s",
            email.message_id or "?",
            exc,
        )
        return False
    return True


def _build_mailbox(settings: Settings) -> GmailClient:
    """Build a Gmail client from the configured OAuth files."""
    creds = get_gmail_credentials(
        credentials_path=settings.gmail_credentials_path,
        token_path=settings.gmail_token_path,
    )
    return GmailClient(credentials=creds)
