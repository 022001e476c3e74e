"""mail-cal: Email-to-Calendar-Invite Assistant.

Reads emails forwarded to an assistant mailbox, extracts the event they
describe with Gemini, and replies with an ``invite.ics`` attachment.
"""

from __future__ import annotations

from mail_cal.exceptions import (
    ExtractionError,
    ExtractionErrorKind,
    InviteError,
    InviteErrorKind,
    ModelClientError,
)
from mail_cal.extraction import validate_extraction
from mail_cal.formatting import format_date, format_time
from mail_cal.ics import build_invite, build_reply_body, escape_text, unescape_text
from mail_cal.models.email import EmailRecord
from mail_cal.models.extraction import ChatMessage, EventRecord, ExtractionRequest
from mail_cal.models.invite import InviteDocument
from mail_cal.prompts import build_extraction_request, build_system_prompt, build_user_prompt

__version__ = "0.1.0"

__all__ = [
    "ChatMessage",
    "EmailRecord",
    "EventRecord",
    "ExtractionError",
    "ExtractionErrorKind",
    "ExtractionRequest",
    "InviteDocument",
    "InviteError",
    "InviteErrorKind",
    "ModelClientError",
    "build_extraction_request",
    "build_invite",
    "build_reply_body",
    "build_system_prompt",
    "build_user_prompt",
    "escape_text",
    "format_date",
    "format_time",
    "unescape_text",
    "validate_extraction",
]
