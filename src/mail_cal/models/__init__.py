"""Data models for mail-cal."""

from __future__ import annotations

from mail_cal.models.email import EmailRecord
from mail_cal.models.extraction import (
    ChatMessage,
    EventRecord,
    EventResponseSchema,
    ExtractionRequest,
)
from mail_cal.models.invite import InviteDocument

__all__ = [
    "ChatMessage",
    "EmailRecord",
    "EventRecord",
    "EventResponseSchema",
    "ExtractionRequest",
    "InviteDocument",
]
