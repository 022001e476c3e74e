"""Gmail integration for mail-cal."""

from __future__ import annotations

from mail_cal.mail.auth import get_gmail_credentials
from mail_cal.mail.client import GmailClient, build_reply_message, message_to_record

__all__ = [
    "GmailClient",
    "build_reply_message",
    "get_gmail_credentials",
    "message_to_record",
]
