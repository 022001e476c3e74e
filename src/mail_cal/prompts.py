"""Prompt builders for the Gemini event-extraction call.

Constructs the system instruction and user message that ask the model to
pull a single calendar event out of an email, and bundles them into an
:class:`~mail_cal.models.extraction.ExtractionRequest`.
"""

from __future__ import annotations

from datetime import datetime

from mail_cal.formatting import format_long_date
from mail_cal.models.email import EmailRecord
from mail_cal.models.extraction import ChatMessage, ExtractionRequest


def build_system_prompt(current_date: str) -> str:
    """Build the system instruction for the extraction call.

    The instruction fixes the JSON keys, the iCalendar timestamp pattern and
    the raw-JSON-only rule, and injects today's date for resolving relative
    references.

    Args:
        current_date: Human-readable current date (e.g.
            ``"Friday, 14th March 2025"``), used by the model to resolve
            "tomorrow", "next Tuesday" and similar phrases.

    Returns:
        The complete system prompt string.
    """
    return f"""\
You are an assistant that reads an email and turns it into a calendar event.

## Current Date

Today is {current_date}.
Resolve relative dates ("tomorrow", "next Tuesday", "in two weeks") against
this date.

## Output Format

Return a single JSON object with exactly these keys:

- "event_title": a short descriptive title for the event (string, required)
- "datetime_start": the event start (string, required)
- "datetime_end": the event end (string, required)
- "location": where the event takes place, or "" if the email does not say

## Timestamp Format

"datetime_start" and "datetime_end" must use the iCalendar date-time format
YYYYMMDDTHHMMSS: 8 digits for the date, the letter T, 6 digits for the time
(24-hour clock). Example: 20250314T130500 is 14 March 2025 at 13:05:00.
Append Z (e.g. 20250314T130500Z) only when the email gives the time in UTC.
If no end time is given, assume the event lasts one hour.

## Text Rules

- Write text values as plain text. Do not escape commas, semicolons or
  backslashes yourself.
- If the email describes several events, return only the first one.

## Important

Respond with the raw JSON object only. Do not wrap it in markdown code
fences or backticks, and do not add any explanation before or after it.
"""


def build_user_prompt(email: EmailRecord) -> str:
    """Build the user message carrying the email to analyse.

    Args:
        email: The email record.  Empty subject or body are passed through
            unchanged.

    Returns:
        The labelled subject, sender and body as plain text.
    """
    return (
        "Parse this email into a calendar event JSON object.\n\n"
        f"Email Subject: {email.subject}\n"
        f"Email From: {email.sender_address}\n"
        f"Email Body:\n{email.body}"
    )


def build_extraction_request(email: EmailRecord, now: datetime) -> ExtractionRequest:
    """Build the complete model request for one email.

    Args:
        email: The email to extract an event from.
        now: The current wall-clock time.

    Returns:
        An :class:`ExtractionRequest` with the system and user messages and
        a low sampling temperature.
    """
    current_date = f"{now:%A}, {format_long_date(now)}"
    return ExtractionRequest(
        messages=(
            ChatMessage(role="system", content=build_system_prompt(current_date)),
            ChatMessage(role="user", content=build_user_prompt(email)),
        ),
    )
