"""Pydantic models for LLM event extraction.

Defines the structured data types used around the Gemini extraction call:

- :class:`ChatMessage` / :class:`ExtractionRequest` -- the role-tagged prompt
  and sampling parameters handed to the model client.
- :class:`EventRecord` -- a single validated event, with timestamps kept as
  iCalendar ``YYYYMMDDTHHMMSS[Z]`` strings.
- :class:`EventResponseSchema` -- schema for Gemini's ``response_schema``
  parameter, mirroring the JSON keys the prompt asks for.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# ExtractionRequest -- prompt handed to the model client
# ---------------------------------------------------------------------------

DEFAULT_TEMPERATURE = 0.1


class ChatMessage(BaseModel):
    """One role-tagged message of the extraction prompt.

    Attributes:
        role: ``"system"`` for the fixed instruction, ``"user"`` for the
            email content.
        content: Message text.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user"]
    content: str


class ExtractionRequest(BaseModel):
    """A complete request for the extraction model.

    Attributes:
        messages: Exactly two messages, the system instruction followed by
            the user message.
        temperature: Sampling temperature.  Kept low so the same email
            yields the same event.
        response_mime_type: Output format requested from the model.
    """

    model_config = ConfigDict(frozen=True)

    messages: tuple[ChatMessage, ChatMessage]
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    response_mime_type: str = "application/json"

    @model_validator(mode="after")
    def _check_roles(self) -> ExtractionRequest:
        roles = [message.role for message in self.messages]
        if roles != ["system", "user"]:
            raise ValueError(f"Expected system then user message, got {roles}")
        return self

    @property
    def system_prompt(self) -> str:
        """Text of the system instruction."""
        return self.messages[0].content

    @property
    def user_prompt(self) -> str:
        """Text of the user message."""
        return self.messages[1].content


# ---------------------------------------------------------------------------
# EventRecord -- validated model output
# ---------------------------------------------------------------------------


class EventRecord(BaseModel):
    """A calendar event extracted from one email.

    Produced by :func:`~mail_cal.extraction.validate_extraction`; the
    timestamps have already been checked against the iCalendar pattern.
    ``end_timestamp`` is not required to be after ``start_timestamp``.

    Attributes:
        title: Event title, never empty.
        start_timestamp: ``YYYYMMDDTHHMMSS`` with an optional ``Z`` suffix.
        end_timestamp: Same format as ``start_timestamp``.
        location: Event location, ``""`` when unknown.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    start_timestamp: str
    end_timestamp: str
    location: str = ""


# ---------------------------------------------------------------------------
# EventResponseSchema -- schema for Gemini response_schema
# ---------------------------------------------------------------------------


class EventResponseSchema(BaseModel):
    """Schema passed to Gemini's ``response_schema`` parameter.

    Uses the wire key names from the system prompt.  The schema only steers
    the model; the response is still validated strictly afterwards.

    Attributes:
        event_title: Event title.
        datetime_start: Start timestamp, ``YYYYMMDDTHHMMSS[Z]``.
        datetime_end: End timestamp, ``YYYYMMDDTHHMMSS[Z]``.
        location: Location, or ``None`` if the email does not say.
    """

    event_title: str
    datetime_start: str
    datetime_end: str
    location: str | None = None
