"""Custom exceptions for the mail-cal extraction and invite pipeline.

These exceptions separate model-quality problems (the LLM returned something
unusable) from internal contract violations (the invite generator was handed
an event it cannot render) and from failures of the model service itself.
"""

from __future__ import annotations

from enum import Enum


class ExtractionErrorKind(str, Enum):
    """Reasons a model response can be rejected by the validator."""

    MALFORMED_JSON = "malformed_json"
    MISSING_FIELD = "missing_field"
    INVALID_FIELD_TYPE = "invalid_field_type"
    INVALID_TIMESTAMP_FORMAT = "invalid_timestamp_format"


class InviteErrorKind(str, Enum):
    """Reasons the invite generator can refuse an event."""

    MISSING_REQUIRED_FIELD = "missing_required_field"


class ExtractionError(Exception):
    """Raised when the LLM response cannot be turned into an event.

    Covers JSON parse failures, missing required keys, wrongly-typed values
    and timestamps that do not follow the ``YYYYMMDDTHHMMSS[Z]`` pattern.
    The pipeline does not retry on this error; the message is left unread.

    Attributes:
        kind: The :class:`ExtractionErrorKind` describing the failure.
        field: Name of the offending JSON key, or ``None`` when the failure
            is not tied to a single key.
        raw_response: The raw LLM output that failed validation.
    """

    def __init__(
        self,
        kind: ExtractionErrorKind,
        message: str,
        field: str | None = None,
        raw_response: str = "",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field
        self.raw_response = raw_response


class InviteError(Exception):
    """Raised when an event cannot be rendered as an invite document.

    The validator already guarantees the required fields, so this signals a
    logic error rather than a bad model response.

    Attributes:
        kind: The :class:`InviteErrorKind` describing the failure.
        field: Name of the empty event attribute.
    """

    def __init__(
        self,
        kind: InviteErrorKind,
        message: str,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field


class ModelClientError(Exception):
    """Raised when the extraction model could not be called at all.

    This covers API connectivity errors, authentication failures and quota
    exhaustion.  Unlike :class:`ExtractionError`, nothing was returned to
    validate.
    """
