"""Validation of the extraction model's JSON response.

:func:`validate_extraction` is the only gate between raw model text and the
rest of the pipeline.  It rejects anything that is not a JSON object with the
three required keys, checks the timestamps against the iCalendar pattern the
prompt advertises, and normalizes the result into an
:class:`~mail_cal.models.extraction.EventRecord`.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mail_cal.exceptions import ExtractionError, ExtractionErrorKind
from mail_cal.formatting import parse_timestamp
from mail_cal.models.extraction import EventRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("event_title", "datetime_start", "datetime_end")
TIMESTAMP_FIELDS: tuple[str, ...] = ("datetime_start", "datetime_end")
OPTIONAL_FIELDS: tuple[str, ...] = ("location",)


def validate_extraction(raw_model_text: str) -> EventRecord:
    """Parse and validate the model's response text.

    Args:
        raw_model_text: The text returned by the model.  It must be a bare
            JSON object; markdown fences or surrounding prose are rejected.

    Returns:
        The normalized :class:`EventRecord`.  ``location`` defaults to
        ``""`` when absent or ``null``.

    Raises:
        ExtractionError: With kind ``MALFORMED_JSON`` if the text is not a
            JSON object, ``MISSING_FIELD`` if a required key is absent,
            ``null`` or blank, ``INVALID_FIELD_TYPE`` if a value is not a
            string, or ``INVALID_TIMESTAMP_FORMAT`` if a timestamp does not
            follow ``YYYYMMDDTHHMMSS[Z]``.
    """
    data = _parse_json_object(raw_model_text)

    values: dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        value = _string_field(data, name, raw_model_text)
        if not value:
            raise ExtractionError(
                ExtractionErrorKind.MISSING_FIELD,
                f"Missing required field: {name}",
                field=name,
                raw_response=raw_model_text,
            )
        values[name] = value

    for name in TIMESTAMP_FIELDS:
        try:
            parse_timestamp(values[name])
        except ValueError as exc:
            raise ExtractionError(
                ExtractionErrorKind.INVALID_TIMESTAMP_FORMAT,
                f"Field {name} is not a YYYYMMDDTHHMMSS[Z] timestamp: "
                f"{values[name]!r}",
                field=name,
                raw_response=raw_model_text,
            ) from exc

    location = _string_field(data, "location", raw_model_text)

    event = EventRecord(
        title=values["event_title"],
        start_timestamp=values["datetime_start"],
        end_timestamp=values["datetime_end"],
        location=location,
    )

    unknown = sorted(set(data) - set(REQUIRED_FIELDS) - set(OPTIONAL_FIELDS))
    if unknown:
        logger.debug("Ignoring unexpected keys in model response: %s", unknown)

    return event


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _parse_json_object(raw_text: str) -> dict[str, Any]:
    """Decode *raw_text* and require a top-level JSON object."""
    try:
        data = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ExtractionError(
            ExtractionErrorKind.MALFORMED_JSON,
            f"Invalid JSON: {exc}",
            raw_response=raw_text if isinstance(raw_text, str) else "",
        ) from exc

    if not isinstance(data, dict):
        raise ExtractionError(
            ExtractionErrorKind.MALFORMED_JSON,
            f"Expected a JSON object, got {type(data).__name__}",
            raw_response=raw_text,
        )
    return data


def _string_field(data: dict[str, Any], name: str, raw_text: str) -> str:
    """Return ``data[name]`` stripped, ``""`` for absent or ``null`` values.

    CRLF and lone CR line breaks become ``\\n`` so invite text round-trips
    exactly through :func:`mail_cal.ics.unescape_text`.

    Raises:
        ExtractionError: If the value is present but not a string.
    """
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ExtractionError(
            ExtractionErrorKind.INVALID_FIELD_TYPE,
            f"Field {name} must be a string, got {type(value).__name__}",
            field=name,
            raw_response=raw_text,
        )
    return value.replace("\r\n", "\n").replace("\r", "\n").strip()
