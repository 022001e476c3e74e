"""Unit tests for invite generation.

Covers :func:`mail_cal.ics.escape_text` / :func:`~mail_cal.ics.unescape_text`,
:func:`~mail_cal.ics.build_invite` document shape and defensive checks, and
:func:`~mail_cal.ics.build_reply_body`.
"""

from __future__ import annotations

import json

import pytest

from mail_cal.exceptions import InviteError, InviteErrorKind
from mail_cal.extraction import validate_extraction
from mail_cal.ics import build_invite, build_reply_body, escape_text, unescape_text
from mail_cal.models.extraction import EventRecord
from mail_cal.models.invite import INVITE_FILENAME, INVITE_MIME_TYPE

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _event(**overrides: str) -> EventRecord:
    defaults = {
        "title": "Team Sync",
        "start_timestamp": "20250314T090000",
        "end_timestamp": "20250314T100000",
        "location": "Room 5",
    }
    defaults.update(overrides)
    return EventRecord(**defaults)


def _property(content: str, name: str) -> str | None:
    """Return the raw value of the first *name* property line, if any."""
    for line in content.split("\r\n"):
        if line.startswith(f"{name}:"):
            return line[len(name) + 1 :]
    return None


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------


class TestEscapeText:
    """Reserved characters are escaped in the right order."""

    @pytest.mark.parametrize(
        ("raw", "escaped"),
        [
            ("Room 5", "Room 5"),
            ("a,b", "a\\,b"),
            ("a;b", "a\\;b"),
            ("a\\b", "a\\\\b"),
            ("line1\nline2", "line1\\nline2"),
            ("line1\r\nline2", "line1\\nline2"),
            ("", ""),
        ],
    )
    def test_escape_examples(self, raw: str, escaped: str) -> None:
        assert escape_text(raw) == escaped

    def test_newline_escape_not_double_escaped(self) -> None:
        """The backslash introduced for a newline is not itself escaped."""
        assert escape_text("a\nb") == "a\\nb"
        assert "\\\\n" not in escape_text("a\nb")

    def test_literal_backslash_n_is_distinguished_from_newline(self) -> None:
        assert escape_text("a\\nb") == "a\\\\nb"
        assert escape_text("a\\nb") != escape_text("a\nb")

    @pytest.mark.parametrize(
        "text",
        [
            "Lunch; then coffee, maybe",
            "C:\\Users\\alice",
            "Room 5\nBuilding A",
            "ends with backslash \\",
            "\\n is not a newline",
            "mix \\;,\n\\\\,,;;\n\n",
            "plain text",
            "Café, Zürich",
        ],
    )
    def test_round_trip(self, text: str) -> None:
        assert unescape_text(escape_text(text)) == text

    def test_unknown_escape_kept(self) -> None:
        assert unescape_text("a\\xb") == "a\\xb"


# ---------------------------------------------------------------------------
# Document shape
# ---------------------------------------------------------------------------


class TestBuildInvite:
    """The VCALENDAR document has the exact expected shape."""

    def test_exact_document(self) -> None:
        invite = build_invite(_event())

        assert invite.content == (
            "BEGIN:VCALENDAR\r\n"
            "VERSION:2.0\r\n"
            "BEGIN:VEVENT\r\n"
            "SUMMARY:Team Sync\r\n"
            "DTSTART:20250314T090000\r\n"
            "DTEND:20250314T100000\r\n"
            "LOCATION:Room 5\r\n"
            "END:VEVENT\r\n"
            "END:VCALENDAR\r\n"
        )

    def test_location_line_omitted_when_empty(self) -> None:
        invite = build_invite(_event(location=""))

        assert "LOCATION" not in invite.content
        assert invite.content.split("\r\n")[5:8] == [
            "DTEND:20250314T100000",
            "END:VEVENT",
            "END:VCALENDAR",
        ]

    def test_validated_response_without_location_omits_line(self) -> None:
        event = validate_extraction(
            '{"event_title": "Team Sync", "datetime_start": "20250314T090000",'
            ' "datetime_end": "20250314T100000"}'
        )

        invite = build_invite(event)

        assert event.location == ""
        assert "LOCATION:" not in invite.content

    def test_crlf_line_endings_only(self) -> None:
        content = build_invite(_event(title="a\nb", location="c\rd")).content

        assert content.endswith("\r\n")
        assert "\n" not in content.replace("\r\n", "")
        assert "\r" not in content.replace("\r\n", "")

    def test_title_and_location_escaped(self) -> None:
        content = build_invite(
            _event(title="Review; Q1, Q2", location="Room 5\nBuilding A")
        ).content

        assert _property(content, "SUMMARY") == "Review\\; Q1\\, Q2"
        assert _property(content, "LOCATION") == "Room 5\\nBuilding A"

    @pytest.mark.parametrize(
        "text",
        ["Lunch; then coffee, maybe", "C:\\temp\\new", "two\nlines", ";,\\\n"],
    )
    def test_round_trip_through_document(self, text: str) -> None:
        content = build_invite(_event(title=text, location=text)).content

        assert unescape_text(_property(content, "SUMMARY") or "") == text
        assert unescape_text(_property(content, "LOCATION") or "") == text

    @pytest.mark.parametrize(
        ("raw_text", "normalized"),
        [
            ("a\r\nb", "a\nb"),
            ("Room 5\r\nBuilding A", "Room 5\nBuilding A"),
            ("one\rtwo; three, four\\", "one\ntwo; three, four\\"),
        ],
    )
    def test_crlf_text_round_trips_through_validator(
        self, raw_text: str, normalized: str
    ) -> None:
        """Line breaks are normalized once, so the document decodes to the record."""
        event = validate_extraction(
            json.dumps(
                {
                    "event_title": raw_text,
                    "datetime_start": "20250314T090000",
                    "datetime_end": "20250314T100000",
                    "location": raw_text,
                }
            )
        )

        content = build_invite(event).content

        assert event.title == event.location == normalized
        assert unescape_text(_property(content, "SUMMARY") or "") == event.title
        assert unescape_text(_property(content, "LOCATION") or "") == event.location

    def test_timestamps_written_verbatim(self) -> None:
        content = build_invite(
            _event(start_timestamp="20250314T090000Z", end_timestamp="20250314T100000Z")
        ).content

        assert _property(content, "DTSTART") == "20250314T090000Z"
        assert _property(content, "DTEND") == "20250314T100000Z"

    def test_idempotent(self) -> None:
        event = _event()

        first = build_invite(event)
        second = build_invite(event)

        assert first == second
        assert first.to_bytes() == second.to_bytes()

    def test_attachment_metadata(self) -> None:
        invite = build_invite(_event())

        assert invite.filename == INVITE_FILENAME == "invite.ics"
        assert invite.mime_type == INVITE_MIME_TYPE
        assert invite.mime_type == "text/calendar; charset=UTF-8; method=REQUEST"

    def test_to_bytes_is_utf8(self) -> None:
        invite = build_invite(_event(title="Café", location="Zürich"))

        assert invite.to_bytes() == invite.content.encode("utf-8")
        assert "SUMMARY:Café".encode() in invite.to_bytes()


class TestBuildInviteMissingFields:
    """build_invite re-checks required fields independently."""

    @pytest.mark.parametrize(
        "field_name", ["title", "start_timestamp", "end_timestamp"]
    )
    def test_empty_required_field_raises(self, field_name: str) -> None:
        event = _event(**{field_name: ""})

        with pytest.raises(InviteError) as exc_info:
            build_invite(event)

        assert exc_info.value.kind is InviteErrorKind.MISSING_REQUIRED_FIELD
        assert exc_info.value.field == field_name

    def test_invite_error_is_not_extraction_error(self) -> None:
        from mail_cal.exceptions import ExtractionError

        with pytest.raises(InviteError) as exc_info:
            build_invite(_event(title=""))

        assert not isinstance(exc_info.value, ExtractionError)


# ---------------------------------------------------------------------------
# Reply body
# ---------------------------------------------------------------------------


class TestBuildReplyBody:
    """The reply summarises the event in human-friendly terms."""

    def test_reply_contains_event_details(self) -> None:
        body = build_reply_body(_event())

        assert "Event: Team Sync" in body
        assert "Start: 14th March 2025 at 09:00" in body
        assert "End: 14th March 2025 at 10:00" in body
        assert "Location: Room 5" in body
        assert "invite.ics" in body

    def test_reply_omits_location_when_empty(self) -> None:
        body = build_reply_body(_event(location=""))

        assert "Location" not in body

    def test_reply_marks_utc_times(self) -> None:
        body = build_reply_body(
            _event(start_timestamp="20250301T134500Z", end_timestamp="20250301T144500Z")
        )

        assert "Start: 1st March 2025 at 13:45 UTC" in body

    def test_reply_signed_with_assistant_name(self) -> None:
        body = build_reply_body(_event(), assistant_name="Cal Bot")

        assert body.rstrip().endswith("Cal Bot")

    def test_reply_title_not_escaped(self) -> None:
        body = build_reply_body(_event(title="Review; Q1, Q2"))

        assert "Event: Review; Q1, Q2" in body
