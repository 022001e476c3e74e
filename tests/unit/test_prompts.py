"""Unit tests for the prompt builders.

Covers ``build_system_prompt``, ``build_user_prompt`` and
``build_extraction_request`` from :mod:`mail_cal.prompts`.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from mail_cal.models.email import EmailRecord
from mail_cal.models.extraction import ChatMessage, ExtractionRequest
from mail_cal.prompts import (
    build_extraction_request,
    build_system_prompt,
    build_user_prompt,
)

_NOW = datetime(2025, 3, 14, 13, 5, 0)


class TestBuildSystemPrompt:
    """The system instruction pins the output contract."""

    def test_contains_all_json_keys(self) -> None:
        prompt = build_system_prompt("Friday, 14th March 2025")

        for key in ("event_title", "datetime_start", "datetime_end", "location"):
            assert f'"{key}"' in prompt, f"Expected key '{key}' in system prompt"

    def test_describes_timestamp_pattern(self) -> None:
        prompt = build_system_prompt("Friday, 14th March 2025")

        assert "YYYYMMDDTHHMMSS" in prompt
        assert "Z" in prompt
        assert "UTC" in prompt

    def test_forbids_markdown_and_prose(self) -> None:
        prompt_lower = build_system_prompt("Friday, 14th March 2025").lower()

        assert "raw json" in prompt_lower
        assert "markdown" in prompt_lower
        assert "backticks" in prompt_lower

    def test_embeds_current_date(self) -> None:
        prompt = build_system_prompt("Friday, 14th March 2025")

        assert "Today is Friday, 14th March 2025." in prompt
        assert "relative" in prompt.lower()


class TestBuildUserPrompt:
    """The user message labels subject, sender and body."""

    def test_labels_all_fields(self, sample_email: EmailRecord) -> None:
        prompt = build_user_prompt(sample_email)

        assert f"Email Subject: {sample_email.subject}" in prompt
        assert f"Email From: {sample_email.sender_address}" in prompt
        assert sample_email.body in prompt
        assert prompt.index("Email Subject") < prompt.index("Email From")
        assert prompt.index("Email From") < prompt.index("Email Body")

    def test_empty_subject_and_body_pass_through(self) -> None:
        email = EmailRecord(subject="", body="", sender_address="bob@example.com", thread_id="t")

        prompt = build_user_prompt(email)

        assert "Email Subject: \n" in prompt
        assert prompt.endswith("Email Body:\n")


class TestBuildExtractionRequest:
    """build_extraction_request bundles both messages with low temperature."""

    def test_roles_and_order(self, sample_email: EmailRecord) -> None:
        request = build_extraction_request(sample_email, _NOW)

        assert [m.role for m in request.messages] == ["system", "user"]
        assert request.system_prompt == request.messages[0].content
        assert request.user_prompt == request.messages[1].content

    def test_long_current_date_in_system_prompt(self, sample_email: EmailRecord) -> None:
        request = build_extraction_request(sample_email, _NOW)

        assert "Friday, 14th March 2025" in request.system_prompt

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (datetime(2025, 3, 1, 8, 0), "Saturday, 1st March 2025"),
            (datetime(2025, 3, 11, 8, 0), "Tuesday, 11th March 2025"),
            (datetime(2025, 3, 22, 8, 0), "Saturday, 22nd March 2025"),
        ],
    )
    def test_current_date_suffixes(
        self, sample_email: EmailRecord, now: datetime, expected: str
    ) -> None:
        assert expected in build_extraction_request(sample_email, now).system_prompt

    def test_low_temperature_json_output(self, sample_email: EmailRecord) -> None:
        request = build_extraction_request(sample_email, _NOW)

        assert request.temperature <= 0.2
        assert request.response_mime_type == "application/json"

    def test_deterministic(self, sample_email: EmailRecord) -> None:
        assert build_extraction_request(sample_email, _NOW) == build_extraction_request(
            sample_email, _NOW
        )

    def test_request_is_immutable(self, sample_email: EmailRecord) -> None:
        request = build_extraction_request(sample_email, _NOW)

        with pytest.raises(ValidationError):
            request.temperature = 1.0  # type: ignore[misc]


class TestExtractionRequestModel:
    """ExtractionRequest only accepts a system message followed by a user one."""

    def test_wrong_order_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionRequest(
                messages=(
                    ChatMessage(role="user", content="u"),
                    ChatMessage(role="system", content="s"),
                )
            )

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChatMessage(role="assistant", content="x")  # type: ignore[arg-type]
