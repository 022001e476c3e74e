"""Shared fixtures for mail-cal tests."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from mail_cal.models.email import EmailRecord
from mail_cal.models.extraction import EventRecord

_MAIL_CAL_ENV_VARS = (
    "GEMINI_API_KEY",
    "TARGET_ADDRESS",
    "ASSISTANT_NAME",
    "GEMINI_MODEL",
    "POLL_INTERVAL_SECONDS",
    "LOG_LEVEL",
    "GMAIL_CREDENTIALS_PATH",
    "GMAIL_TOKEN_PATH",
)


@pytest.fixture()
def monkeypatch_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required environment variables to valid defaults.

    Also patches ``load_dotenv`` so that a real ``.env`` file on disk does not
    override the test values, and clears the optional variables.

    Returns the dict of variables so tests can inspect or override values.
    """
    monkeypatch.setattr("mail_cal.config.load_dotenv", lambda *_a, **_kw: None)
    for key in _MAIL_CAL_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    env_vars = {
        "GEMINI_API_KEY": "test-gemini-key-12345",
        "TARGET_ADDRESS": "makecalendarevent@example.com",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all mail-cal environment variables.

    Patches ``load_dotenv`` so a real ``.env`` file cannot re-inject values
    that the test explicitly removed.
    """
    monkeypatch.setattr("mail_cal.config.load_dotenv", lambda *_a, **_kw: None)
    for key in _MAIL_CAL_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def sample_email() -> EmailRecord:
    """A forwarded email describing a single meeting."""
    return EmailRecord(
        subject="Team Sync on Friday",
        body="Hi all,\nLet's meet Friday 14 March at 9am in Room 5 for an hour.\n",
        sender_address="alice@example.com",
        thread_id="thread-1",
        message_id="msg-1",
        rfc822_message_id="<abc123@mail.example.com>",
    )


@pytest.fixture()
def sample_event() -> EventRecord:
    """The event expected from :func:`sample_email`."""
    return EventRecord(
        title="Team Sync",
        start_timestamp="20250314T090000",
        end_timestamp="20250314T100000",
        location="Room 5",
    )


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Generator[None, None, None]:
    """Reset the root logger after each test to prevent handler leaks."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
