"""Configuration loading for mail-cal.

Reads settings from environment variables (with .env support via python-dotenv)
and validates that all required values are present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        gemini_api_key: API key for Google Gemini.
        target_address: Mailbox address that users forward emails to.  Only
            unread messages sent to this address are processed.
        assistant_name: Display name used on replies.
        gemini_model: Gemini model identifier.
        poll_interval_seconds: Delay between passes in ``watch`` mode.
        log_level: Logging level (default ``"INFO"``).
        gmail_credentials_path: OAuth client secrets file for the Gmail API.
        gmail_token_path: Cached OAuth token file for the Gmail API.
    """

    gemini_api_key: str
    target_address: str
    assistant_name: str = "Calendar Assistant"
    gemini_model: str = "gemini-2.0-flash"
    poll_interval_seconds: int = 60
    log_level: str = "INFO"
    gmail_credentials_path: Path = Path("credentials.json")
    gmail_token_path: Path = Path("token.json")

    def __repr__(self) -> str:
        return (
            f"Settings(gemini_api_key='***', "
            f"target_address={self.target_address!r}, "
            f"assistant_name={self.assistant_name!r}, "
            f"gemini_model={self.gemini_model!r}, "
            f"poll_interval_seconds={self.poll_interval_seconds!r}, "
            f"log_level={self.log_level!r})"
        )


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the project root
    is picked up automatically.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If any required environment variable is missing,
            empty, or whitespace-only (the error message names **all**
            missing variables), or if ``POLL_INTERVAL_SECONDS`` is not a
            positive integer.
    """
    load_dotenv()

    required = {
        "GEMINI_API_KEY": "gemini_api_key",
        "TARGET_ADDRESS": "target_address",
    }

    values: dict[str, object] = {}
    missing: list[str] = []

    for env_var, field_name in required.items():
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            missing.append(env_var)
        else:
            values[field_name] = raw.strip()

    if missing:
        names = ", ".join(missing)
        raise ConfigError(f"Missing required environment variables: {names}")

    # Optional settings with defaults handled by the dataclass.
    optional = {
        "ASSISTANT_NAME": "assistant_name",
        "GEMINI_MODEL": "gemini_model",
        "LOG_LEVEL": "log_level",
    }
    for env_var, field_name in optional.items():
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = raw

    for env_var, field_name in (
        ("GMAIL_CREDENTIALS_PATH", "gmail_credentials_path"),
        ("GMAIL_TOKEN_PATH", "gmail_token_path"),
    ):
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = Path(raw)

    interval = os.environ.get("POLL_INTERVAL_SECONDS", "").strip()
    if interval:
        values["poll_interval_seconds"] = _parse_interval(interval)

    return Settings(**values)  # type: ignore[arg-type]


def _parse_interval(raw: str) -> int:
    """Parse ``POLL_INTERVAL_SECONDS`` into a positive integer."""
    try:
        seconds = int(raw)
    except ValueError as exc:
        raise ConfigError(
            f"POLL_INTERVAL_SECONDS must be an integer, got {raw!r}"
        ) from exc
    if seconds <= 0:
        raise ConfigError(f"POLL_INTERVAL_SECONDS must be positive, got {seconds}")
    return seconds
