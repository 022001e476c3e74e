"""OAuth 2.0 authentication for the Gmail API.

Implements the Desktop application OAuth flow using Google's
``google-auth-oauthlib`` library, with token caching and refresh.

Usage::

    from mail_cal.mail.auth import get_gmail_credentials

    creds = get_gmail_credentials(
        credentials_path=Path("credentials.json"),
        token_path=Path("token.json"),
    )
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from mail_cal.mail.exceptions import MailAuthError

logger = logging.getLogger(__name__)

SCOPES: list[str] = ["https://www.googleapis.com/auth/gmail.modify"]
"""Read messages, send replies and clear the UNREAD label."""


def get_gmail_credentials(
    credentials_path: Path | str,
    token_path: Path | str,
) -> Credentials:
    """Obtain valid Gmail OAuth 2.0 credentials.

    1. **Cached token** -- load ``token_path`` and return if still valid.
    2. **Refresh** -- if the cached token is expired but has a refresh
       token, refresh it, save it and return.
    3. **Browser flow** -- otherwise run the ``InstalledAppFlow``
       local-server flow and save the new token.

    Args:
        credentials_path: OAuth client secrets file from Google Cloud
            Console.
        token_path: Where the cached user token is stored.  Created or
            updated automatically.

    Returns:
        Valid :class:`google.oauth2.credentials.Credentials` with the
        ``gmail.modify`` scope.

    Raises:
        MailAuthError: If a browser flow is needed but ``credentials_path``
            does not exist.
    """
    credentials_path = Path(credentials_path)
    token_path = Path(token_path)

    creds = _load_cached_token(token_path)

    if creds is not None and creds.valid:
        logger.info("Loaded valid cached token from %s", token_path)
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        logger.info("Cached token expired, attempting refresh")
        refreshed = _refresh_token(creds)
        if refreshed is not None:
            _save_token(refreshed, token_path)
            return refreshed
        logger.warning("Token refresh failed, falling back to browser flow")

    logger.info("Starting browser-based OAuth flow")
    creds = _run_browser_flow(credentials_path)
    _save_token(creds, token_path)
    return creds


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_cached_token(token_path: Path) -> Credentials | None:
    """Load credentials from *token_path*, or ``None`` if absent or unreadable."""
    if not token_path.exists():
        logger.info("No cached token found at %s", token_path)
        return None

    try:
        return Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except (json.JSONDecodeError, ValueError, KeyError) as exc:
        logger.warning("Failed to parse cached token at %s: %s", token_path, exc)
        return None


def _refresh_token(creds: Credentials) -> Credentials | None:
    """Refresh expired credentials, returning ``None`` on failure."""
    try:
        creds.refresh(Request())
    except Exception as exc:
        logger.warning("Token refresh failed: %s", exc)
        return None
    logger.info("Token refresh succeeded")
    return creds


def _run_browser_flow(credentials_path: Path) -> Credentials:
    """Authenticate through the browser with ``InstalledAppFlow``.

    Raises:
        MailAuthError: If the client secrets file is missing.
    """
    if not credentials_path.exists():
        msg = f"OAuth client secrets file not found: {credentials_path}"
        logger.error(msg)
        raise MailAuthError(msg)

    flow = InstalledAppFlow.from_client_secrets_file(
        str(credentials_path),
        scopes=SCOPES,
    )
    creds = flow.run_local_server(port=0)
    logger.info("Browser OAuth flow completed successfully")
    return creds


def _save_token(creds: Credentials, token_path: Path) -> None:
    """Write *creds* to *token_path*, creating parent directories."""
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.info("Token saved to %s", token_path)
