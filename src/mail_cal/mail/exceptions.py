"""Gmail API errors and the retry policy for mailbox calls.

Exception hierarchy::

    MailAPIError           (base for all Gmail API errors)
    +-- MailAuthError      (HTTP 401 or OAuth setup problems)
    +-- MailRateLimitError (HTTP 429, or 403 with a rate-limit reason)
    +-- MailNotFoundError  (HTTP 404, e.g. message deleted meanwhile)

Gmail reports quota exhaustion either as HTTP 429 or as HTTP 403 whose
error body lists ``rateLimitExceeded`` / ``userRateLimitExceeded``.  Both
are retried with backoff.  Other 403s (e.g. a missing scope) are not.
"""

from __future__ import annotations

import functools
import json
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------


class MailAPIError(Exception):
    """Base exception for Gmail API errors.

    Attributes:
        status_code: HTTP status code from the API, or ``None`` if the
            error did not originate from an HTTP response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MailAuthError(MailAPIError):
    """Raised when Gmail authentication fails (HTTP 401 or OAuth setup)."""

    def __init__(self, message: str = "Gmail authentication failed") -> None:
        super().__init__(message, status_code=401)


class MailRateLimitError(MailAPIError):
    """Raised when Gmail rejects a call for quota reasons (429 or 403)."""

    def __init__(
        self,
        message: str = "Gmail API rate limit exceeded",
        status_code: int = 429,
    ) -> None:
        super().__init__(message, status_code=status_code)


class MailNotFoundError(MailAPIError):
    """Raised when a message or thread no longer exists (HTTP 404)."""

    def __init__(self, message: str = "Gmail resource not found") -> None:
        super().__init__(message, status_code=404)


# ---------------------------------------------------------------------------
# HttpError classification
# ---------------------------------------------------------------------------

RATE_LIMIT_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded"})


def error_reasons(error: HttpError) -> set[str]:
    """Return the ``reason`` codes listed in a Gmail error response body.

    Gmail error bodies look like
    ``{"error": {"code": 403, "errors": [{"reason": "userRateLimitExceeded"}]}}``.
    Unparseable bodies yield an empty set.
    """
    try:
        body = json.loads(error.content)
    except (TypeError, ValueError):
        return set()
    details = body.get("error") if isinstance(body, dict) else None
    if not isinstance(details, dict):
        return set()
    return {
        item["reason"]
        for item in details.get("errors") or []
        if isinstance(item, dict) and "reason" in item
    }


def classify_http_error(error: HttpError) -> MailAPIError:
    """Map an ``HttpError`` from the Gmail API to a mail exception."""
    status = error.resp.status

    if status == 429:
        return MailRateLimitError(str(error))
    if status == 403 and error_reasons(error) & RATE_LIMIT_REASONS:
        return MailRateLimitError(str(error), status_code=403)
    if status == 401:
        return MailAuthError(str(error))
    if status == 404:
        return MailNotFoundError(str(error))
    return MailAPIError(str(error), status_code=status)


# ---------------------------------------------------------------------------
# Retry decorator
# ---------------------------------------------------------------------------

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BASE_DELAY = 1.0  # seconds


def with_retry(
    max_retries: int = _DEFAULT_MAX_RETRIES,
    base_delay: float = _DEFAULT_BASE_DELAY,
    idempotent: bool = True,
) -> Callable[[F], F]:
    """Decorator applying the Gmail retry policy to a client method.

    - Rate limits (see :func:`classify_http_error`) are retried with
      exponential backoff, up to *max_retries* times.  Gmail rejected the
      request, so this is safe even for sends.
    - HTTP 401 calls ``self._refresh_credentials()`` once and retries.
    - Network errors (``OSError``, including timeouts) are retried with
      backoff only when *idempotent* is true.  A timeout on a send may
      come after Gmail already accepted the message, so sending again
      would duplicate it.
    - Anything else is raised immediately as a :class:`MailAPIError`
      subclass.

    Args:
        max_retries: Maximum retries for rate-limit and network errors.
        base_delay: Initial backoff in seconds, doubled after each retry.
        idempotent: Whether repeating the call after an ambiguous network
            failure is harmless.

    Returns:
        A decorator that wraps the target method with the retry policy.
    """

    def decorator(func: F) -> F:
        name = func.__name__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            refreshed = False
            retries = 0

            while True:
                try:
                    return func(*args, **kwargs)

                except HttpError as exc:
                    error = classify_http_error(exc)
                    if isinstance(error, MailAuthError) and not refreshed:
                        refreshed = True
                        _refresh_instance(args[0] if args else None, name)
                        continue
                    if not isinstance(error, MailRateLimitError) or retries >= max_retries:
                        logger.error(
                            "Gmail %s failed (HTTP %s): %s", name, error.status_code, exc
                        )
                        raise error from exc
                    cause = f"rate limited (HTTP {error.status_code})"

                except OSError as exc:
                    if not idempotent:
                        logger.error("Network error during %s, not retrying: %s", name, exc)
                        raise MailAPIError(
                            f"Network error during {name} (not retried): {exc}"
                        ) from exc
                    if retries >= max_retries:
                        logger.error(
                            "Network error after %d retries: %s", max_retries, exc
                        )
                        raise MailAPIError(
                            f"Network error after {max_retries} retries: {exc}"
                        ) from exc
                    cause = f"network error ({exc})"

                delay = base_delay * (2**retries)
                retries += 1
                logger.warning(
                    "Gmail %s %s, retrying in %.1fs (%d/%d)",
                    name,
                    cause,
                    delay,
                    retries,
                    max_retries,
                )
                time.sleep(delay)

        return wrapper  # type: ignore[return-value]

    return decorator


def _refresh_instance(instance: object, name: str) -> None:
    """Call the client's ``_refresh_credentials`` hook after a 401."""
    refresh = getattr(instance, "_refresh_credentials", None)
    if not callable(refresh):
        logger.warning("Gmail %s got HTTP 401 and the client cannot refresh", name)
        return
    logger.warning("Gmail %s got HTTP 401, refreshing credentials", name)
    try:
        refresh()
    except Exception as exc:
        logger.error("Token refresh failed: %s", exc)
        raise MailAuthError(f"Token refresh failed: {exc}") from exc
