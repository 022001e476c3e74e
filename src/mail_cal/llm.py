"""Gemini model client for email event extraction.

Wraps the Google ``google-genai`` SDK behind the single capability the
pipeline needs: take an :class:`~mail_cal.models.extraction.ExtractionRequest`
and return the model's raw response text.  Parsing and validation happen in
:mod:`mail_cal.extraction`, not here.
"""

from __future__ import annotations

import logging

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from mail_cal.exceptions import ModelClientError
from mail_cal.models.extraction import EventResponseSchema, ExtractionRequest

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiClient:
    """Client for sending extraction requests to Google Gemini.

    Instances are callable, so ``GeminiClient(...)`` can be passed wherever
    the pipeline expects a ``Callable[[ExtractionRequest], str]``.

    Args:
        api_key: Google Gemini API key.
        model: Model identifier to use for generation.  Defaults to
            ``"gemini-2.0-flash"``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    def __call__(self, request: ExtractionRequest) -> str:
        return self.complete(request)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def complete(self, request: ExtractionRequest) -> str:
        """Send *request* to Gemini and return the raw response text.

        The system message becomes the system instruction and the user
        message the contents.  JSON output is requested with
        :class:`EventResponseSchema` as the response schema.

        Args:
            request: The prompt and sampling parameters.

        Returns:
            The raw text of the first candidate, or ``""`` if the model
            returned no text.

        Raises:
            ModelClientError: If the Gemini API is unreachable or returns
                an API-level error.  The call is not retried.
        """
        logger.debug("System prompt sent to Gemini:\n%s", request.system_prompt)
        logger.debug("User prompt sent to Gemini:\n%s", request.user_prompt)

        config = genai_types.GenerateContentConfig(
            system_instruction=request.system_prompt,
            temperature=request.temperature,
            response_mime_type=request.response_mime_type,
            response_schema=EventResponseSchema,
        )

        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=request.user_prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            logger.error("Gemini API error: %s", exc)
            raise ModelClientError(f"Gemini API call failed: {exc}") from exc

        raw_text = response.text or ""
        logger.debug("Raw Gemini response:\n%s", raw_text)
        return raw_text
