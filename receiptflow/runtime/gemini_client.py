"""HTTP client for the Gemini generateContent API."""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

import httpx

from receiptflow.domain.errors import ConfigurationError, TransportError
from receiptflow.receipt.structuring import PromptTurn, SamplingParams
from receiptflow.runtime.logging import get_logger
from receiptflow.runtime.settings import Settings, get_settings

logger = get_logger(__name__)


def build_request_body(turns: Sequence[PromptTurn], params: SamplingParams) -> dict[str, Any]:
    """Render prompt turns and sampling parameters as a generateContent payload."""
    return {
        "contents": [{"role": turn.role, "parts": [{"text": turn.text}]} for turn in turns],
        "generationConfig": {
            "temperature": params.temperature,
            "topP": params.top_p,
            "maxOutputTokens": params.max_output_tokens,
        },
    }


def response_text(payload: dict[str, Any]) -> str:
    """Return the first candidate's text, or an empty string when the payload has none."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text.strip() if isinstance(text, str) else ""


class GeminiClient:
    """GenerationBackend backed by Gemini over HTTPS."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str,
        api_url: str,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured")
        self._api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings | None = None, client: httpx.Client | None = None) -> GeminiClient:
        settings = settings or get_settings()
        return cls(
            settings.gemini_api_key,
            model=settings.gemini_model,
            api_url=settings.gemini_api_url,
            client=client,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_url}/{self.model}:generateContent"

    def generate(self, turns: Sequence[PromptTurn], params: SamplingParams, *, timeout: float) -> str:
        """
        Send one generation request and return the generated text.

        Raises:
            TransportError: on connection failure, timeout, or a non-200 status.
        """
        body = build_request_body(turns, params)
        logger.debug("Calling Gemini model %s with %d turns", self.model, len(turns))

        start_time = time.time()
        try:
            if self._client is not None:
                response = self._client.post(
                    self.endpoint, params={"key": self._api_key}, json=body, timeout=timeout
                )
            else:
                response = httpx.post(self.endpoint, params={"key": self._api_key}, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            logger.warning("Gemini request timed out after %.1f seconds", timeout)
            raise TransportError(f"Gemini request timed out after {timeout:.1f}s") from e
        except httpx.RequestError as e:
            logger.error("Failed to connect to Gemini: %s", e)
            raise TransportError(f"Failed to connect to Gemini: {e}") from e

        logger.debug("Gemini returned in %.2f seconds", time.time() - start_time)

        if response.status_code != 200:
            logger.error("Gemini API error: %s", response.status_code)
            raise TransportError(f"Gemini API error: {response.status_code} {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError("Gemini API returned a non-JSON body") from e
        return response_text(payload)
