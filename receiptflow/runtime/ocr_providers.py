"""OCR provider clients: Google Vision document text detection and OCR.Space."""

from __future__ import annotations

import base64
import time
from typing import Any, Protocol

import httpx
from PIL import Image, UnidentifiedImageError

from receiptflow.domain.errors import ConfigurationError, InvalidImage, NoTextDetected, OCRServiceUnavailable
from receiptflow.receipt.ocr_helpers import (
    ocrspace_error_message,
    ocrspace_response_text,
    resize_image_bytes,
    vision_error_message,
    vision_response_text,
)
from receiptflow.runtime.logging import get_logger
from receiptflow.runtime.settings import Settings, get_settings

logger = get_logger(__name__)

GOOGLE_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
OCRSPACE_URL = "https://api.ocr.space/parse/image"


class OCRProvider(Protocol):
    """Turns stored image bytes into raw receipt text."""

    name: str

    def extract_text(self, image_bytes: bytes) -> str: ...


def _post(
    client: httpx.Client | None, url: str, *, timeout: float, provider: str, **kwargs: Any
) -> dict[str, Any]:
    start_time = time.time()
    try:
        if client is not None:
            response = client.post(url, timeout=timeout, **kwargs)
        else:
            response = httpx.post(url, timeout=timeout, **kwargs)
    except httpx.RequestError as e:
        logger.error("Failed to connect to %s: %s", provider, e)
        raise OCRServiceUnavailable(f"Failed to connect to {provider}: {e}") from e
    logger.info("%s returned in %.2f seconds", provider, time.time() - start_time)

    try:
        payload = response.json()
    except ValueError:
        payload = {}

    if response.status_code != 200:
        message = vision_error_message(payload) if isinstance(payload, dict) else None
        logger.error("%s error: %s", provider, response.status_code)
        raise OCRServiceUnavailable(f"{provider} error {response.status_code}: {message or response.text[:200]}")
    if not isinstance(payload, dict):
        raise OCRServiceUnavailable(f"Invalid response from {provider}")
    return payload


def _prepare_image(image_bytes: bytes) -> bytes:
    """Resize and pad an upload; raises InvalidImage when the bytes are not a decodable image."""
    try:
        return resize_image_bytes(image_bytes)
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        logger.warning("Rejected upload that is not a readable image: %s", e)
        raise InvalidImage("Uploaded file is not a readable image") from e


class GoogleVisionProvider:
    """Full-document text detection."""

    name = "google"

    def __init__(self, api_key: str | None, *, timeout: float = 60.0, client: httpx.Client | None = None) -> None:
        if not api_key:
            raise ConfigurationError("GOOGLE_VISION_API_KEY not configured")
        self._api_key = api_key
        self.timeout = timeout
        self._client = client

    def extract_text(self, image_bytes: bytes) -> str:
        content = base64.b64encode(_prepare_image(image_bytes)).decode("ascii")
        request = {
            "requests": [
                {
                    "image": {"content": content},
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION"}],
                }
            ]
        }
        payload = _post(
            self._client,
            GOOGLE_VISION_URL,
            params={"key": self._api_key},
            json=request,
            timeout=self.timeout,
            provider="Google Vision",
        )

        error = vision_error_message(payload)
        if error:
            raise OCRServiceUnavailable(f"Google Vision API error: {error}")

        text = vision_response_text(payload)
        if not text.strip():
            raise NoTextDetected("No text detected in image")
        return text


class OCRSpaceProvider:
    """Lighter-weight OCR service."""

    name = "ocrspace"

    def __init__(self, api_key: str | None, *, timeout: float = 60.0, client: httpx.Client | None = None) -> None:
        if not api_key:
            raise ConfigurationError("OCRSPACE_API_KEY not configured")
        self._api_key = api_key
        self.timeout = timeout
        self._client = client

    def extract_text(self, image_bytes: bytes) -> str:
        payload = _post(
            self._client,
            OCRSPACE_URL,
            data={"apikey": self._api_key, "language": "eng"},
            files={"file": ("receipt.jpg", _prepare_image(image_bytes), "image/jpeg")},
            timeout=self.timeout,
            provider="OCR.Space",
        )

        error = ocrspace_error_message(payload)
        if error:
            raise OCRServiceUnavailable(f"OCR.Space error: {error}")

        text = ocrspace_response_text(payload)
        if not text.strip():
            raise NoTextDetected("No text detected in image")
        return text


def create_ocr_provider(
    settings: Settings | None = None,
    *,
    provider: str | None = None,
    client: httpx.Client | None = None,
) -> OCRProvider:
    """Build the configured OCR provider; raises ConfigurationError for unknown names or missing keys."""
    settings = settings or get_settings()
    name = (provider or settings.ocr_provider).strip().lower()
    logger.debug("Using OCR provider: %s", name)

    if name == "google":
        return GoogleVisionProvider(settings.google_vision_api_key, timeout=settings.ocr_timeout, client=client)
    if name == "ocrspace":
        return OCRSpaceProvider(settings.ocrspace_api_key, timeout=settings.ocr_timeout, client=client)
    raise ConfigurationError(f"Invalid OCR provider configured: {name!r}")
