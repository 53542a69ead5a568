from __future__ import annotations

import io
import json

import httpx
import pytest
from PIL import Image

from receiptflow.domain.errors import ConfigurationError, InvalidImage, NoTextDetected, OCRServiceUnavailable
from receiptflow.receipt.ocr_helpers import resize_image_bytes, vision_response_text
from receiptflow.runtime.ocr_providers import (
    GoogleVisionProvider,
    OCRSpaceProvider,
    create_ocr_provider,
)
from receiptflow.runtime.settings import get_settings


def _png_bytes(width: int = 40, height: int = 20) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_resize_image_bytes_limits_dimension_and_pads() -> None:
    resized = resize_image_bytes(_png_bytes(400, 200), max_dimension=100, padding=10)

    img = Image.open(io.BytesIO(resized))
    assert img.format == "JPEG"
    assert img.size == (120, 70)


def test_vision_response_text_prefers_full_text_annotation() -> None:
    payload = {
        "responses": [
            {
                "fullTextAnnotation": {"text": "WALMART\nTOTAL $45.67"},
                "textAnnotations": [{"description": "WALMART"}],
            }
        ]
    }
    assert vision_response_text(payload) == "WALMART\nTOTAL $45.67"
    assert vision_response_text({"responses": [{"textAnnotations": [{"description": "WALMART"}]}]}) == "WALMART"
    assert vision_response_text({"responses": [{}]}) == ""


def test_google_vision_requests_document_text_detection() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"responses": [{"fullTextAnnotation": {"text": "Corner Shop\n$9.99"}}]})

    provider = GoogleVisionProvider("vision-key", client=_mock_client(handler))

    assert provider.extract_text(_png_bytes()) == "Corner Shop\n$9.99"
    body = json.loads(seen[0].content)
    assert body["requests"][0]["features"] == [{"type": "DOCUMENT_TEXT_DETECTION"}]
    assert seen[0].url.params["key"] == "vision-key"


def test_google_vision_empty_text_raises_no_text_detected() -> None:
    provider = GoogleVisionProvider(
        "vision-key", client=_mock_client(lambda request: httpx.Response(200, json={"responses": [{}]}))
    )

    with pytest.raises(NoTextDetected):
        provider.extract_text(_png_bytes())


def test_google_vision_api_error_raises_unavailable() -> None:
    provider = GoogleVisionProvider(
        "vision-key",
        client=_mock_client(lambda request: httpx.Response(403, json={"error": {"message": "API key not valid"}})),
    )

    with pytest.raises(OCRServiceUnavailable, match="API key not valid"):
        provider.extract_text(_png_bytes())


def test_google_vision_connection_failure_raises_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = GoogleVisionProvider("vision-key", client=_mock_client(handler))

    with pytest.raises(OCRServiceUnavailable, match="Failed to connect"):
        provider.extract_text(_png_bytes())


def test_ocrspace_returns_parsed_text() -> None:
    provider = OCRSpaceProvider(
        "space-key",
        client=_mock_client(
            lambda request: httpx.Response(200, json={"ParsedResults": [{"ParsedText": "Starbucks\n$5.75"}]})
        ),
    )

    assert provider.extract_text(_png_bytes()) == "Starbucks\n$5.75"


def test_ocrspace_processing_error_raises_unavailable() -> None:
    provider = OCRSpaceProvider(
        "space-key",
        client=_mock_client(
            lambda request: httpx.Response(
                200, json={"IsErroredOnProcessing": True, "ErrorMessage": ["File failed validation"]}
            )
        ),
    )

    with pytest.raises(OCRServiceUnavailable, match="File failed validation"):
        provider.extract_text(_png_bytes())


def test_create_ocr_provider_uses_settings(monkeypatch) -> None:
    monkeypatch.setenv("OCR_PROVIDER", "ocrspace")
    monkeypatch.setenv("OCRSPACE_API_KEY", "space-key")

    assert create_ocr_provider(get_settings()).name == "ocrspace"


def test_create_ocr_provider_requires_key() -> None:
    with pytest.raises(ConfigurationError, match="GOOGLE_VISION_API_KEY"):
        create_ocr_provider(get_settings())


def test_create_ocr_provider_rejects_unknown_name() -> None:
    with pytest.raises(ConfigurationError, match="Invalid OCR provider"):
        create_ocr_provider(get_settings(), provider="tesseract")


@pytest.mark.parametrize("provider_cls", [GoogleVisionProvider, OCRSpaceProvider])
def test_undecodable_upload_is_rejected_before_any_request(provider_cls) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    provider = provider_cls("key", client=_mock_client(handler))

    with pytest.raises(InvalidImage, match="not a readable image"):
        provider.extract_text(b"%PDF-1.4 definitely not pixels")

    assert seen == []
