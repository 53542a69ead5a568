"""Pure helpers for preparing OCR uploads and reading OCR provider payloads."""

import io
from typing import Any

MAX_IMAGE_DIMENSION = 3000  # Resize if either dimension exceeds this
OCR_IMAGE_PADDING = 50  # White padding around image to prevent edge truncation


def resize_image_bytes(
    image_bytes: bytes, max_dimension: int = MAX_IMAGE_DIMENSION, padding: int = OCR_IMAGE_PADDING
) -> bytes:
    """
    Resize image bytes if it exceeds max_dimension on either side.

    Also adds white padding around the image to prevent OCR edge truncation.

    Args:
        image_bytes: Image data as bytes
        max_dimension: Maximum allowed dimension (width or height)
        padding: White padding to add around image (pixels)

    Returns:
        Image bytes (JPEG format), resized if necessary, with padding added
    """
    from PIL import Image, ImageOps

    img = Image.open(io.BytesIO(image_bytes))

    # Bank-app screenshots from phones often carry an EXIF rotation
    img = ImageOps.exif_transpose(img)

    width, height = img.size
    if width > max_dimension or height > max_dimension:
        scale = max_dimension / max(width, height)
        img = img.resize((max(1, int(width * scale)), max(1, int(height * scale))), Image.Resampling.LANCZOS)

    if padding > 0:
        img = ImageOps.expand(img.convert("RGB"), border=padding, fill="white")

    buffer = io.BytesIO()
    img.convert("RGB").save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


def vision_error_message(payload: dict[str, Any]) -> str | None:
    """Return the API-level error message in a Vision annotate response, if any."""
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    responses = payload.get("responses") or [{}]
    first = responses[0] if isinstance(responses[0], dict) else {}
    error = first.get("error")
    if isinstance(error, dict):
        return str(error.get("message", "unknown error"))
    return None


def vision_response_text(payload: dict[str, Any]) -> str:
    """
    Read text from a Vision annotate response.

    Prefers the document-level annotation (better for receipts) and falls
    back to the first plain text annotation. Returns "" when neither exists.
    """
    responses = payload.get("responses") or [{}]
    first = responses[0] if isinstance(responses[0], dict) else {}
    full_text = (first.get("fullTextAnnotation") or {}).get("text")
    if full_text:
        return str(full_text)
    annotations = first.get("textAnnotations") or []
    if annotations and annotations[0].get("description"):
        return str(annotations[0]["description"])
    return ""


def ocrspace_response_text(payload: dict[str, Any]) -> str:
    """Read text from an OCR.Space parse response; returns "" when nothing was parsed."""
    results = payload.get("ParsedResults") or []
    if results and results[0].get("ParsedText"):
        return str(results[0]["ParsedText"])
    return ""


def ocrspace_error_message(payload: dict[str, Any]) -> str | None:
    """Return the processing error reported by OCR.Space, if any."""
    if not payload.get("IsErroredOnProcessing"):
        return None
    message = payload.get("ErrorMessage")
    if isinstance(message, list):
        return "; ".join(str(m) for m in message)
    return str(message or "unknown error")
