"""FastAPI request shim around the extraction pipeline."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from pathlib import Path
import re
from typing import Any

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from receiptflow.application.extraction import create_backend
from receiptflow.application.query import answer_query
from receiptflow.application.scan import process_receipt_image
from receiptflow.domain.errors import ConfigurationError, ExtractionError, InputError, TransportError
from receiptflow.domain.transaction import StructuredRecord
from receiptflow.receipt.structuring import GenerationBackend, SamplingParams, structure_receipt
from receiptflow.runtime.logging import get_logger
from receiptflow.runtime.ocr_providers import OCRProvider, create_ocr_provider
from receiptflow.runtime.paths import get_paths
from receiptflow.runtime.settings import get_settings
from receiptflow.runtime.transaction_store import TransactionStore

logger = get_logger(__name__)

# Ids become a directory name under the images dir; no separators, no leading dot.
USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.@-]{0,127}$")

_SCAN_STATUS_CODES = {
    "invalid_image": 400,
    "ocr_unavailable": 502,
    "no_text": 422,
    "store_rejected": 409,
}


@lru_cache(maxsize=1)
def get_store() -> TransactionStore:
    return TransactionStore.from_url(get_settings().database_url)


def get_backend() -> GenerationBackend | None:
    return create_backend(get_settings())


def get_ocr_provider() -> OCRProvider:
    return create_ocr_provider(get_settings())


def get_images_dir() -> Path:
    return get_paths().receipts_images


def _record_to_dict(record: StructuredRecord) -> dict[str, Any]:
    return {
        "date": record.date.isoformat() if record.date else None,
        "type": record.type,
        "category": record.category,
        "sub_category": record.sub_category,
        "amount": float(record.amount),
        "note": record.note,
    }


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message, **extra}, status_code=status_code)


def _user_images_dir(images_dir: Path, user_id: str) -> Path | None:
    """Return the per-user image directory, or None if the id would leave images_dir."""
    if not USER_ID_PATTERN.match(user_id) or ".." in user_id:
        return None
    root = images_dir.resolve()
    user_dir = (root / user_id).resolve()
    if user_dir.parent != root:
        return None
    return user_dir


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create data directories on startup."""
    get_paths().ensure_data_directories()
    yield


app = FastAPI(title="receiptflow", lifespan=lifespan)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Server configuration error: %s", exc)
    return _error("Server configuration error", 500)


@app.post("/structure")
async def structure(request: Request, backend: GenerationBackend | None = Depends(get_backend)) -> JSONResponse:
    """Structure OCR text with the AI extractor only; no fallback."""
    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON in request body", 400)

    ocr_text = body.get("ocrText") if isinstance(body, dict) else None
    if not isinstance(ocr_text, str) or not ocr_text.strip():
        return _error("ocrText required as string", 400)
    if backend is None:
        return _error("AI extraction not configured", 500)

    settings = get_settings()
    try:
        record = structure_receipt(
            ocr_text,
            backend=backend,
            params=SamplingParams(temperature=settings.ai_temperature),
            timeout=settings.ai_timeout,
        )
    except (ExtractionError, TransportError) as e:
        logger.error("Structure extraction error: %s", e)
        return _error(str(e), 500)

    return JSONResponse({"ok": True, "record": _record_to_dict(record)})


@app.post("/process")
async def process_image(
    request: Request,
    x_user_id: str | None = Header(default=None),
    store: TransactionStore = Depends(get_store),
    ocr_provider: OCRProvider = Depends(get_ocr_provider),
    backend: GenerationBackend | None = Depends(get_backend),
    images_dir: Path = Depends(get_images_dir),
) -> JSONResponse:
    """Receive a receipt image, extract a transaction and store it for the user."""
    if not x_user_id:
        return _error("Missing X-User-Id header", 401)
    user_dir = _user_images_dir(images_dir, x_user_id)
    if user_dir is None:
        return _error("Invalid X-User-Id header", 400)

    form = await request.form()
    upload = next((value for value in form.values() if hasattr(value, "read")), None)
    if upload is None:
        return _error("No file found in request", 400)

    contents = await upload.read()
    if not contents:
        return _error("Uploaded file is empty", 400)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    suffix = Path(upload.filename).suffix if upload.filename else ".jpg"
    user_dir.mkdir(parents=True, exist_ok=True)
    image_path = user_dir / f"receipt_{timestamp}{suffix}"
    image_path.write_bytes(contents)
    image_ref = f"{x_user_id}/{image_path.name}"

    result = process_receipt_image(
        contents,
        user_id=x_user_id,
        ocr_provider=ocr_provider,
        store=store,
        image_ref=image_ref,
        backend=backend,
        use_ai=backend is not None,
    )

    if result.status != "saved":
        logger.error("Receipt processing failed (%s): %s", result.status, result.error)
        return _error(result.error or "Receipt processing failed", _SCAN_STATUS_CODES.get(result.status, 500))

    if result.stored is None or result.extraction is None:
        logger.error("Receipt processing reported saved without a stored transaction")
        return _error("Receipt processing failed", 500)

    extraction = result.extraction
    return JSONResponse(
        {
            "ok": True,
            "transaction": result.stored.to_dict(),
            "debug": {
                "provenance": extraction.provenance,
                "fallback_reason": extraction.fallback_reason,
                "degraded_fields": list(extraction.degraded_fields),
            },
        }
    )


@app.get("/transactions")
async def list_transactions(
    x_user_id: str | None = Header(default=None),
    store: TransactionStore = Depends(get_store),
) -> JSONResponse:
    """List the caller's own transactions."""
    if not x_user_id:
        return _error("Missing X-User-Id header", 401)
    return JSONResponse({"ok": True, "transactions": [t.to_dict() for t in store.list_for_user(x_user_id)]})


@app.post("/query")
async def query(
    request: Request,
    x_user_id: str | None = Header(default=None),
    store: TransactionStore = Depends(get_store),
) -> JSONResponse:
    """Answer a preset or free-text spending question over the caller's transactions."""
    if not x_user_id:
        return _error("Missing X-User-Id header", 401)
    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON in request body", 400)
    if not isinstance(body, dict):
        return _error("Either preset or text query required", 400)

    preset = body.get("preset")
    text = body.get("text")
    if not isinstance(preset, (str, type(None))) or not isinstance(text, (str, type(None))):
        return _error("preset and text must be strings", 400)

    try:
        answer = answer_query(store, x_user_id, preset=preset, text=text)
    except InputError as e:
        return _error(str(e), 400)
    return JSONResponse({"ok": True, **answer.to_dict()})


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
