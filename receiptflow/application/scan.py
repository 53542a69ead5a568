"""Receipt scan workflow orchestration: image -> OCR -> extraction -> store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from receiptflow.application.extraction import extract_transaction
from receiptflow.domain.errors import (
    ConfigurationError,
    ConstraintViolation,
    InputError,
    InvalidImage,
    NoTextDetected,
    OCRServiceUnavailable,
)
from receiptflow.runtime.logging import get_logger

if TYPE_CHECKING:
    from receiptflow.domain.transaction import ExtractionResult
    from receiptflow.receipt.structuring import GenerationBackend
    from receiptflow.runtime.ocr_providers import OCRProvider
    from receiptflow.runtime.transaction_store import StoredTransaction, TransactionStore

logger = get_logger(__name__)

ScanStatus = Literal[
    "file_not_found",
    "misconfigured",
    "invalid_image",
    "ocr_unavailable",
    "no_text",
    "store_rejected",
    "saved",
]


@dataclass(frozen=True)
class ReceiptScanRequest:
    """Inputs for running the receipt scan workflow."""

    image_path: Path
    user_id: str
    provider: str | None = None
    use_ai: bool = True
    image_ref: str | None = None


@dataclass(frozen=True)
class ReceiptScanResult:
    """Outcome from the receipt scan workflow."""

    status: ScanStatus
    ocr_text: str | None = None
    extraction: ExtractionResult | None = None
    stored: StoredTransaction | None = None
    error: str | None = None


def process_receipt_image(
    image_bytes: bytes,
    *,
    user_id: str,
    ocr_provider: OCRProvider,
    store: TransactionStore,
    image_ref: str | None = None,
    backend: GenerationBackend | None = None,
    use_ai: bool = True,
) -> ReceiptScanResult:
    """Run OCR, extraction and persistence for one image already in memory."""
    try:
        ocr_text = ocr_provider.extract_text(image_bytes)
    except OCRServiceUnavailable as exc:
        return ReceiptScanResult(status="ocr_unavailable", error=str(exc))
    except NoTextDetected as exc:
        return ReceiptScanResult(status="no_text", error=str(exc))
    except InvalidImage as exc:
        return ReceiptScanResult(status="invalid_image", error=str(exc))

    logger.debug("OCR text (%d chars): %.100s", len(ocr_text), ocr_text)

    try:
        extraction = extract_transaction(ocr_text, backend=backend, use_ai=use_ai)
    except InputError as exc:
        return ReceiptScanResult(status="no_text", ocr_text=ocr_text, error=str(exc))

    try:
        stored = store.save(extraction.transaction, user_id=user_id, image_path=image_ref)
    except ConstraintViolation as exc:
        return ReceiptScanResult(status="store_rejected", ocr_text=ocr_text, extraction=extraction, error=str(exc))

    return ReceiptScanResult(status="saved", ocr_text=ocr_text, extraction=extraction, stored=stored)


def run_receipt_scan(
    request: ReceiptScanRequest,
    *,
    ocr_provider_factory: Callable[[str | None], OCRProvider] | None = None,
    store: TransactionStore | None = None,
) -> ReceiptScanResult:
    """Run scan flow for an image file on disk."""
    if not request.image_path.exists():
        return ReceiptScanResult(
            status="file_not_found",
            error=f"Receipt file not found: {request.image_path}",
        )

    try:
        if ocr_provider_factory is None:
            from receiptflow.runtime.ocr_providers import create_ocr_provider

            ocr_provider = create_ocr_provider(provider=request.provider)
        else:
            ocr_provider = ocr_provider_factory(request.provider)
    except ConfigurationError as exc:
        return ReceiptScanResult(status="misconfigured", error=str(exc))

    if store is None:
        from receiptflow.runtime.settings import get_settings
        from receiptflow.runtime.transaction_store import TransactionStore

        store = TransactionStore.from_url(get_settings().database_url)

    return process_receipt_image(
        request.image_path.read_bytes(),
        user_id=request.user_id,
        ocr_provider=ocr_provider,
        store=store,
        image_ref=request.image_ref or str(request.image_path),
        use_ai=request.use_ai,
    )
