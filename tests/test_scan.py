from __future__ import annotations

from datetime import date
from decimal import Decimal

from receiptflow.application.scan import ReceiptScanRequest, process_receipt_image, run_receipt_scan
from receiptflow.domain.errors import ConfigurationError, InvalidImage, NoTextDetected, OCRServiceUnavailable


class StubOCR:
    name = "stub"

    def __init__(self, result: str | Exception) -> None:
        self.result = result
        self.images: list[bytes] = []

    def extract_text(self, image_bytes: bytes) -> str:
        self.images.append(image_bytes)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def test_process_receipt_image_saves_transaction(store) -> None:
    ocr = StubOCR("Starbucks\nFri, Sep 19, 2025\n$5.75")

    result = process_receipt_image(b"img", user_id="user-1", ocr_provider=ocr, store=store, image_ref="user-1/a.jpg")

    assert result.status == "saved"
    assert result.stored is not None
    assert result.stored.transaction.date == date(2025, 9, 19)
    assert result.stored.transaction.amount == Decimal("5.75")
    assert result.stored.image_path == "user-1/a.jpg"
    assert result.extraction is not None and result.extraction.provenance == "legacy"
    assert ocr.images == [b"img"]


def test_process_receipt_image_reports_ocr_failures(store) -> None:
    unavailable = process_receipt_image(
        b"img", user_id="user-1", ocr_provider=StubOCR(OCRServiceUnavailable("down")), store=store
    )
    no_text = process_receipt_image(
        b"img", user_id="user-1", ocr_provider=StubOCR(NoTextDetected("blank")), store=store
    )

    assert unavailable.status == "ocr_unavailable"
    assert no_text.status == "no_text"
    assert store.list_for_user("user-1") == []


def test_process_receipt_image_whitespace_text_is_no_text(store) -> None:
    result = process_receipt_image(b"img", user_id="user-1", ocr_provider=StubOCR("  \n "), store=store)

    assert result.status == "no_text"


def test_process_receipt_image_reports_store_rejection(store) -> None:
    result = process_receipt_image(b"img", user_id="", ocr_provider=StubOCR("Corner Shop $3.00"), store=store)

    assert result.status == "store_rejected"
    assert result.extraction is not None


def test_run_receipt_scan_missing_file(tmp_path, store) -> None:
    result = run_receipt_scan(ReceiptScanRequest(image_path=tmp_path / "missing.jpg", user_id="user-1"), store=store)

    assert result.status == "file_not_found"


def test_run_receipt_scan_misconfigured_provider(tmp_path, store) -> None:
    image = tmp_path / "receipt.jpg"
    image.write_bytes(b"img")

    def factory(name: str | None):
        raise ConfigurationError("GOOGLE_VISION_API_KEY not configured")

    result = run_receipt_scan(
        ReceiptScanRequest(image_path=image, user_id="user-1"), ocr_provider_factory=factory, store=store
    )

    assert result.status == "misconfigured"


def test_run_receipt_scan_reads_image_file(tmp_path, store) -> None:
    image = tmp_path / "receipt.jpg"
    image.write_bytes(b"img-bytes")
    ocr = StubOCR("Walmart\n2025-08-14\nTOTAL $45.67")

    result = run_receipt_scan(
        ReceiptScanRequest(image_path=image, user_id="user-1", use_ai=False),
        ocr_provider_factory=lambda name: ocr,
        store=store,
    )

    assert result.status == "saved"
    assert ocr.images == [b"img-bytes"]
    assert result.stored is not None
    assert result.stored.transaction.category == "Groceries"
    assert result.stored.image_path == str(image)


def test_process_receipt_image_reports_invalid_image(store) -> None:
    ocr = StubOCR(InvalidImage("Uploaded file is not a readable image"))

    result = process_receipt_image(b"text", user_id="user-1", ocr_provider=ocr, store=store)

    assert result.status == "invalid_image"
    assert result.error == "Uploaded file is not a readable image"
    assert result.extraction is None
    assert store.list_for_user("user-1") == []
