"""Extraction and scan workflows."""

from receiptflow.application.extraction import (
    categorize,
    create_backend,
    extract_transaction,
    resolve_extraction,
    to_canonical,
)
from receiptflow.application.query import QUERY_PRESETS, QueryAnswer, answer_query
from receiptflow.application.scan import (
    ReceiptScanRequest,
    ReceiptScanResult,
    process_receipt_image,
    run_receipt_scan,
)

__all__ = [
    "categorize",
    "create_backend",
    "extract_transaction",
    "resolve_extraction",
    "to_canonical",
    "QUERY_PRESETS",
    "QueryAnswer",
    "answer_query",
    "ReceiptScanRequest",
    "ReceiptScanResult",
    "process_receipt_image",
    "run_receipt_scan",
]
