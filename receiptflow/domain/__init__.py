"""Core domain models for receiptflow.

This module provides the data models and error taxonomy used throughout the project:
- ParsedTransaction: legacy rule-based parser output
- StructuredRecord: validated AI extractor output
- CanonicalTransaction: the persisted transaction shape
- AiResult, LegacyResult, ExtractionResult: orchestration results with provenance

Usage:
    from receiptflow.domain import CanonicalTransaction, ExtractionResult
"""

from receiptflow.domain.errors import (
    ConfigurationError,
    ConstraintViolation,
    ExtractionError,
    InputError,
    InvalidImage,
    NoTextDetected,
    OCRServiceUnavailable,
    ReceiptFlowError,
    TransportError,
)
from receiptflow.domain.transaction import (
    AI_CATEGORIES,
    AiResult,
    CanonicalTransaction,
    ExtractionResult,
    LegacyResult,
    ParsedTransaction,
    StructuredRecord,
)

__all__ = [
    "AI_CATEGORIES",
    "AiResult",
    "CanonicalTransaction",
    "ExtractionResult",
    "LegacyResult",
    "ParsedTransaction",
    "StructuredRecord",
    "ReceiptFlowError",
    "InputError",
    "InvalidImage",
    "ConfigurationError",
    "TransportError",
    "OCRServiceUnavailable",
    "NoTextDetected",
    "ExtractionError",
    "ConstraintViolation",
]
