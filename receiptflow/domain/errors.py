"""Exception taxonomy shared across the extraction pipeline."""

from __future__ import annotations


class ReceiptFlowError(Exception):
    """Base class for all receiptflow errors."""


class InputError(ReceiptFlowError, ValueError):
    """Raised when OCR text is missing or blank; no extraction is attempted."""


class ConfigurationError(ReceiptFlowError, RuntimeError):
    """Raised when a required API key or provider setting is missing or invalid."""


class TransportError(ReceiptFlowError, RuntimeError):
    """Raised when a remote backend cannot be reached, times out, or returns an error status."""


class OCRServiceUnavailable(TransportError):
    """Raised when the OCR provider cannot be reached or returns an error."""


class NoTextDetected(ReceiptFlowError):
    """Raised when the OCR provider returns no text for an image."""


class ExtractionError(ReceiptFlowError, ValueError):
    """Raised when an AI response is malformed or fails schema validation."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ConstraintViolation(ReceiptFlowError):
    """Raised when the transaction store rejects a row."""


class InvalidImage(ReceiptFlowError):
    """Raised when uploaded bytes cannot be decoded as an image."""
