"""Composable rule-based receipt text parser components."""

from .fields_parser import (
    AMOUNT_STRATEGIES,
    DATE_PATTERNS,
    _extract_amount,
    _extract_date,
    _extract_direction,
    _extract_merchant,
    _is_merchant_candidate,
)

__all__ = [
    "AMOUNT_STRATEGIES",
    "DATE_PATTERNS",
    "_extract_amount",
    "_extract_date",
    "_extract_direction",
    "_extract_merchant",
    "_is_merchant_candidate",
]
