"""Data models for receipt-text extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Literal

Direction = Literal["debit", "credit"]
FlowType = Literal["in", "out"]
Provenance = Literal["ai", "legacy"]

# Closed category set accepted from the AI extractor.
AI_CATEGORIES: tuple[str, ...] = (
    "shopping",
    "rent",
    "utility",
    "grocery",
    "dining",
    "transportation",
    "entertainment",
    "health",
    "income",
    "fees",
    "transfers",
    "education",
    "other",
)

UNKNOWN_MERCHANT = "Unknown Merchant"
DEFAULT_AI_DESCRIPTION = "Transaction"
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class ParsedTransaction:
    """Heuristic extraction from the legacy rule-based parser."""

    date: date
    description: str
    amount: Decimal
    type: Direction
    # True when no date was found and the processing day was substituted.
    date_is_placeholder: bool = False


@dataclass(frozen=True)
class StructuredRecord:
    """Validated record produced by the AI extractor."""

    date: date | None
    type: FlowType
    category: str
    sub_category: str | None
    amount: Decimal
    note: str | None


@dataclass(frozen=True)
class CanonicalTransaction:
    """The single transaction shape handed to the persister."""

    date: date
    description: str
    amount: Decimal
    type: Direction
    category: str
    notes: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": f"{self.amount:.2f}",
            "type": self.type,
            "category": self.category,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class AiResult:
    """AI path succeeded."""

    record: StructuredRecord
    kind: Literal["ai"] = "ai"


@dataclass(frozen=True)
class LegacyResult:
    """AI path failed or was skipped; the rule-based parser produced the record."""

    parsed: ParsedTransaction
    category: str
    fallback_reason: str
    kind: Literal["legacy"] = "legacy"


ResolvedExtraction = AiResult | LegacyResult


@dataclass(frozen=True)
class ExtractionResult:
    """Canonical record plus the diagnostics needed to audit how it was made."""

    transaction: CanonicalTransaction
    provenance: Provenance
    fallback_reason: str | None = None
    degraded_fields: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_fields)
