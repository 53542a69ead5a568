"""Extraction orchestration: AI structuring first, rule-based parser as fallback.

Each extractor runs at most once per call. The result comes from one path
in full, never a mix of both, and carries its provenance.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from receiptflow.domain.categorization import CategoryKeywordTable, categorize_transaction
from receiptflow.domain.errors import ConfigurationError, ExtractionError, InputError, TransportError
from receiptflow.domain.transaction import (
    DEFAULT_AI_DESCRIPTION,
    UNKNOWN_MERCHANT,
    AiResult,
    CanonicalTransaction,
    Direction,
    ExtractionResult,
    LegacyResult,
    ResolvedExtraction,
)
from receiptflow.receipt.date_utils import processing_date
from receiptflow.receipt.structuring import GenerationBackend, SamplingParams, structure_receipt
from receiptflow.receipt.text_result_parser import parse_receipt_text
from receiptflow.runtime.category_rules import load_category_keyword_table, load_known_merchants
from receiptflow.runtime.logging import get_logger
from receiptflow.runtime.settings import Settings, get_settings

logger = get_logger(__name__)

_DIRECTION_BY_FLOW: dict[str, Direction] = {"in": "credit", "out": "debit"}


def categorize(description: str, direction: Direction) -> str:
    """Categorize with the process-wide keyword table."""
    return categorize_transaction(description, direction, table=load_category_keyword_table())


def create_backend(settings: Settings | None = None) -> GenerationBackend | None:
    """Build the configured AI backend, or None when AI extraction is disabled or unconfigured."""
    from receiptflow.runtime.gemini_client import GeminiClient

    settings = settings or get_settings()
    if not settings.ai_enabled:
        logger.info("AI extraction disabled by configuration")
        return None
    try:
        return GeminiClient.from_settings(settings)
    except ConfigurationError as e:
        logger.warning("AI extraction unavailable: %s", e)
        return None


def _require_text(ocr_text: object) -> str:
    if not isinstance(ocr_text, str) or not ocr_text.strip():
        raise InputError("OCR text is empty; nothing to extract")
    return ocr_text


def resolve_extraction(
    ocr_text: str,
    *,
    backend: GenerationBackend | None,
    table: CategoryKeywordTable,
    known_merchants: Sequence[str] = (),
    params: SamplingParams | None = None,
    timeout: float = 30.0,
    deadline: float | None = None,
) -> ResolvedExtraction:
    """
    Try the AI extractor, then fall back to the rule-based parser.

    Args:
        ocr_text: Raw OCR text.
        backend: Generation backend, or None to go straight to the rule-based parser.
        table: Ordered category keyword table for the fallback categorizer.
        known_merchants: Merchant names for the fallback merchant heuristic.
        params: Sampling parameters for the AI call.
        timeout: Ceiling in seconds for the AI call.
        deadline: Optional time.monotonic() value supplied by the caller. The AI
            call's timeout is capped at the time remaining when it starts, and the
            call is skipped once the deadline has passed. Enforcement beyond that
            cap is up to the backend honouring its timeout.

    Raises:
        InputError: ocr_text is empty.
    """
    text = _require_text(ocr_text)

    if backend is None:
        reason = "AI extraction not configured"
    else:
        budget = timeout
        if deadline is not None:
            budget = min(budget, deadline - time.monotonic())

        if budget <= 0:
            reason = "Deadline elapsed before AI extraction"
        else:
            try:
                record = structure_receipt(text, backend=backend, params=params, timeout=budget)
            except (ExtractionError, TransportError) as e:
                reason = f"{type(e).__name__}: {e}"
            else:
                logger.info("Extraction resolved via AI path")
                return AiResult(record=record)

    logger.warning("Falling back to rule-based parser: %s", reason)
    parsed = parse_receipt_text(text, known_merchants=known_merchants)
    category = categorize_transaction(parsed.description, parsed.type, table=table)
    logger.debug(
        "Rule-based parse: date=%s amount=%s type=%s category=%s",
        parsed.date,
        parsed.amount,
        parsed.type,
        category,
    )
    return LegacyResult(parsed=parsed, category=category, fallback_reason=reason)


def to_canonical(result: ResolvedExtraction) -> CanonicalTransaction:
    """Map either extraction variant onto the persisted transaction shape."""
    if isinstance(result, AiResult):
        record = result.record
        return CanonicalTransaction(
            date=record.date or processing_date(),
            description=record.sub_category or DEFAULT_AI_DESCRIPTION,
            amount=record.amount,
            type=_DIRECTION_BY_FLOW[record.type],
            category=record.category,
            notes=record.note,
        )

    parsed = result.parsed
    return CanonicalTransaction(
        date=parsed.date,
        description=parsed.description,
        amount=parsed.amount,
        type=parsed.type,
        category=result.category,
        notes=None,
    )


def _degraded_fields(result: ResolvedExtraction) -> tuple[str, ...]:
    """Fields that hold a substituted default rather than an extracted value."""
    if isinstance(result, AiResult):
        return ("date",) if result.record.date is None else ()

    parsed = result.parsed
    fields: list[str] = []
    if parsed.date_is_placeholder:
        fields.append("date")
    if parsed.amount == 0:
        fields.append("amount")
    if parsed.description == UNKNOWN_MERCHANT:
        fields.append("description")
    return tuple(fields)


def extract_transaction(
    ocr_text: str,
    *,
    backend: GenerationBackend | None = None,
    use_ai: bool = True,
    settings: Settings | None = None,
    table: CategoryKeywordTable | None = None,
    known_merchants: Sequence[str] | None = None,
    deadline: float | None = None,
) -> ExtractionResult:
    """
    Turn OCR text into a canonical transaction.

    When no backend is passed and use_ai is set, the backend is built from
    settings. Configuration (timeout, temperature) also comes from settings.

    Raises:
        InputError: ocr_text is empty.
    """
    _require_text(ocr_text)
    settings = settings or get_settings()

    if backend is None and use_ai:
        backend = create_backend(settings)
    if not use_ai:
        backend = None

    result = resolve_extraction(
        ocr_text,
        backend=backend,
        table=table if table is not None else load_category_keyword_table(),
        known_merchants=known_merchants if known_merchants is not None else load_known_merchants(),
        params=SamplingParams(temperature=settings.ai_temperature),
        timeout=settings.ai_timeout,
        deadline=deadline,
    )

    degraded = _degraded_fields(result)
    if degraded and result.kind == "legacy":
        logger.warning("Rule-based result uses defaults for: %s", ", ".join(degraded))

    return ExtractionResult(
        transaction=to_canonical(result),
        provenance=result.kind,
        fallback_reason=result.fallback_reason if isinstance(result, LegacyResult) else None,
        degraded_fields=degraded,
    )
