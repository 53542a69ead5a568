"""AI structuring extractor: prompt construction and strict response validation.

The generative backend is treated as untrusted free text. Anything that does
not parse and validate against the record schema raises ExtractionError, so
the caller can fall back to the rule-based parser instead of storing a bad
transaction.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Literal, Protocol

from receiptflow.domain.errors import ExtractionError
from receiptflow.domain.transaction import AI_CATEGORIES, StructuredRecord

SUB_CATEGORY_MAX_LENGTH = 60
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SYSTEM_PREFACE = f"""You are a strict financial transaction extractor.
Input is OCR text from a single transaction, receipt line, or statement row.
Output ONLY minified JSON matching the schema exactly. No extra text.
If a field is unknown, use null. Dates must be YYYY-MM-DD.
type is "in" (money received) or "out" (money spent).
category is one of: {json.dumps(list(AI_CATEGORIES), separators=(",", ":"))}.
sub_category is the merchant/vendor short name if available (e.g., "walmart","freshco","tim hortons"). Lowercase.
amount is a positive number (e.g., 12.34). If multiple amounts, choose the payable TOTAL; \
if a bank line, choose the transaction amount for that entry.
note is a short free-text note like "conversion fee", "foreign transaction", or null.

SCHEMA:
{{"date":"YYYY-MM-DD|null","type":"in|out","category":"{"|".join(AI_CATEGORIES)}",\
"sub_category":"string|null","amount":0.00,"note":"string|null"}}"""

# (OCR text, expected model output) pairs sent ahead of every request.
FEW_SHOT_EXAMPLES: tuple[tuple[str, str], ...] = (
    (
        "2025-08-14 13:05 Walmart Supercenter #1234  Debit Card  $45.67  Subtotal 42.00  Tax 3.67  Thank you",
        '{"date":"2025-08-14","type":"out","category":"grocery","sub_category":"walmart","amount":45.67,"note":null}',
    ),
    (
        "TIM HORTONS 09/02/2025 POS PURCHASE -$3.05",
        '{"date":"2025-09-02","type":"out","category":"dining","sub_category":"tim hortons","amount":3.05,"note":null}',
    ),
    (
        "PAYROLL DEPOSIT 2025-09-15 +$2,450.00",
        '{"date":"2025-09-15","type":"in","category":"income","sub_category":null,"amount":2450.00,"note":null}',
    ),
    (
        "VISA FX CONVERSION FEE 2025/09/10  $1.23",
        '{"date":"2025-09-10","type":"out","category":"fees","sub_category":null,"amount":1.23,'
        '"note":"conversion fee"}',
    ),
)


@dataclass(frozen=True)
class PromptTurn:
    """One role-tagged text turn of a generation request."""

    role: Literal["user", "model"]
    text: str


@dataclass(frozen=True)
class SamplingParams:
    """Sampling parameters; low temperature keeps extraction repeatable."""

    temperature: float = 0.1
    top_p: float = 0.9
    max_output_tokens: int = 256


class GenerationBackend(Protocol):
    """Single request/response text generation call."""

    def generate(self, turns: Sequence[PromptTurn], params: SamplingParams, *, timeout: float) -> str: ...


def user_prompt(ocr_text: str) -> str:
    """Wrap OCR text in the delimited user turn."""
    return f'OCR_TEXT:\n"""\n{ocr_text}\n"""\n\nReturn ONLY valid JSON per schema.'


def build_prompt_turns(ocr_text: str) -> list[PromptTurn]:
    """Build the full conversation: preface, few-shot pairs, then the caller's text."""
    turns = [PromptTurn(role="user", text=SYSTEM_PREFACE)]
    for example_text, example_output in FEW_SHOT_EXAMPLES:
        turns.append(PromptTurn(role="user", text=user_prompt(example_text)))
        turns.append(PromptTurn(role="model", text=example_output))
    turns.append(PromptTurn(role="user", text=user_prompt(ocr_text)))
    return turns


def extract_json(response_text: str) -> dict[str, Any]:
    """
    Parse the JSON object spanning the first "{" to the last "}".

    Commentary before or after the object is tolerated. Numbers are parsed as
    Decimal so amounts keep their exact written value.
    """
    start = response_text.find("{")
    end = response_text.rfind("}")
    if start == -1 or end < start:
        raise ExtractionError("No JSON found in response")
    try:
        parsed = json.loads(response_text[start : end + 1], parse_float=Decimal)
    except (ValueError, RecursionError) as e:
        raise ExtractionError("Invalid JSON in response") from e
    if not isinstance(parsed, dict):
        raise ExtractionError("Invalid record structure")
    return parsed


def _require(rec: dict[str, Any], field: str) -> Any:
    if field not in rec:
        raise ExtractionError(f"Missing field: {field}", field=field)
    return rec[field]


def _validate_amount(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ExtractionError("Invalid amount - must be positive number", field="amount")
    amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    if not amount.is_finite() or amount < 0:
        raise ExtractionError("Invalid amount - must be positive number", field="amount")
    return amount


def _validate_date(value: Any) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise ExtractionError("Invalid date format - must be YYYY-MM-DD", field="date")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ExtractionError(f"Invalid date: {value}", field="date") from e


def _validate_optional_text(value: Any, field: str) -> str | None:
    if value is not None and not isinstance(value, str):
        raise ExtractionError(f"Invalid {field}", field=field)
    return value


def validate_record(rec: Any) -> StructuredRecord:
    """Validate a parsed response field by field and normalize sub_category."""
    if not isinstance(rec, dict):
        raise ExtractionError("Invalid record structure")

    flow_type = _require(rec, "type")
    if flow_type not in ("in", "out"):
        raise ExtractionError("Invalid type - must be 'in' or 'out'", field="type")

    category = _require(rec, "category")
    if category not in AI_CATEGORIES:
        raise ExtractionError(f"Invalid category: {category!r}", field="category")

    amount = _validate_amount(_require(rec, "amount"))
    record_date = _validate_date(_require(rec, "date"))

    sub_category = _validate_optional_text(_require(rec, "sub_category"), "sub_category")
    if sub_category is not None:
        sub_category = sub_category.lower()[:SUB_CATEGORY_MAX_LENGTH]

    note = _validate_optional_text(_require(rec, "note"), "note")

    return StructuredRecord(
        date=record_date,
        type=flow_type,
        category=category,
        sub_category=sub_category,
        amount=amount,
        note=note,
    )


def structure_receipt(
    ocr_text: str,
    *,
    backend: GenerationBackend,
    params: SamplingParams | None = None,
    timeout: float = 30.0,
) -> StructuredRecord:
    """
    Ask the generative backend to structure OCR text and validate the answer.

    Raises:
        TransportError: the backend call failed or timed out.
        ExtractionError: the response held no JSON, invalid JSON, or failed validation.
    """
    response_text = backend.generate(build_prompt_turns(ocr_text), params or SamplingParams(), timeout=timeout)
    return validate_record(extract_json(response_text))
