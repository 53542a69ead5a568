from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest

from receiptflow.domain.errors import ExtractionError
from receiptflow.receipt.structuring import (
    FEW_SHOT_EXAMPLES,
    SYSTEM_PREFACE,
    SamplingParams,
    build_prompt_turns,
    extract_json,
    structure_receipt,
    validate_record,
)


def _record(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "date": "2025-08-14",
        "type": "out",
        "category": "grocery",
        "sub_category": "walmart",
        "amount": Decimal("45.67"),
        "note": None,
    }
    record.update(overrides)
    return record


def test_prompt_turns_carry_preface_examples_and_input() -> None:
    turns = build_prompt_turns("COFFEE $3.00")

    assert turns[0].role == "user"
    assert turns[0].text == SYSTEM_PREFACE
    assert [turn.role for turn in turns[1:-1]] == ["user", "model"] * len(FEW_SHOT_EXAMPLES)
    assert turns[-1].role == "user"
    assert 'OCR_TEXT:\n"""\nCOFFEE $3.00\n"""' in turns[-1].text
    assert turns[-1].text.endswith("Return ONLY valid JSON per schema.")


def test_preface_lists_every_category() -> None:
    for category in ("shopping", "grocery", "dining", "income", "fees", "transfers", "other"):
        assert category in SYSTEM_PREFACE


def test_few_shot_outputs_validate() -> None:
    records = [validate_record(extract_json(output)) for _, output in FEW_SHOT_EXAMPLES]

    assert [r.date for r in records] == [
        date(2025, 8, 14),
        date(2025, 9, 2),
        date(2025, 9, 15),
        date(2025, 9, 10),
    ]
    assert [r.amount for r in records] == [Decimal("45.67"), Decimal("3.05"), Decimal("2450.00"), Decimal("1.23")]
    assert records[2].type == "in"
    assert records[2].sub_category is None
    assert records[3].note == "conversion fee"


def test_extract_json_tolerates_surrounding_commentary() -> None:
    response = 'Sure! Here it is:\n```json\n{"date":null,"amount":12.5}\n```\nLet me know.'
    assert extract_json(response) == {"date": None, "amount": Decimal("12.5")}


def test_extract_json_keeps_exact_decimal_amount() -> None:
    assert extract_json('{"amount":0.10}')["amount"] == Decimal("0.10")


@pytest.mark.parametrize(
    ("response", "message"),
    [
        ("I could not read this receipt.", "No JSON found in response"),
        ("} backwards {", "No JSON found in response"),
        ('{"date": "2025-01-01",}', "Invalid JSON in response"),
    ],
)
def test_extract_json_failures(response: str, message: str) -> None:
    with pytest.raises(ExtractionError, match=message):
        extract_json(response)


def test_validate_record_lowercases_and_truncates_sub_category() -> None:
    record = validate_record(_record(sub_category="W" * 80))

    assert record.sub_category == "w" * 60


def test_validate_record_allows_null_date() -> None:
    assert validate_record(_record(date=None)).date is None


def test_validate_record_accepts_integer_amount() -> None:
    assert validate_record(_record(amount=20)).amount == Decimal("20")


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"type": "sideways"}, "type"),
        ({"category": "Groceries"}, "category"),
        ({"amount": -1}, "amount"),
        ({"amount": "12.00"}, "amount"),
        ({"amount": True}, "amount"),
        ({"amount": float("nan")}, "amount"),
        ({"date": "09/02/2025"}, "date"),
        ({"date": "2025-02-30"}, "date"),
        ({"sub_category": 7}, "sub_category"),
        ({"note": ["fee"]}, "note"),
    ],
)
def test_validate_record_rejects_bad_fields(overrides: dict[str, object], field: str) -> None:
    with pytest.raises(ExtractionError) as exc_info:
        validate_record(_record(**overrides))

    assert exc_info.value.field == field


def test_validate_record_requires_every_key() -> None:
    record = _record()
    del record["note"]

    with pytest.raises(ExtractionError, match="Missing field: note"):
        validate_record(record)


def test_validate_record_rejects_non_object() -> None:
    with pytest.raises(ExtractionError, match="Invalid record structure"):
        validate_record(["not", "a", "record"])


def test_structure_receipt_sends_prompt_and_params(stub_backend_factory) -> None:
    backend = stub_backend_factory(json.dumps(_record(amount=45.67)))

    record = structure_receipt("Walmart $45.67", backend=backend, params=SamplingParams(temperature=0.0), timeout=5.0)

    assert record.amount == Decimal("45.67")
    assert record.category == "grocery"
    turns, params, timeout = backend.calls[0]
    assert "Walmart $45.67" in turns[-1].text
    assert params.temperature == 0.0
    assert params.top_p == 0.9
    assert params.max_output_tokens == 256
    assert timeout == 5.0
