from datetime import date
from decimal import Decimal

import pytest

from receiptflow.receipt.text_parser import (
    _extract_amount,
    _extract_date,
    _extract_direction,
    _extract_merchant,
    _is_merchant_candidate,
)
from receiptflow.receipt.text_parser.common import split_lines
from receiptflow.receipt.text_result_parser import parse_receipt_text
from receiptflow.runtime.category_rules import load_known_merchants


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Posted Fri, Sep 19, 2025 at 10:14", date(2025, 9, 19)),
        ("Date: Sep 19 2025", date(2025, 9, 19)),
        ("September 5, 2025", date(2025, 9, 5)),
        ("TIM HORTONS 09/02/2025 POS PURCHASE", date(2025, 9, 2)),
        ("Paid 25/09/2025", date(2025, 9, 25)),
        ("2025-09-15 payroll", date(2025, 9, 15)),
        ("VISA FX 2025/09/10", date(2025, 9, 10)),
        ("19 Sep 2025", date(2025, 9, 19)),
    ],
)
def test_extract_date_formats(text: str, expected: date) -> None:
    assert _extract_date(text) == expected


def test_extract_date_prefers_earlier_pattern_over_earlier_position() -> None:
    text = "Printed 2025-01-01\nFri, Sep 19, 2025"
    assert _extract_date(text) == date(2025, 9, 19)


def test_extract_date_skips_impossible_calendar_dates() -> None:
    assert _extract_date("Ref 31/31/2025 then 03/04/2025") == date(2025, 3, 4)


def test_extract_date_returns_none_without_date() -> None:
    assert _extract_date("Thank you for shopping") is None


def test_extract_amount_prefers_largest_currency_amount() -> None:
    text = "Coffee $12.00\nTotal $45.67"
    assert _extract_amount(text, split_lines(text)) == Decimal("45.67")


def test_extract_amount_handles_thousands_separator() -> None:
    text = "PAYROLL DEPOSIT +$2,450.00"
    assert _extract_amount(text, split_lines(text)) == Decimal("2450.00")


def test_extract_amount_keeps_full_value_without_separator() -> None:
    text = "Rent $1234.56"
    assert _extract_amount(text, split_lines(text)) == Decimal("1234.56")


def test_extract_amount_falls_back_to_total_line() -> None:
    text = "Item 3.50\nTOTAL 18.25\nCash 20.00"
    assert _extract_amount(text, split_lines(text)) == Decimal("18.25")


def test_extract_amount_falls_back_to_largest_plausible_number() -> None:
    text = "Order 123456\nWidget 7.25\nGadget 12.40"
    assert _extract_amount(text, split_lines(text)) == Decimal("12.40")


def test_extract_amount_returns_none_without_numbers() -> None:
    assert _extract_amount("no digits here", ["no digits here"]) is None


def test_extract_merchant_prefers_known_merchant_line() -> None:
    lines = ["Transaction details", "Pay", "Starbucks Coffee #1234", "$5.25"]
    assert _extract_merchant(lines, ("Starbucks", "Walmart")) == "Starbucks"


def test_extract_merchant_known_name_must_start_the_line() -> None:
    lines = ["Paid at Walmart", "Corner Shop"]
    assert _extract_merchant(lines, ("Walmart",)) == "Corner Shop"


def test_extract_merchant_picks_shortest_clean_line() -> None:
    lines = [
        "Transaction details",
        "Fri, Sep 19, 2025",
        "Joe's Pizza Place",
        "Card number **** 1234",
        "416-555-1234",
        "$18.50",
        "Dine in",
    ]
    assert _extract_merchant(lines) == "Dine in"


def test_extract_merchant_returns_none_when_everything_is_noise() -> None:
    assert _extract_merchant(["12/09/2025", "$4.00", "Category: Food"]) is None


@pytest.mark.parametrize(
    "line",
    ["ab", "x" * 50, "2025-09-19 10:14", "$12.00", "Phone 555", "Call 800-123-4567", "Sunday brunch"],
)
def test_noise_lines_are_not_merchant_candidates(line: str) -> None:
    assert not _is_merchant_candidate(line)


def test_extract_direction() -> None:
    assert _extract_direction("PAYROLL DEPOSIT") == "credit"
    assert _extract_direction("Refund issued") == "credit"
    assert _extract_direction("Coffee $4.00") == "debit"


def test_parse_receipt_text_bank_screenshot() -> None:
    text = "\n".join(
        [
            "Transaction details",
            "Starbucks",
            "Fri, Sep 19, 2025",
            "$5.75",
            "Category: Dining",
        ]
    )

    parsed = parse_receipt_text(text, known_merchants=load_known_merchants())

    assert parsed.date == date(2025, 9, 19)
    assert parsed.description == "Starbucks"
    assert parsed.amount == Decimal("5.75")
    assert parsed.type == "debit"
    assert parsed.date_is_placeholder is False


def test_parse_receipt_text_uses_defaults_when_nothing_found() -> None:
    parsed = parse_receipt_text("!!! ??? ...")

    assert parsed.date == date.today()
    assert parsed.date_is_placeholder is True
    assert parsed.amount == Decimal("0")
    assert parsed.description == "Unknown Merchant"
    assert parsed.type == "debit"


def test_parse_receipt_text_is_deterministic() -> None:
    text = "Corner Shop\n2025-03-04\nTotal $9.99"
    assert parse_receipt_text(text) == parse_receipt_text(text)
