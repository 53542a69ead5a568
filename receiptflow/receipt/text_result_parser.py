"""Parse raw OCR text into a ParsedTransaction with the rule-based heuristics."""

from collections.abc import Sequence
from decimal import Decimal

from receiptflow.domain.transaction import UNKNOWN_MERCHANT, ParsedTransaction

from .date_utils import processing_date
from .text_parser import _extract_amount, _extract_date, _extract_direction, _extract_merchant
from .text_parser.common import split_lines


def parse_receipt_text(text: str, *, known_merchants: Sequence[str] = ()) -> ParsedTransaction:
    """
    Extract date, merchant, amount and direction from OCR text.

    Never fails. Each field falls back to a documented default:
    today's date, an amount of 0, and "Unknown Merchant". Direction defaults to debit.

    Args:
        text: Raw OCR text for one receipt or screenshot.
        known_merchants: Merchant names recognised at the start of a line.
    """
    lines = split_lines(text)

    parsed_date = _extract_date(text)
    amount = _extract_amount(text, lines)
    merchant = _extract_merchant(lines, known_merchants)

    return ParsedTransaction(
        date=parsed_date if parsed_date is not None else processing_date(),
        description=merchant if merchant is not None else UNKNOWN_MERCHANT,
        amount=amount if amount is not None else Decimal("0"),
        type=_extract_direction(text),
        date_is_placeholder=parsed_date is None,
    )
