"""Shared constants and helpers for rule-based receipt text parsing."""

import re
from decimal import Decimal, InvalidOperation

CURRENCY_SYMBOLS = "$€£¥₹₽"

MONTH_NUMBERS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Month names are matched on their 3-letter prefix; "Sept" and "September" both decode to 9.
MONTH_NAME = r"(?P<month>Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?"
WEEKDAY_NAME = r"(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)[a-z]*\.?"

# "$1,234.56", "€ 12", "₹2,450.00"
CURRENCY_AMOUNT_PATTERN = re.compile(rf"[{re.escape(CURRENCY_SYMBOLS)}]\s?(\d+(?:,\d{{3}})*(?:\.\d{{1,2}})?)")
BARE_NUMBER_PATTERN = re.compile(r"\d+\.?\d*")
TOTAL_LINE_KEYWORDS = ("total", "amount", "balance")

# Bare numbers at or above this are ignored as order, account or phone codes.
MAX_BARE_AMOUNT = Decimal("100000")

# Merchant candidate line limits (exclusive)
MIN_MERCHANT_LINE_LENGTH = 2
MAX_MERCHANT_LINE_LENGTH = 50

# Administrative noise found on bank-app screenshots
MERCHANT_NOISE_WORDS = (
    "transaction",
    "details",
    "posted",
    "card number",
    "category",
    "budget",
    "note",
    "merchant",
    "website",
    "phone",
)
WEEKDAY_FRAGMENTS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
PHONE_FRAGMENT_PATTERN = re.compile(r"\b8[0-9]{2}-|\(?\d{3}\)?[\s.-]\d{3}[\s.-]\d{4}")
NUMERIC_ONLY_PATTERN = re.compile(r"^\d+[\d\s/\-.:*]*$")
PRICE_PREFIX_PATTERN = re.compile(rf"^[{re.escape(CURRENCY_SYMBOLS)}]\d")
HAS_LETTER_PATTERN = re.compile(r"[a-zA-Z]")

CREDIT_INDICATORS = (
    "credited",
    "refund",
    "salary",
    "payroll",
    "deposit",
    "bonus",
    "commission",
    "dividend",
    "interest",
    "payment received",
    "transfer in",
    "income",
    "credit",
    "received",
)


def split_lines(text: str) -> list[str]:
    """Split OCR text into stripped, non-empty lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def strip_currency(text: str) -> str:
    """Remove currency symbols and thousands separators."""
    cleaned = re.sub(rf"[{re.escape(CURRENCY_SYMBOLS)}]", "", text)
    return cleaned.replace(",", "")


def to_decimal(token: str) -> Decimal | None:
    """Parse a numeric token, tolerating thousands separators."""
    try:
        return Decimal(token.replace(",", ""))
    except InvalidOperation:
        return None
