"""Date/amount/merchant/direction extraction heuristics.

Each field is extracted by an ordered list of strategies evaluated with early
exit. Reordering a list changes which heuristic wins.
"""

import re
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal
from functools import lru_cache

from receiptflow.domain.transaction import Direction

from .common import (
    BARE_NUMBER_PATTERN,
    CREDIT_INDICATORS,
    CURRENCY_AMOUNT_PATTERN,
    HAS_LETTER_PATTERN,
    MAX_BARE_AMOUNT,
    MAX_MERCHANT_LINE_LENGTH,
    MERCHANT_NOISE_WORDS,
    MIN_MERCHANT_LINE_LENGTH,
    MONTH_NAME,
    MONTH_NUMBERS,
    NUMERIC_ONLY_PATTERN,
    PHONE_FRAGMENT_PATTERN,
    PRICE_PREFIX_PATTERN,
    TOTAL_LINE_KEYWORDS,
    WEEKDAY_FRAGMENTS,
    WEEKDAY_NAME,
    strip_currency,
    to_decimal,
)

DateHandler = Callable[[re.Match[str]], date | None]
AmountStrategy = Callable[[str, Sequence[str]], Decimal | None]


# ---------------------------------------------------------------------------
# Date
# ---------------------------------------------------------------------------


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _date_from_month_name(match: re.Match[str]) -> date | None:
    month = MONTH_NUMBERS.get(match.group("month")[:3].lower())
    if month is None:
        return None
    return _safe_date(int(match.group("year")), month, int(match.group("day")))


def _date_from_numeric_day_month(match: re.Match[str]) -> date | None:
    """Decode "a/b/YYYY": month-first like generic date parsing, day-first when that is impossible."""
    first = int(match.group("first"))
    second = int(match.group("second"))
    year = int(match.group("year"))
    return _safe_date(year, first, second) or _safe_date(year, second, first)


def _date_from_numeric_year_first(match: re.Match[str]) -> date | None:
    return _safe_date(int(match.group("year")), int(match.group("month")), int(match.group("day")))


DATE_PATTERNS: tuple[tuple[re.Pattern[str], DateHandler], ...] = (
    # Bank app format: "Fri, Sep 19, 2025"
    (
        re.compile(rf"\b{WEEKDAY_NAME},?\s+{MONTH_NAME}\s+(?P<day>\d{{1,2}}),?\s+(?P<year>\d{{4}})\b", re.IGNORECASE),
        _date_from_month_name,
    ),
    # "Sep 19, 2025"
    (
        re.compile(rf"\b{MONTH_NAME}\s+(?P<day>\d{{1,2}}),?\s+(?P<year>\d{{4}})\b", re.IGNORECASE),
        _date_from_month_name,
    ),
    # "09/02/2025", "19-09-2025", "19.09.2025"
    (
        re.compile(r"\b(?P<first>\d{1,2})[/\-.](?P<second>\d{1,2})[/\-.](?P<year>\d{4})\b"),
        _date_from_numeric_day_month,
    ),
    # "2025-09-15", "2025/09/10", "2025.9.1"
    (
        re.compile(r"\b(?P<year>\d{4})[/\-.](?P<month>\d{1,2})[/\-.](?P<day>\d{1,2})\b"),
        _date_from_numeric_year_first,
    ),
    # "19 Sep 2025", "19 September 2025"
    (
        re.compile(rf"\b(?P<day>\d{{1,2}})\s+{MONTH_NAME}\s+(?P<year>\d{{4}})\b", re.IGNORECASE),
        _date_from_month_name,
    ),
)


def _extract_date(text: str) -> date | None:
    """Return the first decodable date found by the ordered patterns, or None."""
    for pattern, handler in DATE_PATTERNS:
        for match in pattern.finditer(text):
            parsed = handler(match)
            if parsed is not None:
                return parsed
    return None


# ---------------------------------------------------------------------------
# Amount
# ---------------------------------------------------------------------------


def _largest_currency_amount(text: str, _lines: Sequence[str]) -> Decimal | None:
    """Largest currency-tagged amount; assumed to be the total over line items and subtotals."""
    amounts = [to_decimal(token) for token in CURRENCY_AMOUNT_PATTERN.findall(text)]
    positive = [amount for amount in amounts if amount is not None and amount > 0]
    return max(positive) if positive else None


def _total_line_amount(_text: str, lines: Sequence[str]) -> Decimal | None:
    """First number on a line mentioning total/amount/balance."""
    for line in lines:
        line_lower = line.lower()
        if not any(keyword in line_lower for keyword in TOTAL_LINE_KEYWORDS):
            continue
        match = BARE_NUMBER_PATTERN.search(strip_currency(line))
        if match is None:
            continue
        amount = to_decimal(match.group(0))
        if amount is not None and amount > 0:
            return amount
    return None


def _largest_plausible_number(text: str, _lines: Sequence[str]) -> Decimal | None:
    """Largest bare number in (0, MAX_BARE_AMOUNT)."""
    numbers = [to_decimal(token) for token in BARE_NUMBER_PATTERN.findall(strip_currency(text))]
    plausible = [n for n in numbers if n is not None and 0 < n < MAX_BARE_AMOUNT]
    return max(plausible) if plausible else None


AMOUNT_STRATEGIES: tuple[AmountStrategy, ...] = (
    _largest_currency_amount,
    _total_line_amount,
    _largest_plausible_number,
)


def _extract_amount(text: str, lines: Sequence[str]) -> Decimal | None:
    """Return the amount chosen by the first strategy that finds one, or None."""
    for strategy in AMOUNT_STRATEGIES:
        amount = strategy(text, lines)
        if amount is not None:
            return amount
    return None


# ---------------------------------------------------------------------------
# Merchant
# ---------------------------------------------------------------------------


@lru_cache(maxsize=8)
def _known_merchant_pattern(known_merchants: tuple[str, ...]) -> re.Pattern[str] | None:
    if not known_merchants:
        return None
    names = "|".join(re.escape(name) for name in known_merchants)
    # Whole line, or the name followed by more words
    return re.compile(rf"^({names})(?:$|\s+)", re.IGNORECASE)


def _is_merchant_candidate(line: str) -> bool:
    """Return True if a line could plausibly be a merchant name."""
    if not MIN_MERCHANT_LINE_LENGTH < len(line) < MAX_MERCHANT_LINE_LENGTH:
        return False
    if not HAS_LETTER_PATTERN.search(line):
        return False
    lower = line.lower()
    if any(word in lower for word in MERCHANT_NOISE_WORDS):
        return False
    if any(fragment in lower for fragment in WEEKDAY_FRAGMENTS):
        return False
    if NUMERIC_ONLY_PATTERN.match(line) or PRICE_PREFIX_PATTERN.match(line):
        return False
    if PHONE_FRAGMENT_PATTERN.search(line):
        return False
    return True


def _extract_merchant(lines: Sequence[str], known_merchants: Sequence[str] = ()) -> str | None:
    """
    Extract merchant name using two strategies.

    Strategy order:
    1. First line that is, or starts with, a known merchant name
    2. Shortest line that survives the noise filters (ties keep line order)
    """
    pattern = _known_merchant_pattern(tuple(known_merchants))
    if pattern is not None:
        for line in lines:
            match = pattern.match(line)
            if match:
                return match.group(1)

    candidates = [line for line in lines if _is_merchant_candidate(line)]
    if not candidates:
        return None
    return min(candidates, key=len)


# ---------------------------------------------------------------------------
# Direction
# ---------------------------------------------------------------------------


def _extract_direction(text: str) -> Direction:
    """Return "credit" when any money-in keyword appears, otherwise "debit"."""
    lower = text.lower()
    if any(indicator in lower for indicator in CREDIT_INDICATORS):
        return "credit"
    return "debit"
