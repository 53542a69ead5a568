"""Spending questions answered from a user's stored transactions.

Supports three presets and two free-text phrasings:
- "how much did I spend on <category> in <month>"
- "total spend last <N> days"
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from receiptflow.domain.errors import InputError
from receiptflow.receipt.date_utils import processing_date
from receiptflow.runtime.logging import get_logger

if TYPE_CHECKING:
    from receiptflow.runtime.transaction_store import TransactionStore

logger = get_logger(__name__)

QUERY_PRESETS: tuple[str, ...] = ("groceries_30d", "top_category_this_month", "net_this_month_vs_last")

# Keyword-table and AI taxonomy names for the same category.
GROCERY_CATEGORIES = ("Groceries", "grocery")

CATEGORY_MONTH_PATTERN = re.compile(r"how much.*on (\w+) in (\w+)")
LAST_DAYS_PATTERN = re.compile(r"total spend last (\d{1,6}) days")

UNKNOWN_QUERY_ANSWER = (
    "I don't understand that query. Try asking about spending on specific categories or time periods."
)


@dataclass(frozen=True)
class QueryAnswer:
    """Human-readable answer plus the figures behind it."""

    answer_text: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"answerText": self.answer_text}
        if self.data:
            payload["data"] = {k: float(v) if isinstance(v, Decimal) else v for k, v in self.data.items()}
        return payload


def month_number(name: str) -> int | None:
    """Map "mar", "march" or "sept" to a month number; None for anything else."""
    name = name.lower()
    if name == "sept":
        return 9
    for number in range(1, 13):
        if name in (calendar.month_name[number].lower(), calendar.month_abbr[number].lower()):
            return number
    return None


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _previous_month_bounds(today: date) -> tuple[date, date]:
    last_day = today.replace(day=1) - timedelta(days=1)
    return last_day.replace(day=1), last_day


def _money(amount: Decimal) -> str:
    return f"${amount:.2f}"


def answer_preset(store: TransactionStore, user_id: str, preset: str, *, today: date | None = None) -> QueryAnswer:
    today = today or processing_date()

    if preset == "groceries_30d":
        total = store.total_amount(
            user_id,
            start=today - timedelta(days=30),
            direction="debit",
            categories=GROCERY_CATEGORIES,
        )
        return QueryAnswer(
            f"You've spent {_money(total)} on groceries in the last 30 days.",
            {"amount": total, "period": "30 days", "category": "Groceries"},
        )

    if preset == "top_category_this_month":
        totals = store.category_totals(user_id, start=today.replace(day=1))
        if not totals:
            return QueryAnswer("No transactions found for this month.")
        category, amount = totals[0]
        return QueryAnswer(
            f"Your top spending category this month is {category} with {_money(amount)}.",
            {"category": category, "amount": amount},
        )

    if preset == "net_this_month_vs_last":
        last_start, last_end = _previous_month_bounds(today)
        this_month = store.net_amount(user_id, start=today.replace(day=1))
        last_month = store.net_amount(user_id, start=last_start, end=last_end)
        difference = this_month - last_month
        sign = "+" if difference >= 0 else ""
        return QueryAnswer(
            f"This month's net is {_money(this_month)} vs last month's {_money(last_month)} "
            f"({sign}{_money(difference)}).",
            {"thisMonth": this_month, "lastMonth": last_month, "difference": difference},
        )

    return QueryAnswer("Unknown preset query.")


def answer_text_query(store: TransactionStore, user_id: str, text: str, *, today: date | None = None) -> QueryAnswer:
    today = today or processing_date()
    lower = text.lower()

    match = CATEGORY_MONTH_PATTERN.search(lower)
    if match:
        category, month_name = match.groups()
        month = month_number(month_name)
        if month is not None:
            start, end = _month_bounds(today.year, month)
            total = store.total_amount(
                user_id,
                start=start,
                end=end,
                direction="debit",
                category_contains=category,
            )
            return QueryAnswer(
                f"You spent {_money(total)} on {category} in {month_name}.",
                {"amount": total, "category": category, "month": month_name},
            )

    match = LAST_DAYS_PATTERN.search(lower)
    if match:
        days = int(match.group(1))
        start = today - timedelta(days=min(days, (today - date.min).days))
        total = store.total_amount(user_id, start=start, direction="debit")
        return QueryAnswer(
            f"You spent {_money(total)} in the last {days} days.",
            {"amount": total, "days": days},
        )

    return QueryAnswer(UNKNOWN_QUERY_ANSWER)


def answer_query(
    store: TransactionStore,
    user_id: str,
    *,
    preset: str | None = None,
    text: str | None = None,
    today: date | None = None,
) -> QueryAnswer:
    """
    Answer a spending question for one user.

    A preset wins over text when both are given.

    Raises:
        InputError: neither a preset nor a non-blank text was given.
    """
    if preset:
        logger.debug("Answering preset query %s", preset)
        return answer_preset(store, user_id, preset, today=today)
    if text and text.strip():
        logger.debug("Answering text query")
        return answer_text_query(store, user_id, text, today=today)
    raise InputError("Either preset or text query required")
