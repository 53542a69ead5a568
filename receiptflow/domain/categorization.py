"""Pure helpers for keyword-based transaction categorization."""

from __future__ import annotations

from receiptflow.domain.transaction import UNCATEGORIZED, Direction

INCOME_CATEGORY = "Income"

CategoryKeywordTable = tuple[tuple[str, tuple[str, ...]], ...]


def categorize_transaction(
    description: str,
    direction: Direction,
    *,
    table: CategoryKeywordTable,
) -> str:
    """
    Categorize a description using ordered (category, keywords) pairs.

    Credits are checked against the Income keywords first. Every other
    category is then tried in table order and the first substring hit wins.
    Income is never assigned to a debit.
    """
    if not table:
        raise ValueError("Category keyword table is required and must be non-empty")

    desc_lower = description.lower()

    if direction == "credit":
        for category, keywords in table:
            if category == INCOME_CATEGORY and any(kw in desc_lower for kw in keywords):
                return INCOME_CATEGORY

    for category, keywords in table:
        if category == INCOME_CATEGORY and direction != "credit":
            continue
        if any(kw in desc_lower for kw in keywords):
            return category
    return UNCATEGORIZED
