"""Date helpers for receipt parsing and normalization."""

from datetime import date


def processing_date() -> date:
    """Return the date substituted when a receipt carries no usable date."""
    return date.today()
