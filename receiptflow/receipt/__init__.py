"""Pure receipt-text extraction logic (no network or filesystem access)."""
