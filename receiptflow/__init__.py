"""receiptflow: turn OCR text from receipts and bank-app screenshots into transactions."""

__version__ = "0.1.0"
