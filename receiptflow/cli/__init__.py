"""Command-line interface for receiptflow.

Usage:
    receiptflow extract [file|-]
    receiptflow extract receipt.txt --legacy-only --json
    receiptflow scan <image> --user <user-id>
    receiptflow serve [--host] [--port]
"""
