"""Receipt command handlers used by the CLI."""

import argparse
import json
import sys
from pathlib import Path

from receiptflow.domain.errors import InputError
from receiptflow.domain.transaction import ExtractionResult
from receiptflow.runtime import get_logger

logger = get_logger(__name__)


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.exists():
        print(f"Error: file not found: {path}")
        sys.exit(1)
    return path.read_text(encoding="utf-8")


def _print_extraction(extraction: ExtractionResult) -> None:
    transaction = extraction.transaction
    print("=" * 60)
    print(f"EXTRACTED TRANSACTION ({extraction.provenance})")
    print("=" * 60)
    date_str = transaction.date.isoformat()
    if "date" in extraction.degraded_fields:
        date_str += " (processing date)"
    print(f"Date:        {date_str}")
    print(f"Description: {transaction.description}")
    print(f"Amount:      ${transaction.amount:.2f}")
    print(f"Type:        {transaction.type}")
    print(f"Category:    {transaction.category}")
    if transaction.notes:
        print(f"Notes:       {transaction.notes}")
    if extraction.fallback_reason:
        print(f"\nFallback reason: {extraction.fallback_reason}")
    if extraction.degraded_fields:
        print(f"Defaulted fields: {', '.join(extraction.degraded_fields)}")
    print("=" * 60)


def _extraction_payload(extraction: ExtractionResult) -> dict[str, object]:
    return {
        "transaction": extraction.transaction.to_dict(),
        "provenance": extraction.provenance,
        "fallback_reason": extraction.fallback_reason,
        "degraded_fields": list(extraction.degraded_fields),
    }


def cmd_extract(args: argparse.Namespace) -> None:
    """Extract one transaction from OCR text and print it."""
    from receiptflow.application.extraction import extract_transaction

    text = _read_text(args.file)
    try:
        extraction = extract_transaction(text, use_ai=not args.legacy_only)
    except InputError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    if args.json:
        print(json.dumps(_extraction_payload(extraction), indent=2))
    else:
        _print_extraction(extraction)


def cmd_scan(args: argparse.Namespace) -> None:
    """OCR a receipt image, extract its transaction and store it for a user."""
    from receiptflow.application.scan import ReceiptScanRequest, run_receipt_scan

    result = run_receipt_scan(
        ReceiptScanRequest(
            image_path=Path(args.image),
            user_id=args.user,
            provider=args.provider,
            use_ai=not args.legacy_only,
        )
    )

    if result.status == "file_not_found":
        logger.error("%s", result.error)
        print(f"Error: {result.error}")
        sys.exit(1)

    if result.status == "misconfigured":
        logger.error("%s", result.error)
        print(f"Configuration error: {result.error}")
        sys.exit(1)

    if result.status == "ocr_unavailable":
        logger.error("%s", result.error)
        print(f"OCR service unavailable: {result.error}")
        sys.exit(1)

    if result.status == "invalid_image":
        print(f"Invalid image: {result.error}")
        sys.exit(1)

    if result.status == "no_text":
        print(f"No text detected: {result.error}")
        sys.exit(1)

    if result.extraction is not None:
        _print_extraction(result.extraction)

    if result.status == "store_rejected":
        print(f"Transaction rejected by store: {result.error}")
        sys.exit(1)

    if result.stored is None:
        print("Scan failed: missing stored transaction.")
        sys.exit(1)

    print(f"\nSaved transaction {result.stored.id} for user {result.stored.user_id}")


def cmd_query(args: argparse.Namespace) -> None:
    """Answer a spending question from the user's stored transactions."""
    from receiptflow.application.query import answer_query
    from receiptflow.runtime.settings import get_settings
    from receiptflow.runtime.transaction_store import TransactionStore

    store = TransactionStore.from_url(get_settings().database_url)
    text = " ".join(args.text) if args.text else None
    try:
        answer = answer_query(store, args.user, preset=args.preset, text=text)
    except InputError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    if args.json:
        print(json.dumps(answer.to_dict(), indent=2))
    else:
        print(answer.answer_text)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI server."""
    import uvicorn

    from receiptflow.runtime import server

    print(f"Starting receiptflow server on {args.host}:{args.port}")
    print(f"Endpoints: http://{args.host}:{args.port}/structure | /process | /query | /health")
    print("Press Ctrl+C to stop")

    uvicorn.run(server.app, host=args.host, port=args.port)
