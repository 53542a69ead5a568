#!/usr/bin/env python3

import argparse
from collections.abc import Callable, Sequence

from receiptflow.application.query import QUERY_PRESETS


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _run_command(command: Callable[[argparse.Namespace], None], args: argparse.Namespace) -> int:
    """
    Run a command handler that may call sys.exit().

    This keeps process termination centralized in this module's entrypoint.
    """
    try:
        command(args)
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Receipt text to transaction extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  extract [file|-]           Extract a transaction from OCR text (stdin if omitted)
  scan <image> --user ID     OCR a receipt image, extract and store the transaction
  query --user ID [TEXT]     Ask a spending question (or --preset NAME)
  serve [--host] [--port]    Start the HTTP API

Environment:
  GEMINI_API_KEY             Enables the AI extractor
  RECEIPTFLOW_DISABLE_AI=1   Always use the rule-based parser
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # extract command
    extract_parser = subparsers.add_parser("extract", help="Extract a transaction from OCR text")
    extract_parser.add_argument("file", nargs="?", default="-", help="OCR text file, or - for stdin (default: -)")
    extract_parser.add_argument("--legacy-only", action="store_true", help="Skip the AI extractor")
    extract_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Scan a receipt image")
    scan_parser.add_argument("image", help="Path to receipt image")
    scan_parser.add_argument("--user", required=True, help="Owning user id for the stored transaction")
    scan_parser.add_argument(
        "--provider", choices=["google", "ocrspace"], default=None, help="OCR provider (default: OCR_PROVIDER)"
    )
    scan_parser.add_argument("--legacy-only", action="store_true", help="Skip the AI extractor")

    # query command
    query_parser = subparsers.add_parser("query", help="Ask a spending question")
    query_parser.add_argument("text", nargs="*", help='Question, e.g. "total spend last 7 days"')
    query_parser.add_argument("--user", required=True, help="User whose transactions are queried")
    query_parser.add_argument("--preset", choices=list(QUERY_PRESETS), default=None, help="Preset question")
    query_parser.add_argument("--json", action="store_true", help="Print the answer as JSON")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "extract":
        from receiptflow.cli.receipt import cmd_extract

        return _run_command(cmd_extract, args)
    elif args.command == "scan":
        from receiptflow.cli.receipt import cmd_scan

        return _run_command(cmd_scan, args)
    elif args.command == "query":
        from receiptflow.cli.receipt import cmd_query

        return _run_command(cmd_query, args)
    elif args.command == "serve":
        from receiptflow.cli.receipt import cmd_serve

        return _run_command(cmd_serve, args)

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
