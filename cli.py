#!/usr/bin/env python3
"""
Command-line interface for the pantry expiry notifier.

Usage:
    uv run python cli.py [command] [options]

Commands:
    evaluate       Run one evaluation pass and print the report
    notifications  List a user's notifications
    test           Run the test suite
    serve          Start the API server (with the periodic worker)

Examples:
    uv run python cli.py evaluate
    uv run python cli.py evaluate --date 2025-05-31
    uv run python cli.py notifications user-001
    uv run python cli.py serve
"""

import argparse
import logging
import subprocess
import sys
from datetime import datetime, time, timezone


def run_evaluate(on_date: str = None) -> None:
    """Run a single evaluation pass against the configured stores."""
    from notifier.service import build_components
    from pantry.clock import FixedClock
    from pantry.config import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
        datefmt="%H:%M:%S",
    )

    clock = None
    if on_date:
        try:
            day = datetime.strptime(on_date, "%Y-%m-%d").date()
        except ValueError:
            print(f"Invalid date: {on_date} (expected YYYY-MM-DD)")
            sys.exit(1)
        clock = FixedClock(datetime.combine(day, time(9, 0), tzinfo=timezone.utc))

    components = build_components(settings, clock=clock)
    try:
        report = components.evaluator.run_pass()
    finally:
        components.shutdown()

    print("\nEvaluation report")
    print("=" * 40)
    for name, value in report.model_dump().items():
        print(f"  {name:<24} {value}")


def run_notifications(user_id: str) -> None:
    """Print a user's notification history."""
    from notifier.ledger import NotificationLedger
    from pantry.config import get_settings

    ledger = NotificationLedger.from_url(get_settings().database_url)
    records = ledger.list_notifications(user_id)
    if not records:
        print(f"No notifications for {user_id}")
        return

    for record in records:
        marker = " " if record.is_read else "*"
        print(f"{marker} {record.created_at:%Y-%m-%d %H:%M} {record.title}")
        print(f"    {record.message}")
        for entry in ledger.list_deliveries(record.id):
            print(f"    -> {entry.channel}: {entry.status}")


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Pantry Expiry Notifier CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s evaluate
  %(prog)s evaluate --date 2025-05-31
  %(prog)s notifications user-001
  %(prog)s test -v
  %(prog)s serve --reload
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Evaluate command
    evaluate_parser = subparsers.add_parser("evaluate", help="Run one evaluation pass")
    evaluate_parser.add_argument(
        "--date",
        default=None,
        help="Evaluate as of this date (YYYY-MM-DD) instead of today",
    )

    # Notifications command
    notifications_parser = subparsers.add_parser("notifications", help="List a user's notifications")
    notifications_parser.add_argument("user_id", help="User to list notifications for")

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command == "evaluate":
        run_evaluate(args.date)
    elif args.command == "notifications":
        run_notifications(args.user_id)
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
