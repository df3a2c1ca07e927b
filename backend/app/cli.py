"""Daily jobs, meant to be run by an external scheduler (cron or equivalent).

    ledgerline process-recurring [--date YYYY-MM-DD] [--dry-run]
    ledgerline refresh-rates
    ledgerline daily
"""

import argparse
import logging
import sys
from datetime import date, timedelta

from backend.app.core.dev_seed import ensure_schema
from backend.app.core.logging import configure_logging
from backend.app.core.time import utc_tomorrow
from backend.app.db.session import SessionLocal
from backend.app.services.currency import refresh_rates
from backend.app.services.recurring import get_due_schedules, process_due_schedules

logger = logging.getLogger("backend.app.cli")


def _cutoff(value: str | None) -> date:
    """``--date`` names the processing day; the cutoff keeps the one-day grace window."""
    if value is None:
        return utc_tomorrow()
    return date.fromisoformat(value) + timedelta(days=1)


def run_process_recurring(target: str | None = None, dry_run: bool = False) -> int:
    try:
        cutoff = _cutoff(target)
    except ValueError:
        logger.error("Invalid date format: %s", target)
        return 2

    db = SessionLocal()
    try:
        if dry_run:
            schedules = get_due_schedules(db, cutoff)
            print(f"[DRY RUN] Found {len(schedules)} schedules due on or before {cutoff}:")
            for schedule in schedules:
                print(
                    f"  - Schedule #{schedule.id}: customer {schedule.customer_id} "
                    f"({schedule.interval}) next run {schedule.next_run_date} {schedule.currency}"
                )
            return 0

        results = process_due_schedules(db, cutoff)
    finally:
        db.close()

    print(
        f"Processing complete: {results['success']} successful, {results['failed']} failed, "
        f"{results['skipped']} skipped (of {results['total']} total)"
    )
    return 0


def run_refresh_rates() -> int:
    db = SessionLocal()
    try:
        result = refresh_rates(db)
    finally:
        db.close()
    if not result["success"]:
        print(f"Rate refresh failed: {result['error']}", file=sys.stderr)
        return 1
    print(f"Refreshed {result['count']} exchange rates for {result['date']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ledgerline", description="Ledgerline scheduled jobs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    recurring = subparsers.add_parser("process-recurring", help="Generate invoices for due recurring schedules")
    recurring.add_argument("--date", help="Processing day (YYYY-MM-DD). Defaults to today (UTC).")
    recurring.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be processed without generating invoices.",
    )

    subparsers.add_parser("refresh-rates", help="Fetch exchange rates into the rate table")
    subparsers.add_parser("daily", help="Run recurring processing, then the rate refresh")
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    ensure_schema()

    if args.command == "process-recurring":
        return run_process_recurring(args.date, args.dry_run)
    if args.command == "refresh-rates":
        return run_refresh_rates()

    recurring_code = run_process_recurring()
    rates_code = run_refresh_rates()
    return recurring_code or rates_code


if __name__ == "__main__":
    sys.exit(main())
