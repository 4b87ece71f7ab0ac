# scripts/backfill_progress.py
"""Recompute stored milestone and booking progress from task rows.

Safe to re-run: bookings whose stored values are already correct are left
unchanged.

    python -m scripts.backfill_progress --dry-run
    python -m scripts.backfill_progress --booking-id <id> --booking-id <id>
"""
import argparse
import asyncio
import logging
from typing import List, Optional

from app.core.database import session_manager
from app.services.ProgressService import ProgressService, BackfillReport
from app.services.ProgressStore import SQLAlchemyProgressStore

logger = logging.getLogger(__name__)


async def run_backfill(
    booking_ids: Optional[List[str]] = None,
    dry_run: bool = True,
    database_url: Optional[str] = None,
) -> BackfillReport:
    """Backfill booking progress.

    Args:
        booking_ids: Only these bookings; all bookings when None.
        dry_run: If True, only reports what would change.
        database_url: Override for the configured database.
    """
    if session_manager.session_factory is None:
        await session_manager.init(database_url)

    async with session_manager.session_factory() as db:
        service = ProgressService(SQLAlchemyProgressStore(db))
        return await service.backfill(booking_ids, dry_run=dry_run)


def print_report(report: BackfillReport, dry_run: bool):
    print("=" * 60)
    if dry_run:
        print("🔍 DRY RUN COMPLETE - No changes were made")
    else:
        print("✓ Backfill complete!")
    print(f"  - Bookings processed: {len(report.entries)}")
    print(f"  - Bookings changed: {len(report.changed)}")
    for entry in report.changed:
        print(f"      {entry.booking_id}: {entry.previous}% -> {entry.current}%")
    print(f"  - Failures: {len(report.failures)}")
    for booking_id, message in report.failures.items():
        print(f"      {booking_id}: {message}")


async def main(args: argparse.Namespace) -> int:
    try:
        report = await run_backfill(args.booking_id or None, dry_run=args.dry_run, database_url=args.database_url)
        print_report(report, args.dry_run)
        return 1 if report.failures else 0
    finally:
        await session_manager.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute stored booking progress")
    parser.add_argument("--booking-id", action="append", help="Limit to this booking (repeatable)")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    return parser.parse_args(argv)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(asyncio.run(main(parse_args())))
