"""Tests for the progress backfill command."""
import pytest

from app.core.database import session_manager
from app.models.booking import Booking
from scripts.backfill_progress import parse_args, run_backfill

pytestmark = pytest.mark.unit


def test_parse_args():
    args = parse_args(["--booking-id", "a", "--booking-id", "b", "--dry-run"])

    assert args.booking_id == ["a", "b"]
    assert args.dry_run is True
    assert args.database_url is None


async def test_run_backfill_against_database(seed, booking, session_factory, engine):
    milestone = await seed.milestone(booking)
    await seed.tasks(milestone, 4, completed=1)

    session_manager.engine = engine
    session_manager.session_factory = session_factory
    try:
        dry = await run_backfill(dry_run=True)
        real = await run_backfill(dry_run=False)
    finally:
        session_manager.engine = None
        session_manager.session_factory = None

    assert [e.current for e in dry.changed] == [25]
    assert [e.current for e in real.changed] == [25]

    async with session_factory() as session:
        stored = await session.get(Booking, booking.booking_id)
    assert stored.project_progress == 25
