"""Progress recomputation, analytics and backfill endpoints."""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import get_progress_service
from app.core.security import get_current_user, require_admin
from app.models.user import User
from app.schemas.bookingSchema import BackfillRequest, BackfillResponse, ProgressResponse
from app.services.ProgressService import ProgressService
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"])


@router.post("/{booking_id}/calculate", response_model=ProgressResponse)
async def calculate_booking_progress(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Recompute and persist a booking's progress from its tasks and milestone weights."""
    progress = await service.calculate_booking_progress(booking_id, actor=current_user)
    return ProgressResponse(booking_id=booking_id, booking_progress=progress)


@router.get("/{booking_id}/analytics")
async def get_progress_analytics(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Milestone and task counts by status, with stored and computed progress."""
    analytics = await service.get_progress_analytics(booking_id, actor=current_user)
    return {
        "success": True,
        "analytics": analytics,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.post("/backfill", response_model=BackfillResponse)
@limiter.limit("5/minute")
async def backfill_progress(
    request: Request,
    payload: BackfillRequest,
    current_user: User = Depends(require_admin),
    service: ProgressService = Depends(get_progress_service)
):
    """Admin-only: recompute stored progress for all or selected bookings."""
    logger.info(f"Backfill requested by {current_user.user_id} (dry_run={payload.dry_run})")
    report = await service.backfill(payload.booking_ids, dry_run=payload.dry_run)
    return BackfillResponse(
        processed=len(report.entries),
        changed=[
            {"booking_id": e.booking_id, "previous": e.previous, "current": e.current}
            for e in report.changed
        ],
        failures=report.failures,
        dry_run=payload.dry_run,
    )
