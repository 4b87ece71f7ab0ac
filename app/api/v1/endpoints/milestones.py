import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.api.v1.dependencies import get_progress_service
from app.core.database import aget_db
from app.core.exceptions import NotFoundError, AuthorizationError
from app.core.security import get_current_user
from app.models.booking import Booking
from app.models.milestones import Milestone
from app.models.user import User
from app.schemas.milestoneSchema import (
    MilestoneCreateRequest,
    MilestoneResponse,
    MilestoneReviewRequest,
    MilestoneStatusUpdateRequest,
    MilestoneUpdateRequest,
    MilestoneWithTasksResponse,
)
from app.services.ProgressService import ProgressService
from app.utils.check_booking_access import can_access_booking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("/booking/{booking_id}")
async def get_booking_milestones(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Get all milestones of a booking with their tasks, in display order."""
    booking_query = await db.execute(select(Booking).where(Booking.booking_id == booking_id))
    booking = booking_query.scalar_one_or_none()

    if not booking:
        raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")

    if not can_access_booking(current_user, booking):
        raise AuthorizationError("You do not have access to this booking")

    try:
        query = await db.execute(
            select(Milestone)
            .options(selectinload(Milestone.tasks))
            .where(Milestone.booking_id == booking_id)
            .order_by(Milestone.order_index, Milestone.created_at)
        )
        milestones = query.scalars().all()
    except Exception as e:
        logger.error(f"Error fetching milestones for booking {booking_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error fetching milestones: {str(e)}")

    return {
        "booking_id": booking.booking_id,
        "project_progress": booking.project_progress,
        "milestones": [
            MilestoneWithTasksResponse.model_validate(m).model_dump()
            for m in milestones
        ],
    }


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_milestone(
    milestone_data: MilestoneCreateRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """
    Create a new milestone for a booking.
    Only the booking's provider or an admin can create milestones.
    """
    result = await service.add_milestone(
        booking_id=milestone_data.booking_id,
        title=milestone_data.title,
        description=milestone_data.description,
        weight=milestone_data.weight,
        due_date=milestone_data.due_date,
        actor=current_user,
    )

    return {
        "message": "Milestone created successfully",
        "milestone": MilestoneResponse.model_validate(result.milestone).model_dump(),
        "booking_progress": result.booking_progress,
    }


@router.post("/approve")
async def review_milestone(
    payload: MilestoneReviewRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """
    Approve or reject a milestone.
    Approving completes it; rejecting sends it back to in_progress.
    """
    result = await service.review_milestone(
        payload.milestone_id, payload.action, actor=current_user, feedback=payload.feedback
    )

    return {
        "success": True,
        "approval_status": result.approval.status.value,
        "milestone": MilestoneResponse.model_validate(result.milestone).model_dump(),
        "booking_progress": result.booking_progress,
    }


@router.patch("/{milestone_id}")
async def update_milestone(
    milestone_id: str,
    payload: MilestoneUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Edit title, description, due date or weight. A weight change recomputes the booking."""
    result = await service.update_milestone(
        milestone_id, payload.model_dump(exclude_unset=True), actor=current_user
    )

    return {
        "success": True,
        "milestone": MilestoneResponse.model_validate(result.milestone).model_dump(),
        "booking_progress": result.booking_progress,
    }


@router.patch("/{milestone_id}/status")
async def update_milestone_status(
    milestone_id: str,
    payload: MilestoneStatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Update a milestone's status; the booking's progress is recomputed."""
    result = await service.update_milestone_status(milestone_id, payload.status, actor=current_user)

    return {
        "success": True,
        "milestone": MilestoneResponse.model_validate(result.milestone).model_dump(),
        "booking_progress": result.booking_progress,
    }


@router.delete("/{milestone_id}")
async def delete_milestone(
    milestone_id: str,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Delete a milestone and its tasks; the booking's progress is recomputed."""
    result = await service.delete_milestone(milestone_id, actor=current_user)

    return {
        "success": True,
        "booking_id": result.booking_id,
        "booking_progress": result.booking_progress,
    }
