from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import aget_db
from app.core.exceptions import NotFoundError, AuthorizationError
from app.core.security import get_current_user
from app.models.booking import Booking
from app.models.user import User
from app.schemas.bookingSchema import BookingResponse
from app.utils.check_booking_access import can_access_booking

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Get a booking with its current overall progress."""
    result = await db.execute(select(Booking).where(Booking.booking_id == booking_id))
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")

    if not can_access_booking(current_user, booking):
        raise AuthorizationError("You do not have access to this booking")

    return booking
