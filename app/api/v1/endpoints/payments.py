"""Booking checkout through Paystack."""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.constants.constants import BookingPaymentStatus, PaymentStatus
from app.core.config import settings
from app.core.database import aget_db
from app.core.exceptions import NotFoundError, AuthorizationError
from app.core.security import get_current_user
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.user import User
from app.schemas.paymentSchema import PaymentInitRequest, PaymentInitResponse, PaystackInitPayload
from app.services.PaystackServices import PaystackService, PaystackError
from app.utils.check_booking_access import check_admin_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/initialize", response_model=PaymentInitResponse)
async def initialize_booking_payment(
    payload: PaymentInitRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Start a Paystack transaction for a booking. Only its client (or an admin) may pay."""
    result = await db.execute(select(Booking).where(Booking.booking_id == payload.booking_id))
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")

    if booking.client_id != current_user.user_id and not check_admin_role(current_user):
        raise AuthorizationError("Only the booking's client can pay for it")

    if booking.payment_status == BookingPaymentStatus.paid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Booking is already paid")

    if not booking.amount or booking.amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Booking has no payable amount")

    reference = f"BK-{uuid.uuid4().hex[:16].upper()}"
    currency = booking.currency or settings.DEFAULT_CURRENCY
    metadata = {
        "booking_id": booking.booking_id,
        "client_id": booking.client_id,
        "provider_id": booking.provider_id,
        "service_title": booking.service_title,
    }

    try:
        response = await PaystackService.initialize_payment(
            data=PaystackInitPayload(
                amount=float(booking.amount),
                email=current_user.email,
                reference=reference,
                currency=currency,
                callback_url=payload.callback_url or f"{settings.FRONTEND_URL}/dashboard/bookings/{booking.booking_id}",
                payment_metadata=metadata,
            )
        )
    except PaystackError as e:
        logger.error(f"Paystack initialization failed for booking {booking.booking_id}: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    data = response.get("data", {})
    payment = Payment(
        booking_id=booking.booking_id,
        transaction_reference=reference,
        amount=booking.amount,
        currency=currency,
        status=PaymentStatus.PENDING,
        authorization_url=data.get("authorization_url"),
        payment_metadata=metadata,
    )
    db.add(payment)
    await db.commit()

    logger.info(f"Payment {reference} initialized for booking {booking.booking_id}")
    return PaymentInitResponse(
        payment_id=payment.payment_id,
        reference=reference,
        authorization_url=data.get("authorization_url"),
        access_code=data.get("access_code"),
    )
