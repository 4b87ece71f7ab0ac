"""Reconcile Paystack webhook events with bookings, payments and invoices.

Each write is attempted and committed on its own: a failure in one is logged
and does not undo the others. Delivery guarantees (deduplication, ordering)
are the provider's; handlers are written so a redelivered event converges to
the same rows.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.constants import (
    BookingStatus,
    BookingPaymentStatus,
    InvoiceStatus,
    PaymentStatus,
    PAYSTACK_CHARGE_SUCCESS,
    PAYSTACK_CHARGE_FAILED,
    PAYSTACK_INVOICE_PAYMENT_FAILED,
    PAYSTACK_REFUND_PROCESSED,
)
from app.core.config import settings
from app.models.booking import Booking
from app.models.invoice import Invoice
from app.models.payment import Payment

logger = logging.getLogger(__name__)


def _parse_paid_at(value: Optional[str]) -> datetime:
    if not value:
        return datetime.utcnow()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        logger.warning(f"Unparseable paid_at '{value}', using current time")
        return datetime.utcnow()


def _amount(data: Dict[str, Any]) -> Decimal:
    # Paystack reports amounts in the currency's subunit
    return Decimal(str(data.get("amount") or 0)) / Decimal(100)


def generate_invoice_number() -> str:
    return f"{settings.INVOICE_PREFIX}-{datetime.utcnow():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


class PaymentWebhookService:
    """Applies one webhook event as a series of independent writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _attempt(self, label: str, step: Callable[[], Awaitable[None]]) -> bool:
        try:
            await step()
            await self.db.commit()
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Webhook step '{label}' failed: {str(e)}")
            return False

    async def _booking(self, booking_id: str) -> Booking:
        result = await self.db.execute(select(Booking).where(Booking.booking_id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise LookupError(f"Booking {booking_id} not found")
        return booking

    async def _payment(self, reference: str) -> Optional[Payment]:
        result = await self.db.execute(
            select(Payment).where(Payment.transaction_reference == reference)
        )
        return result.scalar_one_or_none()

    async def handle_event(self, event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        metadata = data.get("metadata") or {}
        booking_id = metadata.get("booking_id")
        # refund payloads carry the charge reference as transaction_reference
        reference = data.get("reference") or data.get("transaction_reference")
        summary: Dict[str, Any] = {"event": event_type, "booking_id": booking_id, "results": {}}

        if event_type not in (
            PAYSTACK_CHARGE_SUCCESS,
            PAYSTACK_CHARGE_FAILED,
            PAYSTACK_INVOICE_PAYMENT_FAILED,
            PAYSTACK_REFUND_PROCESSED,
        ):
            logger.info(f"Unhandled webhook event type: {event_type}")
            summary["ignored"] = True
            return summary

        if not booking_id and reference:
            payment = await self._payment(reference)
            if payment:
                booking_id = payment.booking_id
                summary["booking_id"] = booking_id

        if not booking_id:
            logger.error(f"No booking_id in metadata for {event_type} (reference {reference})")
            summary["ignored"] = True
            return summary

        if event_type == PAYSTACK_CHARGE_SUCCESS:
            summary["results"] = await self._handle_charge_success(booking_id, reference, data, metadata)
        elif event_type in (PAYSTACK_CHARGE_FAILED, PAYSTACK_INVOICE_PAYMENT_FAILED):
            summary["results"] = await self._handle_payment_failed(booking_id, reference)
        else:
            summary["results"] = await self._handle_refund(booking_id, reference)

        logger.info(f"Webhook {event_type} for booking {booking_id}: {summary['results']}")
        return summary

    async def _handle_charge_success(
        self, booking_id: str, reference: Optional[str], data: Dict[str, Any], metadata: Dict[str, Any]
    ) -> Dict[str, bool]:
        paid_at = _parse_paid_at(data.get("paid_at") or data.get("paidAt"))
        amount = _amount(data)
        currency = (data.get("currency") or settings.DEFAULT_CURRENCY).upper()

        async def update_booking():
            booking = await self._booking(booking_id)
            booking.payment_status = BookingPaymentStatus.paid
            if booking.status == BookingStatus.pending:
                booking.status = BookingStatus.approved

        async def update_payment():
            if not reference:
                raise ValueError("Event has no reference")
            payment = await self._payment(reference)
            if payment is None:
                payment = Payment(
                    booking_id=booking_id,
                    transaction_reference=reference,
                    amount=amount,
                    currency=currency,
                    payment_metadata=metadata,
                )
                self.db.add(payment)
            payment.mark_completed(paid_at)

        async def create_invoice():
            if reference:
                existing = await self.db.execute(
                    select(Invoice).where(Invoice.transaction_reference == reference)
                )
                if existing.scalar_one_or_none():
                    logger.info(f"Invoice for reference {reference} already exists")
                    return
            self.db.add(Invoice(
                invoice_number=generate_invoice_number(),
                booking_id=booking_id,
                client_id=metadata.get("client_id"),
                provider_id=metadata.get("provider_id"),
                service_title=metadata.get("service_title"),
                transaction_reference=reference,
                amount=amount,
                currency=currency,
                status=InvoiceStatus.PAID,
                paid_at=paid_at,
            ))

        return {
            "booking": await self._attempt("booking", update_booking),
            "payment": await self._attempt("payment", update_payment),
            "invoice": await self._attempt("invoice", create_invoice),
        }

    async def _handle_payment_failed(self, booking_id: str, reference: Optional[str]) -> Dict[str, bool]:
        async def update_booking():
            booking = await self._booking(booking_id)
            booking.payment_status = BookingPaymentStatus.failed
            booking.status = BookingStatus.pending

        async def update_payment():
            payment = await self._payment(reference) if reference else None
            if payment is None:
                raise LookupError(f"Payment {reference} not found")
            payment.mark_failed()

        return {
            "booking": await self._attempt("booking", update_booking),
            "payment": await self._attempt("payment", update_payment),
        }

    async def _handle_refund(self, booking_id: str, reference: Optional[str]) -> Dict[str, bool]:
        async def update_booking():
            booking = await self._booking(booking_id)
            booking.payment_status = BookingPaymentStatus.refunded

        async def update_payment():
            payment = await self._payment(reference) if reference else None
            if payment is None:
                raise LookupError(f"Payment {reference} not found")
            payment.mark_refunded()

        return {
            "booking": await self._attempt("booking", update_booking),
            "payment": await self._attempt("payment", update_payment),
        }
