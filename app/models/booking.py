"""Booking model: a client-provider engagement with derived overall progress."""

import uuid
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.constants.constants import BookingStatus, BookingPaymentStatus
from app.models.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    """Model representing a booked service between a client and a provider."""

    __tablename__ = "bookings"
    booking_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    provider_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    service_title = Column(String, nullable=True)
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.pending, nullable=False)
    payment_status = Column(
        SQLEnum(BookingPaymentStatus), default=BookingPaymentStatus.pending, nullable=False
    )
    amount = Column(Numeric(12, 3), nullable=True)
    currency = Column(String(3), nullable=True)
    # derived from milestones; written only by the progress service
    project_progress = Column(Integer, default=0, nullable=False)

    client = relationship("User", foreign_keys=[client_id], back_populates="client_bookings")
    provider = relationship("User", foreign_keys=[provider_id], back_populates="provider_bookings")
    milestones = relationship(
        "Milestone",
        back_populates="booking",
        order_by="Milestone.order_index",
        cascade="all, delete-orphan",
    )
    payments = relationship("Payment", back_populates="booking")
    invoices = relationship("Invoice", back_populates="booking")

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.provider_id)
