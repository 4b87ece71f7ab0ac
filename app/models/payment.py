"""Payment records for bookings, keyed by the provider's transaction reference."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.constants.constants import PaymentStatus
from app.models.base import Base, TimestampMixin


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"
    payment_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String, ForeignKey("bookings.booking_id"), nullable=False, index=True)
    transaction_reference = Column(String(100), unique=True, nullable=False, index=True)
    amount = Column(Numeric(12, 3), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    authorization_url = Column(String, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    failed_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    payment_metadata = Column(JSON, nullable=True)

    booking = relationship("Booking", back_populates="payments")

    def mark_completed(self, paid_at: datetime = None):
        self.status = PaymentStatus.COMPLETED
        self.paid_at = paid_at or datetime.utcnow()

    def mark_failed(self):
        self.status = PaymentStatus.FAILED
        self.failed_at = datetime.utcnow()

    def mark_refunded(self):
        self.status = PaymentStatus.REFUNDED
        self.refunded_at = datetime.utcnow()
