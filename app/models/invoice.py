"""Invoice records created when a booking payment succeeds."""

import uuid
from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.constants.constants import InvoiceStatus
from app.models.base import Base, TimestampMixin


class Invoice(Base, TimestampMixin):
    __tablename__ = "invoices"
    invoice_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    booking_id = Column(String, ForeignKey("bookings.booking_id"), nullable=False, index=True)
    client_id = Column(String, ForeignKey("users.user_id"), nullable=True)
    provider_id = Column(String, ForeignKey("users.user_id"), nullable=True)
    transaction_reference = Column(String(100), unique=True, nullable=True, index=True)
    service_title = Column(String, nullable=True)
    amount = Column(Numeric(12, 3), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(SQLEnum(InvoiceStatus), default=InvoiceStatus.PAID, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    booking = relationship("Booking", back_populates="invoices")
