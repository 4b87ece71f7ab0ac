"""User model mirroring identities issued by the auth service."""

import uuid
from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship

from app.constants.constants import UserRole
from app.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"
    user_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.client)
    company_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)

    client_bookings = relationship(
        "Booking", foreign_keys="Booking.client_id", back_populates="client"
    )
    provider_bookings = relationship(
        "Booking", foreign_keys="Booking.provider_id", back_populates="provider"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin
