"""Milestone model: a weighted phase of a booking."""

import uuid
from sqlalchemy import Column, String, Text, DateTime, Float, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.constants.constants import MilestoneStatus, DEFAULT_MILESTONE_WEIGHT
from app.models.base import Base, TimestampMixin


class Milestone(Base, TimestampMixin):
    """Model representing a weighted group of tasks under a booking."""

    __tablename__ = "milestones"
    milestone_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String, ForeignKey("bookings.booking_id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    status = Column(SQLEnum(MilestoneStatus), default=MilestoneStatus.pending, nullable=False)
    weight = Column(Float, default=DEFAULT_MILESTONE_WEIGHT, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)
    progress_percentage = Column(Integer, default=0, nullable=False)
    total_tasks = Column(Integer, default=0, nullable=False)
    completed_tasks = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_by = Column(String, ForeignKey("users.user_id"), nullable=True)

    booking = relationship("Booking", back_populates="milestones")
    creator = relationship("User", foreign_keys=[created_by])
    tasks = relationship(
        "Task",
        back_populates="milestone",
        order_by="Task.created_at",
        cascade="all, delete-orphan",
    )
    approvals = relationship(
        "MilestoneApproval",
        back_populates="milestone",
        order_by="MilestoneApproval.created_at",
        cascade="all, delete-orphan",
    )
