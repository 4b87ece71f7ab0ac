"""Tasks model: the leaves of the booking progress hierarchy."""

import uuid
from sqlalchemy import Column, Text, String, DateTime, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from app.constants.constants import TaskStatus
from app.models.base import Base, TimestampMixin


class Task(Base, TimestampMixin):
    """Model representing a unit of work inside a milestone."""

    __tablename__ = "tasks"
    task_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    milestone_id = Column(String, ForeignKey("milestones.milestone_id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(TaskStatus), default=TaskStatus.pending, nullable=False)
    due_date = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_by = Column(String, ForeignKey("users.user_id"), nullable=True)
    milestone = relationship("Milestone", back_populates="tasks")
