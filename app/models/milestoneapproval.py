"""Approval model: a party's sign-off or rejection of a milestone."""

import uuid
from sqlalchemy import Column, String, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from app.constants.constants import ApprovalStatus
from app.models.base import Base, TimestampMixin


class MilestoneApproval(Base, TimestampMixin):
    __tablename__ = "milestone_approvals"
    approval_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    milestone_id = Column(String, ForeignKey("milestones.milestone_id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False)
    status = Column(SQLEnum(ApprovalStatus), nullable=False)
    comment = Column(Text, nullable=True)

    milestone = relationship("Milestone", back_populates="approvals")
    user = relationship("User", foreign_keys=[user_id])
