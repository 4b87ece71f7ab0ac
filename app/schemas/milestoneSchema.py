from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.constants.constants import MilestoneStatus
from app.schemas.taskSchema import TaskResponse


class MilestoneCreateRequest(BaseModel):
    """Request schema for creating a milestone under a booking."""
    booking_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    weight: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    due_date: Optional[datetime] = None


class MilestoneUpdateRequest(BaseModel):
    """Fields a provider can edit on an existing milestone. Omitted fields are left as is."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[datetime] = None
    weight: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class MilestoneStatusUpdateRequest(BaseModel):
    status: str


class MilestoneReviewRequest(BaseModel):
    """Client, provider or admin sign-off on a milestone."""
    milestone_id: str
    action: str
    feedback: Optional[str] = Field(None, max_length=2000)


class MilestoneResponse(BaseModel):
    milestone_id: str
    booking_id: str
    title: str
    description: Optional[str] = None
    status: MilestoneStatus
    weight: Optional[float] = None
    order_index: int
    progress_percentage: int
    total_tasks: int
    completed_tasks: int
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MilestoneWithTasksResponse(MilestoneResponse):
    tasks: List[TaskResponse] = []
