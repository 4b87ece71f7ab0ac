from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.constants.constants import TaskStatus


class TaskResponse(BaseModel):
    task_id: str
    milestone_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    due_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskCreateRequest(BaseModel):
    """Request schema for creating a new task."""
    milestone_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[datetime] = None


class TaskStatusUpdateRequest(BaseModel):
    """Request schema for updating task status.

    Kept as a plain string so an unknown status is reported as INVALID_STATUS
    by the progress service.
    """
    status: str


class TaskUpdateRequest(BaseModel):
    """Request schema for editing a task. Omitted fields are left as is."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[datetime] = None
