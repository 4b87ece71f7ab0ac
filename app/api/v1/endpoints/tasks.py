"""Task management router: creation, status changes and deletion."""

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies import get_progress_service
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.taskSchema import TaskCreateRequest, TaskResponse, TaskStatusUpdateRequest, TaskUpdateRequest
from app.services.ProgressService import ProgressService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"]
)


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreateRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """
    Create a new task under a milestone. New tasks start as pending.
    Only the booking's provider or an admin can create tasks.
    """
    result = await service.add_task(
        milestone_id=task_data.milestone_id,
        title=task_data.title,
        description=task_data.description,
        due_date=task_data.due_date,
        actor=current_user,
    )

    return {
        "message": "Task created successfully",
        "task": TaskResponse.model_validate(result.task).model_dump(),
        "milestone_progress": result.milestone_progress,
        "booking_progress": result.booking_progress,
    }


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Edit a task's title, description or due date. Only the provider or an admin can do this."""
    task = await service.update_task(task_id, payload.model_dump(exclude_unset=True), actor=current_user)

    return {
        "success": True,
        "task": TaskResponse.model_validate(task).model_dump(),
    }


@router.patch("/{task_id}/status")
async def update_task_status(
    task_id: str,
    status_data: TaskStatusUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """
    Update task status. The client, the provider or an admin may do this.
    Milestone and booking progress are recomputed in the same transaction.
    """
    result = await service.update_task_status(task_id, status_data.status, actor=current_user)

    return {
        "success": True,
        "task": TaskResponse.model_validate(result.task).model_dump(),
        "milestone_progress": result.milestone_progress,
        "booking_progress": result.booking_progress,
    }


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service)
):
    """Delete a task; its milestone and booking are recomputed."""
    result = await service.delete_task(task_id, actor=current_user)

    return {
        "success": True,
        "milestone_id": result.milestone_id,
        "milestone_progress": result.milestone_progress,
        "booking_progress": result.booking_progress,
    }
