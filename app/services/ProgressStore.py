"""Storage access for the progress service.

The progress service never touches a global connection: it is handed a
ProgressStore which knows how to fetch a row (optionally locked), read the
children of a row, write derived fields and run a unit of work atomically.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from sqlalchemy import select, func, case, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.constants import TaskStatus
from app.models.booking import Booking
from app.models.milestones import Milestone
from app.models.milestoneapproval import MilestoneApproval
from app.models.task import Task
from app.models.user import User
from app.services.progress import ProgressChild

logger = logging.getLogger(__name__)


class ProgressStore(ABC):
    """Abstract storage interface used by ProgressService."""

    @abstractmethod
    def transaction(self) -> AsyncIterator["ProgressStore"]:
        """All-or-nothing unit of work. Commits on exit, rolls back on error."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def get_booking(self, booking_id: str, for_update: bool = False) -> Optional[Booking]: ...

    @abstractmethod
    async def get_milestone(self, milestone_id: str, for_update: bool = False) -> Optional[Milestone]: ...

    @abstractmethod
    async def lock_milestones(self, booking_id: str) -> List[Milestone]:
        """Lock every milestone of a booking, in a stable order."""

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Task]: ...

    @abstractmethod
    async def list_milestones(self, booking_id: str) -> List[Milestone]: ...

    @abstractmethod
    async def list_tasks(self, milestone_id: str) -> List[Task]: ...

    @abstractmethod
    async def list_booking_ids(self) -> List[str]: ...

    @abstractmethod
    async def count_tasks(self, milestone_id: str) -> Tuple[int, int]:
        """Return (completed, total) for the milestone's tasks."""

    @abstractmethod
    async def milestone_children(self, booking_id: str) -> List[ProgressChild]:
        """Current (progress_percentage, weight) of every milestone of a booking."""

    @abstractmethod
    async def next_order_index(self, booking_id: str) -> int: ...

    @abstractmethod
    async def add(self, instance) -> None: ...

    @abstractmethod
    async def delete_task(self, task: Task) -> None: ...

    @abstractmethod
    async def delete_milestone(self, milestone: Milestone) -> None: ...

    @abstractmethod
    async def set_milestone_progress(
        self, milestone: Milestone, progress: int, completed: int, total: int
    ) -> None: ...

    @abstractmethod
    async def set_booking_progress(self, booking: Booking, progress: int) -> None: ...


class SQLAlchemyProgressStore(ProgressStore):
    """ProgressStore over an AsyncSession.

    Locked reads use SELECT ... FOR UPDATE and refresh the identity map so the
    read-then-write recomputation always sees committed sibling changes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLAlchemyProgressStore"]:
        try:
            yield self
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def get_user(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_booking(self, booking_id: str, for_update: bool = False) -> Optional[Booking]:
        query = select(Booking).where(Booking.booking_id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_milestone(self, milestone_id: str, for_update: bool = False) -> Optional[Milestone]:
        query = select(Milestone).where(Milestone.milestone_id == milestone_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def lock_milestones(self, booking_id: str) -> List[Milestone]:
        result = await self.session.execute(
            select(Milestone)
            .where(Milestone.booking_id == booking_id)
            .order_by(Milestone.milestone_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_task(self, task_id: str) -> Optional[Task]:
        result = await self.session.execute(select(Task).where(Task.task_id == task_id))
        return result.scalar_one_or_none()

    async def list_milestones(self, booking_id: str) -> List[Milestone]:
        result = await self.session.execute(
            select(Milestone)
            .where(Milestone.booking_id == booking_id)
            .order_by(Milestone.order_index, Milestone.created_at)
        )
        return list(result.scalars().all())

    async def list_tasks(self, milestone_id: str) -> List[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.milestone_id == milestone_id)
            .order_by(Task.created_at)
        )
        return list(result.scalars().all())

    async def list_booking_ids(self) -> List[str]:
        result = await self.session.execute(
            select(Booking.booking_id).order_by(Booking.created_at)
        )
        return list(result.scalars().all())

    async def count_tasks(self, milestone_id: str) -> Tuple[int, int]:
        await self.session.flush()
        result = await self.session.execute(
            select(
                func.count(Task.task_id),
                func.coalesce(
                    func.sum(case((Task.status == TaskStatus.completed, 1), else_=0)), 0
                ),
            ).where(Task.milestone_id == milestone_id)
        )
        total, completed = result.one()
        return int(completed or 0), int(total or 0)

    async def milestone_children(self, booking_id: str) -> List[ProgressChild]:
        await self.session.flush()
        result = await self.session.execute(
            select(Milestone.progress_percentage, Milestone.weight)
            .where(Milestone.booking_id == booking_id)
        )
        return [ProgressChild(value=row[0] or 0, weight=row[1]) for row in result.all()]

    async def next_order_index(self, booking_id: str) -> int:
        result = await self.session.execute(
            select(func.max(Milestone.order_index)).where(Milestone.booking_id == booking_id)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def add(self, instance) -> None:
        self.session.add(instance)
        await self.session.flush()

    async def delete_task(self, task: Task) -> None:
        await self.session.delete(task)
        await self.session.flush()

    async def delete_milestone(self, milestone: Milestone) -> None:
        await self.session.execute(
            delete(Task)
            .where(Task.milestone_id == milestone.milestone_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(
            delete(MilestoneApproval)
            .where(MilestoneApproval.milestone_id == milestone.milestone_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.delete(milestone)
        await self.session.flush()

    async def set_milestone_progress(
        self, milestone: Milestone, progress: int, completed: int, total: int
    ) -> None:
        milestone.progress_percentage = progress
        milestone.completed_tasks = completed
        milestone.total_tasks = total
        await self.session.flush()

    async def set_booking_progress(self, booking: Booking, progress: int) -> None:
        booking.project_progress = progress
        await self.session.flush()
