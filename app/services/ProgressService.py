"""Milestone and task mutations with synchronous progress recomputation.

Every mutation runs as one unit of work against the ProgressStore:
task write -> milestone recompute -> booking recompute. Any failure rolls
the whole unit back, so callers never observe a task updated with stale
ancestors.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.constants.constants import (
    TaskStatus,
    MilestoneStatus,
    ApprovalStatus,
    TASK_STATUS_VALUES,
    MILESTONE_STATUS_VALUES,
    DEFAULT_MILESTONE_WEIGHT,
)
from app.core.exceptions import (
    ProgressError,
    NotFoundError,
    ValidationError,
    AuthorizationError,
    AggregationError,
)
from app.models.booking import Booking
from app.models.milestones import Milestone
from app.models.milestoneapproval import MilestoneApproval
from app.models.task import Task
from app.models.user import User
from app.services.progress import aggregate, milestone_progress
from app.services.ProgressStore import ProgressStore
from app.utils.check_booking_access import can_access_booking, can_manage_booking

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    """Outcome of a mutation and the percentages it produced."""

    booking_id: str
    booking_progress: int
    milestone_id: Optional[str] = None
    milestone_progress: Optional[int] = None
    task: Optional[Task] = None
    milestone: Optional[Milestone] = None
    approval: Optional[MilestoneApproval] = None


@dataclass
class BackfillEntry:
    booking_id: str
    previous: int
    current: int

    @property
    def changed(self) -> bool:
        return self.previous != self.current


@dataclass
class BackfillReport:
    entries: List[BackfillEntry] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> List[BackfillEntry]:
        return [e for e in self.entries if e.changed]


EDITABLE_MILESTONE_FIELDS = {"title", "description", "due_date", "weight"}
EDITABLE_TASK_FIELDS = {"title", "description", "due_date"}
REVIEW_ACTIONS = ["approve", "reject"]


def _parse_status(value, enum_cls, allowed: List[str]):
    raw = value.value if hasattr(value, "value") else value
    if raw not in allowed:
        raise ValidationError(
            f"Invalid status '{raw}'. Allowed: {', '.join(allowed)}",
            code="INVALID_STATUS",
            details={"allowed": allowed},
        )
    return enum_cls(raw)


def _require_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("title is required")
    return title.strip()


def _validate_weight(weight: Optional[float]) -> float:
    if weight is None:
        return DEFAULT_MILESTONE_WEIGHT
    try:
        weight = float(weight)
    except (TypeError, ValueError):
        raise ValidationError("weight must be a positive number")
    if not math.isfinite(weight) or weight <= 0:
        raise ValidationError("weight must be a positive number")
    return weight


class ProgressService:
    """Entry points for the booking -> milestone -> task hierarchy."""

    def __init__(self, store: ProgressStore):
        self.store = store

    # ------------------------------------------------------------------
    # lookups and access
    # ------------------------------------------------------------------

    async def _booking(self, booking_id: str, for_update: bool = False) -> Booking:
        booking = await self.store.get_booking(booking_id, for_update=for_update)
        if not booking:
            raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    async def _milestone(self, milestone_id: str, for_update: bool = False) -> Milestone:
        milestone = await self.store.get_milestone(milestone_id, for_update=for_update)
        if not milestone:
            raise NotFoundError("Milestone not found", code="MILESTONE_NOT_FOUND")
        return milestone

    async def _task(self, task_id: str) -> Task:
        task = await self.store.get_task(task_id)
        if not task:
            raise NotFoundError("Task not found", code="TASK_NOT_FOUND")
        return task

    @staticmethod
    def _check_access(actor: Optional[User], booking: Booking, manage: bool = False):
        # actor None is the system (backfill, repair jobs)
        if actor is None:
            return
        allowed = can_manage_booking(actor, booking) if manage else can_access_booking(actor, booking)
        if not allowed:
            message = (
                "Only the booking's provider or an admin can do this"
                if manage
                else "You do not have access to this booking"
            )
            raise AuthorizationError(message)

    # ------------------------------------------------------------------
    # recomputation
    # ------------------------------------------------------------------

    async def _recompute_milestone(self, milestone: Milestone) -> int:
        completed, total = await self.store.count_tasks(milestone.milestone_id)
        progress = milestone_progress(completed, total)
        await self.store.set_milestone_progress(milestone, progress, completed, total)
        return progress

    async def _recompute_booking(self, booking: Booking) -> int:
        children = await self.store.milestone_children(booking.booking_id)
        progress = aggregate(children)
        await self.store.set_booking_progress(booking, progress)
        return progress

    async def _cascade(self, booking: Booking, milestone: Optional[Milestone] = None) -> CascadeResult:
        try:
            milestone_pct = None
            if milestone is not None:
                milestone_pct = await self._recompute_milestone(milestone)
            booking_pct = await self._recompute_booking(booking)
        except ProgressError:
            raise
        except Exception as e:
            logger.exception(f"Progress recomputation failed for booking {booking.booking_id}")
            raise AggregationError(f"Failed to recompute progress: {str(e)}") from e

        return CascadeResult(
            booking_id=booking.booking_id,
            booking_progress=booking_pct,
            milestone_id=milestone.milestone_id if milestone is not None else None,
            milestone_progress=milestone_pct,
            milestone=milestone,
        )

    async def recalculate_milestone_progress(self, milestone_id: str) -> int:
        """Recompute and persist one milestone's progress. Idempotent."""
        async with self.store.transaction():
            milestone = await self._milestone(milestone_id, for_update=True)
            try:
                return await self._recompute_milestone(milestone)
            except ProgressError:
                raise
            except Exception as e:
                logger.exception(f"Milestone recomputation failed for {milestone_id}")
                raise AggregationError(f"Failed to recompute milestone progress: {str(e)}") from e

    async def calculate_booking_progress(self, booking_id: str, actor: Optional[User] = None) -> int:
        """Recompute every milestone of a booking, then the booking itself.

        Safe to re-run: it reads only task rows and weights, so stored
        percentages that drifted are repaired and correct ones are unchanged.
        """
        async with self.store.transaction():
            # lock order: milestones, then booking
            milestones = await self.store.lock_milestones(booking_id)
            booking = await self._booking(booking_id, for_update=True)
            self._check_access(actor, booking)
            try:
                for milestone in milestones:
                    await self._recompute_milestone(milestone)
            except ProgressError:
                raise
            except Exception as e:
                logger.exception(f"Milestone recomputation failed for booking {booking_id}")
                raise AggregationError(f"Failed to recompute progress: {str(e)}") from e
            result = await self._cascade(booking)

        logger.info(f"Booking {booking_id} progress recalculated: {result.booking_progress}%")
        return result.booking_progress

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    async def update_task_status(self, task_id: str, status, actor: Optional[User] = None) -> CascadeResult:
        """Set a task's status and cascade the recomputation to its ancestors."""
        new_status = _parse_status(status, TaskStatus, TASK_STATUS_VALUES)

        async with self.store.transaction():
            task = await self._task(task_id)
            # lock order: milestone, then booking
            milestone = await self._milestone(task.milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking)

            now = datetime.utcnow()
            if new_status == TaskStatus.in_progress and task.started_at is None:
                task.started_at = now
            if new_status == TaskStatus.completed:
                task.completed_at = task.completed_at or now
                task.started_at = task.started_at or now
            else:
                task.completed_at = None
            task.status = new_status

            result = await self._cascade(booking, milestone)
            result.task = task

        logger.info(
            f"Task {task_id} -> {new_status.value}; milestone {result.milestone_id} "
            f"{result.milestone_progress}%, booking {result.booking_id} {result.booking_progress}%"
        )
        return result

    async def update_milestone_status(self, milestone_id: str, status, actor: Optional[User] = None) -> CascadeResult:
        """Set a milestone's status and recompute the owning booking."""
        new_status = _parse_status(status, MilestoneStatus, MILESTONE_STATUS_VALUES)

        async with self.store.transaction():
            milestone = await self._milestone(milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking)

            milestone.status = new_status
            if new_status == MilestoneStatus.completed:
                milestone.completed_at = milestone.completed_at or datetime.utcnow()
            else:
                milestone.completed_at = None

            result = await self._cascade(booking)
            result.milestone_id = milestone.milestone_id
            result.milestone_progress = milestone.progress_percentage
            result.milestone = milestone

        logger.info(f"Milestone {milestone_id} -> {new_status.value}; booking {result.booking_progress}%")
        return result

    async def update_milestone(
        self, milestone_id: str, changes: Dict[str, Any], actor: Optional[User] = None
    ) -> CascadeResult:
        """Edit a milestone's title, description, due date or weight.

        The booking is recomputed in the same transaction, so a weight change
        is reflected in project_progress immediately.
        """
        changes = dict(changes)
        unknown = set(changes) - EDITABLE_MILESTONE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit milestone fields: {', '.join(sorted(unknown))}")
        if "title" in changes:
            changes["title"] = _require_title(changes["title"])
        if "weight" in changes:
            changes["weight"] = _validate_weight(changes["weight"])

        async with self.store.transaction():
            milestone = await self._milestone(milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking, manage=True)

            for name, value in changes.items():
                setattr(milestone, name, value)

            result = await self._cascade(booking)
            result.milestone_id = milestone.milestone_id
            result.milestone_progress = milestone.progress_percentage
            result.milestone = milestone

        logger.info(f"Milestone {milestone_id} edited ({', '.join(sorted(changes))}); booking {result.booking_progress}%")
        return result

    async def review_milestone(
        self, milestone_id: str, action: str, actor: User, feedback: Optional[str] = None
    ) -> CascadeResult:
        """Approve or reject a milestone and keep an approval record.

        Approving completes the milestone (a repeat approval changes nothing);
        rejecting sends it back to in_progress. A completed milestone cannot
        be rejected.
        """
        if action not in REVIEW_ACTIONS:
            raise ValidationError(
                f"Invalid action '{action}'. Allowed: {', '.join(REVIEW_ACTIONS)}",
                code="INVALID_ACTION",
            )

        async with self.store.transaction():
            milestone = await self._milestone(milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking)

            if action == "approve":
                if milestone.status != MilestoneStatus.completed:
                    milestone.status = MilestoneStatus.completed
                    milestone.completed_at = datetime.utcnow()
            else:
                if milestone.status == MilestoneStatus.completed:
                    raise ValidationError("Milestone is already completed", code="MILESTONE_COMPLETED")
                milestone.status = MilestoneStatus.in_progress
                milestone.completed_at = None

            approval = MilestoneApproval(
                milestone_id=milestone.milestone_id,
                user_id=actor.user_id,
                status=ApprovalStatus.approved if action == "approve" else ApprovalStatus.rejected,
                comment=feedback,
            )
            await self.store.add(approval)

            result = await self._cascade(booking)
            result.milestone_id = milestone.milestone_id
            result.milestone_progress = milestone.progress_percentage
            result.milestone = milestone
            result.approval = approval

        logger.info(f"Milestone {milestone_id} {approval.status.value} by {actor.user_id}")
        return result

    async def update_task(self, task_id: str, changes: Dict[str, Any], actor: Optional[User] = None) -> Task:
        """Edit a task's title, description or due date. Status has its own entry point."""
        changes = dict(changes)
        unknown = set(changes) - EDITABLE_TASK_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit task fields: {', '.join(sorted(unknown))}")
        if "title" in changes:
            changes["title"] = _require_title(changes["title"])

        async with self.store.transaction():
            task = await self._task(task_id)
            milestone = await self._milestone(task.milestone_id)
            booking = await self._booking(milestone.booking_id)
            self._check_access(actor, booking, manage=True)

            for name, value in changes.items():
                setattr(task, name, value)

        logger.info(f"Task {task_id} edited ({', '.join(sorted(changes))})")
        return task

    async def add_milestone(
        self,
        booking_id: str,
        title: str,
        description: Optional[str] = None,
        weight: Optional[float] = None,
        due_date: Optional[datetime] = None,
        actor: Optional[User] = None,
    ) -> CascadeResult:
        """Create a milestone at the end of the booking's ordering."""
        title = _require_title(title)
        weight = _validate_weight(weight)

        async with self.store.transaction():
            booking = await self._booking(booking_id, for_update=True)
            self._check_access(actor, booking, manage=True)

            milestone = Milestone(
                booking_id=booking.booking_id,
                title=title,
                description=description,
                due_date=due_date,
                weight=weight,
                status=MilestoneStatus.pending,
                order_index=await self.store.next_order_index(booking.booking_id),
                progress_percentage=0,
                total_tasks=0,
                completed_tasks=0,
                created_by=actor.user_id if actor else None,
            )
            await self.store.add(milestone)
            result = await self._cascade(booking, milestone)

        logger.info(f"Milestone {milestone.milestone_id} added to booking {booking_id} at index {milestone.order_index}")
        return result

    async def add_task(
        self,
        milestone_id: str,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
        actor: Optional[User] = None,
    ) -> CascadeResult:
        """Create a pending task under a milestone."""
        title = _require_title(title)

        async with self.store.transaction():
            milestone = await self._milestone(milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking, manage=True)

            task = Task(
                milestone_id=milestone.milestone_id,
                title=title,
                description=description,
                due_date=due_date,
                status=TaskStatus.pending,
                created_by=actor.user_id if actor else None,
            )
            await self.store.add(task)
            result = await self._cascade(booking, milestone)
            result.task = task

        logger.info(f"Task {task.task_id} added to milestone {milestone_id}")
        return result

    async def delete_task(self, task_id: str, actor: Optional[User] = None) -> CascadeResult:
        async with self.store.transaction():
            task = await self._task(task_id)
            milestone = await self._milestone(task.milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking, manage=True)

            await self.store.delete_task(task)
            result = await self._cascade(booking, milestone)

        logger.info(f"Task {task_id} deleted from milestone {result.milestone_id}")
        return result

    async def delete_milestone(self, milestone_id: str, actor: Optional[User] = None) -> CascadeResult:
        async with self.store.transaction():
            milestone = await self._milestone(milestone_id, for_update=True)
            booking = await self._booking(milestone.booking_id, for_update=True)
            self._check_access(actor, booking, manage=True)

            await self.store.delete_milestone(milestone)
            result = await self._cascade(booking)

        logger.info(f"Milestone {milestone_id} deleted from booking {result.booking_id}")
        return result

    # ------------------------------------------------------------------
    # reporting and repair
    # ------------------------------------------------------------------

    async def get_progress_analytics(self, booking_id: str, actor: Optional[User] = None) -> Dict[str, Any]:
        """Counts by status plus stored vs. freshly computed progress."""
        booking = await self._booking(booking_id)
        self._check_access(actor, booking)

        milestones = await self.store.list_milestones(booking_id)
        milestone_counts = {s.value: 0 for s in MilestoneStatus}
        task_counts = {s.value: 0 for s in TaskStatus}
        computed_children = []
        milestone_rows = []

        for milestone in milestones:
            milestone_counts[milestone.status.value] += 1
            tasks = await self.store.list_tasks(milestone.milestone_id)
            completed = 0
            for task in tasks:
                task_counts[task.status.value] += 1
                if task.status == TaskStatus.completed:
                    completed += 1
            computed = milestone_progress(completed, len(tasks))
            computed_children.append((computed, milestone.weight))
            milestone_rows.append({
                "milestone_id": milestone.milestone_id,
                "title": milestone.title,
                "status": milestone.status.value,
                "weight": milestone.weight,
                "order_index": milestone.order_index,
                "progress_percentage": milestone.progress_percentage,
                "computed_progress": computed,
                "completed_tasks": completed,
                "total_tasks": len(tasks),
            })

        computed_booking = aggregate(computed_children)
        drift = computed_booking != booking.project_progress or any(
            m["computed_progress"] != m["progress_percentage"] for m in milestone_rows
        )

        return {
            "booking_id": booking.booking_id,
            "booking_status": booking.status.value,
            "booking_progress": booking.project_progress,
            "computed_progress": computed_booking,
            "drift": drift,
            "total_milestones": len(milestones),
            "completed_milestones": milestone_counts[MilestoneStatus.completed.value],
            "in_progress_milestones": milestone_counts[MilestoneStatus.in_progress.value],
            "pending_milestones": milestone_counts[MilestoneStatus.pending.value],
            "total_tasks": sum(task_counts.values()),
            "completed_tasks": task_counts[TaskStatus.completed.value],
            "in_progress_tasks": task_counts[TaskStatus.in_progress.value],
            "pending_tasks": task_counts[TaskStatus.pending.value],
            "milestones": milestone_rows,
        }

    async def backfill(self, booking_ids: Optional[List[str]] = None, dry_run: bool = False) -> BackfillReport:
        """Recompute stored progress for many bookings.

        Each booking is its own unit of work; one failure is recorded and the
        rest continue. With dry_run the computed values are reported without
        being written.
        """
        report = BackfillReport()
        if booking_ids is None:
            booking_ids = await self.store.list_booking_ids()

        for booking_id in booking_ids:
            try:
                if dry_run:
                    analytics = await self.get_progress_analytics(booking_id)
                    report.entries.append(BackfillEntry(
                        booking_id=booking_id,
                        previous=analytics["booking_progress"],
                        current=analytics["computed_progress"],
                    ))
                    continue
                booking = await self._booking(booking_id)
                previous = booking.project_progress
                current = await self.calculate_booking_progress(booking_id)
                report.entries.append(BackfillEntry(booking_id=booking_id, previous=previous, current=current))
            except ProgressError as e:
                logger.error(f"Backfill failed for booking {booking_id}: {e.message}")
                report.failures[booking_id] = e.message

        logger.info(
            f"Backfill processed {len(report.entries)} bookings, "
            f"{len(report.changed)} changed, {len(report.failures)} failed"
        )
        return report
