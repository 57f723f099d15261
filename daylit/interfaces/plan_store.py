"""
Day plan store interface.

Plans are keyed by (date, revision); slots by (date, revision, start, task_id).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, time

from daylit.models.enums import NotificationKind
from daylit.models.plan import DayPlan, TaskFeedbackEntry


class IPlanStore(ABC):
    """Revisioned, soft-deletable storage for day plans."""

    @abstractmethod
    async def save_plan(self, plan: DayPlan) -> DayPlan:
        """Persist a plan revision and return it as stored.

        Revision 0 is auto-assigned: a new revision when the latest one is
        accepted, otherwise the latest unaccepted revision is overwritten.
        An explicit revision that is already accepted may only be re-saved
        with the identical ``accepted_at``.

        Raises:
            ValidationError: deleted_at pre-set or malformed slots
            ConflictError: would overwrite an accepted revision
            AlreadyDeletedError: target revision is soft-deleted
        """
        pass

    @abstractmethod
    async def get_plan(self, plan_date: date) -> DayPlan:
        """Alias for :meth:`get_latest_plan_revision`."""
        pass

    @abstractmethod
    async def get_plan_revision(self, plan_date: date, revision: int) -> DayPlan:
        """Get one exact revision.

        Raises:
            NotFoundError: If the revision is absent or soft-deleted
        """
        pass

    @abstractmethod
    async def get_latest_plan_revision(self, plan_date: date) -> DayPlan:
        """Get the highest non-deleted revision with its non-deleted slots.

        Raises:
            NotFoundError: If the date has no active revision
        """
        pass

    @abstractmethod
    async def delete_plan(self, plan_date: date) -> datetime:
        """Soft-delete every active revision and slot of a date.

        Returns the shared deletion timestamp.
        """
        pass

    @abstractmethod
    async def restore_plan(self, plan_date: date) -> datetime:
        """Undo the most recent :meth:`delete_plan` for a date.

        Only rows stamped with that exact deletion timestamp are restored.
        Returns the timestamp that was cleared.
        """
        pass

    @abstractmethod
    async def update_slot_notification_timestamp(
        self,
        plan_date: date,
        revision: int,
        start: time,
        task_id: str,
        kind: NotificationKind | str,
        timestamp: datetime,
    ) -> bool:
        """Record when a start/end notification was sent for a slot.

        A missing or deleted slot is a no-op; returns whether a row changed.
        """
        pass

    @abstractmethod
    async def delete_slot(
        self,
        plan_date: date,
        revision: int,
        start: time,
        task_id: str,
    ) -> datetime:
        """Soft-delete a single slot."""
        pass

    @abstractmethod
    async def get_task_feedback_history(
        self,
        task_id: str,
        limit: int,
    ) -> list[TaskFeedbackEntry]:
        """Rated slots for a task, newest date first."""
        pass

    @abstractmethod
    async def list_plans(self, include_deleted: bool = False) -> list[DayPlan]:
        """
        Latest revision of every date, oldest date first.

        With ``include_deleted``, dates whose revisions are all soft-deleted
        are listed too, as their highest revision with ``deleted_at`` set.
        """
        pass
