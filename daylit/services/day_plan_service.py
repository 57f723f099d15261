"""
Day plan workflows.

Ties the task catalog, the slot planner and the plan store together:
generating, accepting, rating and notifying on a day's plan.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from daylit.core.config import Settings, get_settings
from daylit.core.exceptions import ConflictError, NotFoundError, ValidationError
from daylit.core.logger import setup_logger
from daylit.interfaces.plan_store import IPlanStore
from daylit.interfaces.task_repository import ITaskRepository
from daylit.models.enums import FeedbackRating, NotificationKind, RecurrenceType, SlotStatus
from daylit.models.plan import DayPlan, Feedback, PlanResult, Slot
from daylit.models.suggestion import Optimization
from daylit.models.task import NDaysRecurrence, Task, TaskStatsUpdate
from daylit.services.feedback_analyzer import MIN_TASK_DURATION_MIN, FeedbackAnalyzer
from daylit.services.slot_planner import SlotPlanner
from daylit.utils.datetime_utils import (
    get_user_now,
    now_utc,
    parse_hhmm,
    to_user_datetime,
)

logger = setup_logger(__name__)

FEEDBACK_EXISTING_WEIGHT = 0.8
FEEDBACK_NEW_WEIGHT = 0.2
TOO_MUCH_REDUCTION_FACTOR = 0.9


class DayPlanService:
    """Service for generating and working with a day's plan."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        plan_store: IPlanStore,
        planner: Optional[SlotPlanner] = None,
        settings: Optional[Settings] = None,
    ):
        self.task_repo = task_repo
        self.plan_store = plan_store
        self.planner = planner or SlotPlanner()
        self.settings = settings or get_settings()
        self.analyzer = FeedbackAnalyzer(task_repo, plan_store)

    def _day_bounds(self) -> tuple[time, time]:
        try:
            return parse_hhmm(self.settings.DAY_START), parse_hhmm(self.settings.DAY_END)
        except ValueError as e:
            raise ValidationError(f"invalid day bounds: {e}") from e

    # ===========================================
    # Plan lifecycle
    # ===========================================

    async def generate(self, plan_date: date) -> PlanResult:
        """
        Plan ``plan_date`` from the active catalog and store it.

        An unaccepted latest revision is overwritten; an accepted one is kept
        and the new plan becomes the next revision.
        """
        day_start, day_end = self._day_bounds()
        tasks = await self.task_repo.list(include_inactive=False)
        result = self.planner.generate_plan(plan_date, tasks, day_start, day_end)
        stored = await self.plan_store.save_plan(result.plan)
        logger.info(
            f"Generated plan {plan_date.isoformat()} revision {stored.revision}: "
            f"{len(stored.slots)} slots, {len(result.unplaced)} unplaced"
        )
        return PlanResult(plan=stored, unplaced=result.unplaced)

    async def accept(self, plan_date: date, accepted_at: Optional[datetime] = None) -> DayPlan:
        plan = await self.plan_store.get_latest_plan_revision(plan_date)
        if plan.is_accepted:
            raise ConflictError(
                f"plan {plan_date.isoformat()} revision {plan.revision} is already accepted",
                details={"date": plan_date.isoformat(), "revision": plan.revision},
            )
        slots = [
            slot.model_copy(update={"status": SlotStatus.ACCEPTED})
            if slot.status == SlotStatus.PLANNED
            else slot
            for slot in plan.slots
        ]
        accepted = plan.model_copy(
            update={"accepted_at": accepted_at or now_utc(), "slots": slots}
        )
        return await self.plan_store.save_plan(accepted)

    async def get_plan(self, plan_date: date) -> DayPlan:
        return await self.plan_store.get_plan(plan_date)

    async def get_plan_revision(self, plan_date: date, revision: int) -> DayPlan:
        return await self.plan_store.get_plan_revision(plan_date, revision)

    async def list_plans(self, include_deleted: bool = False) -> list[DayPlan]:
        return await self.plan_store.list_plans(include_deleted=include_deleted)

    async def delete(self, plan_date: date) -> datetime:
        return await self.plan_store.delete_plan(plan_date)

    async def restore(self, plan_date: date) -> datetime:
        return await self.plan_store.restore_plan(plan_date)

    # ===========================================
    # Feedback
    # ===========================================

    async def record_feedback(
        self,
        plan_date: date,
        rating: FeedbackRating,
        note: str = "",
        task_id: Optional[str] = None,
        start: Optional[time] = None,
        now: Optional[datetime] = None,
    ) -> DayPlan:
        """
        Rate one slot of the latest revision and adjust its task.

        Without ``task_id``/``start`` the target is the latest slot that has
        already ended, is accepted or done, and has no feedback yet.
        """
        plan = await self.plan_store.get_latest_plan_revision(plan_date)
        index = self._feedback_target(plan, task_id, start, now)

        target = plan.slots[index]
        rated = target.model_copy(
            update={
                "feedback": Feedback(rating=rating, note=note),
                "status": SlotStatus.DONE,
            }
        )
        slots = list(plan.slots)
        slots[index] = rated

        # Task stats change only once the rating is stored
        saved = await self.plan_store.save_plan(plan.model_copy(update={"slots": slots}))

        task = await self.task_repo.get(target.task_id)
        if task is None:
            logger.warning(f"Feedback recorded for unknown task {target.task_id}")
        else:
            await self.task_repo.update_stats(
                task.id, self._stats_after_feedback(task, rated, rating, plan_date)
            )
        return saved

    def _feedback_target(
        self,
        plan: DayPlan,
        task_id: Optional[str],
        start: Optional[time],
        now: Optional[datetime],
    ) -> int:
        if task_id is not None or start is not None:
            if task_id is None or start is None:
                raise ValidationError("task_id and start must be given together")
            for index, slot in enumerate(plan.slots):
                if slot.task_id == task_id and slot.start == start:
                    if slot.feedback is not None:
                        raise ConflictError(
                            f"slot {task_id} at {start:%H:%M} already has feedback",
                            details={"rating": slot.feedback.rating.value},
                        )
                    if slot.status not in (SlotStatus.ACCEPTED, SlotStatus.DONE):
                        raise ValidationError(
                            f"slot {task_id} at {start:%H:%M} is {slot.status.value}; "
                            "only accepted or done slots can be rated"
                        )
                    return index
            raise NotFoundError(
                f"slot {task_id} at {start:%H:%M} not found in "
                f"{plan.date.isoformat()} revision {plan.revision}"
            )

        user_tz = self.settings.TIMEZONE
        current = to_user_datetime(now, user_tz) if now is not None else get_user_now(user_tz)
        for index in range(len(plan.slots) - 1, -1, -1):
            slot = plan.slots[index]
            # Slot times are wall clock on the plan's own date
            slot_end = datetime.combine(plan.date, slot.end, tzinfo=current.tzinfo)
            if (
                slot.status in (SlotStatus.ACCEPTED, SlotStatus.DONE)
                and slot.feedback is None
                and slot_end <= current
            ):
                return index
        raise NotFoundError("no past slot found without feedback")

    @staticmethod
    def _stats_after_feedback(
        task: Task,
        slot: Slot,
        rating: FeedbackRating,
        plan_date: date,
    ) -> TaskStatsUpdate:
        if rating == FeedbackRating.ON_TRACK:
            duration = slot.duration_min
            if duration <= 0:
                return TaskStatsUpdate(last_done=plan_date)
            if task.avg_actual_duration_min <= 0:
                average = float(duration)
            else:
                average = (
                    task.avg_actual_duration_min * FEEDBACK_EXISTING_WEIGHT
                    + duration * FEEDBACK_NEW_WEIGHT
                )
            return TaskStatsUpdate(last_done=plan_date, avg_actual_duration_min=average)

        if rating == FeedbackRating.TOO_MUCH:
            return TaskStatsUpdate(
                duration_min=max(
                    int(task.duration_min * TOO_MUCH_REDUCTION_FACTOR), MIN_TASK_DURATION_MIN
                ),
                last_done=plan_date,
            )

        if task.recurrence.type == RecurrenceType.N_DAYS:
            return TaskStatsUpdate(
                recurrence=NDaysRecurrence(interval_days=task.recurrence.interval_days + 1)
            )
        return TaskStatsUpdate()

    # ===========================================
    # Notifications & optimization
    # ===========================================

    async def mark_notified(
        self,
        plan_date: date,
        revision: int,
        start: time,
        task_id: str,
        kind: NotificationKind | str,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        return await self.plan_store.update_slot_notification_timestamp(
            plan_date, revision, start, task_id, kind, timestamp or now_utc()
        )

    async def suggest_optimizations(self, limit: Optional[int] = None) -> list[Optimization]:
        return await self.analyzer.analyze_all_tasks(limit or self.settings.FEEDBACK_HISTORY_LIMIT)
