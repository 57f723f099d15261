"""
Feedback analysis.

Looks at the most recent ratings of each task and suggests changes to its
duration or recurrence.
"""

from __future__ import annotations

from daylit.core.exceptions import ValidationError
from daylit.core.logger import setup_logger
from daylit.interfaces.plan_store import IPlanStore
from daylit.interfaces.task_repository import ITaskRepository
from daylit.models.enums import FeedbackRating, RecurrenceType
from daylit.models.suggestion import (
    Optimization,
    ReduceDuration,
    ReduceFrequency,
    RemoveTask,
    SplitTask,
)
from daylit.models.task import Task

logger = setup_logger(__name__)

MIN_TASK_DURATION_MIN = 10
TOO_MUCH_THRESHOLD_PERCENT = 50
UNNECESSARY_THRESHOLD_PERCENT = 40
UNNECESSARY_THRESHOLD_COUNT = 3
DURATION_REDUCTION_FACTOR = 0.75
SPLIT_DURATION_LIMIT_MIN = 30


class FeedbackAnalyzer:
    """Turns a task's feedback history into optimization suggestions."""

    def __init__(self, task_repo: ITaskRepository, plan_store: IPlanStore):
        self.task_repo = task_repo
        self.plan_store = plan_store

    async def analyze_task(self, task: Task, limit: int) -> list[Optimization]:
        if limit <= 0:
            raise ValidationError(f"feedback limit must be positive, got {limit}")

        history = await self.plan_store.get_task_feedback_history(task.id, limit)
        if not history:
            return []

        total = len(history)
        too_much = sum(1 for entry in history if entry.rating == FeedbackRating.TOO_MUCH)
        unnecessary = sum(1 for entry in history if entry.rating == FeedbackRating.UNNECESSARY)
        too_much_percent = too_much / total * 100
        unnecessary_percent = unnecessary / total * 100

        optimizations: list[Optimization] = []

        if too_much_percent > TOO_MUCH_THRESHOLD_PERCENT:
            new_duration = int(task.duration_min * DURATION_REDUCTION_FACTOR)
            if new_duration <= MIN_TASK_DURATION_MIN or task.duration_min <= SPLIT_DURATION_LIMIT_MIN:
                optimizations.append(
                    Optimization(
                        task_id=task.id,
                        task_name=task.name,
                        reason=(
                            f"{too_much_percent:.0f}% of recent feedback indicates "
                            "task is overwhelming (too_much)"
                        ),
                        suggestion=SplitTask(current_minutes=task.duration_min),
                    )
                )
            else:
                optimizations.append(
                    Optimization(
                        task_id=task.id,
                        task_name=task.name,
                        reason=(
                            f"{too_much_percent:.0f}% of recent feedback indicates "
                            "task takes too long (too_much)"
                        ),
                        suggestion=ReduceDuration(
                            current_minutes=task.duration_min,
                            suggested_minutes=max(new_duration, MIN_TASK_DURATION_MIN),
                        ),
                    )
                )

        if (
            unnecessary >= UNNECESSARY_THRESHOLD_COUNT
            or unnecessary_percent > UNNECESSARY_THRESHOLD_PERCENT
        ):
            reason = f"{unnecessary_percent:.0f}% of recent feedback indicates task is unnecessary"
            rule = task.recurrence
            if rule.type == RecurrenceType.N_DAYS:
                suggestion = ReduceFrequency(
                    current_interval_days=rule.interval_days,
                    suggested_interval_days=rule.interval_days + 2,
                )
            elif rule.type == RecurrenceType.DAILY:
                suggestion = ReduceFrequency(current_interval_days=None, suggested_interval_days=2)
            else:
                suggestion = RemoveTask()
            optimizations.append(
                Optimization(
                    task_id=task.id,
                    task_name=task.name,
                    reason=reason,
                    suggestion=suggestion,
                )
            )

        return optimizations

    async def analyze_all_tasks(self, limit: int) -> list[Optimization]:
        """Analyze every active task; a task that fails is logged and skipped."""
        if limit <= 0:
            raise ValidationError(f"feedback limit must be positive, got {limit}")
        tasks = await self.task_repo.list(include_inactive=False)
        optimizations: list[Optimization] = []
        for task in tasks:
            if not task.active:
                continue
            try:
                optimizations.extend(await self.analyze_task(task, limit))
            except Exception as e:
                logger.warning(f"Failed to analyze task {task.name} ({task.id}): {e}")
                continue
        return optimizations
