"""
Slot placement for a single day.

Fixed appointments are placed at their exact times first; flexible tasks are
then placed greedily, highest priority first, at the earliest gap in their
window that fits. There is no backtracking.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional

from daylit.core.exceptions import SchedulingConflictError, ValidationError
from daylit.core.logger import setup_logger
from daylit.models.enums import SlotStatus
from daylit.models.plan import DayPlan, PlanResult, Slot, UnplacedTask
from daylit.models.task import Task
from daylit.services.recurrence import is_due_on
from daylit.utils.datetime_utils import minutes_to_time, time_to_minutes

logger = setup_logger(__name__)


@dataclass
class TimeInterval:
    start_minutes: int
    end_minutes: int


def _find_earliest_gap(
    window: TimeInterval,
    occupied: list[TimeInterval],
    duration: int,
) -> Optional[int]:
    """Start minute of the earliest gap of ``duration`` inside ``window``, if any."""
    cursor = window.start_minutes
    for block in occupied:
        if block.end_minutes <= cursor:
            continue
        if block.start_minutes >= window.end_minutes:
            break
        if cursor + duration <= block.start_minutes:
            break
        cursor = max(cursor, block.end_minutes)
    if cursor + duration <= window.end_minutes:
        return cursor
    return None


def _sorted_by_start(intervals: Iterable[TimeInterval]) -> list[TimeInterval]:
    return sorted(intervals, key=lambda interval: (interval.start_minutes, interval.end_minutes))


class SlotPlanner:
    """
    Greedy single-pass day planner.

    Ordering of flexible tasks is ``(priority, task id)`` so identical inputs
    always produce identical plans regardless of catalog order.
    """

    def generate_plan(
        self,
        plan_date: date,
        tasks: Iterable[Task],
        day_start: time,
        day_end: time,
    ) -> PlanResult:
        """
        Build the plan for ``plan_date``.

        Args:
            plan_date: Day being planned
            tasks: Task catalog (inactive and not-due tasks are ignored)
            day_start: Start of the working window
            day_end: End of the working window

        Returns:
            PlanResult with slots in start-time order and the due flexible
            tasks that did not fit.

        Raises:
            ValidationError: If the working window is empty
            SchedulingConflictError: If two fixed appointments overlap
        """
        start_minutes = time_to_minutes(day_start)
        end_minutes = time_to_minutes(day_end)
        if start_minutes >= end_minutes:
            raise ValidationError(
                f"day start {day_start:%H:%M} must be before day end {day_end:%H:%M}"
            )

        due = [task for task in tasks if task.active and is_due_on(task, plan_date)]
        fixed = [task for task in due if task.is_fixed]
        flexible = [task for task in due if not task.is_fixed]

        slots = self._place_fixed(fixed)
        occupied = _sorted_by_start(
            TimeInterval(time_to_minutes(slot.start), time_to_minutes(slot.end)) for slot in slots
        )

        unplaced: list[UnplacedTask] = []
        day_window = TimeInterval(start_minutes, end_minutes)
        for task in sorted(flexible, key=lambda t: (t.priority, t.id)):
            window = self._effective_window(task, day_window)
            start = _find_earliest_gap(window, occupied, task.duration_min)
            if start is None:
                reason = (
                    f"no free {task.duration_min}-minute interval between "
                    f"{minutes_to_time(window.start_minutes):%H:%M} and "
                    f"{minutes_to_time(window.end_minutes):%H:%M}"
                )
                unplaced.append(UnplacedTask(task_id=task.id, reason=reason))
                continue
            placed = TimeInterval(start, start + task.duration_min)
            occupied = _sorted_by_start([*occupied, placed])
            slots.append(
                Slot(
                    start=minutes_to_time(placed.start_minutes),
                    end=minutes_to_time(placed.end_minutes),
                    task_id=task.id,
                    status=SlotStatus.PLANNED,
                )
            )

        if unplaced:
            skipped = ", ".join(entry.task_id for entry in unplaced)
            logger.info(
                f"{len(unplaced)} due task(s) could not be placed on {plan_date.isoformat()}: {skipped}"
            )

        slots.sort(key=lambda slot: (slot.start, slot.task_id))
        return PlanResult(plan=DayPlan(date=plan_date, slots=slots), unplaced=unplaced)

    @staticmethod
    def _place_fixed(fixed: list[Task]) -> list[Slot]:
        ordered = sorted(fixed, key=lambda t: (t.fixed_start, t.fixed_end, t.id))
        slots: list[Slot] = []
        previous: Optional[Task] = None
        for task in ordered:
            if previous is not None and task.fixed_start < previous.fixed_end:
                logger.warning(
                    f"Fixed tasks {previous.id} and {task.id} overlap "
                    f"({previous.fixed_start:%H:%M}-{previous.fixed_end:%H:%M} vs "
                    f"{task.fixed_start:%H:%M}-{task.fixed_end:%H:%M})"
                )
                raise SchedulingConflictError(
                    f"fixed tasks {previous.id} and {task.id} overlap",
                    task_ids=(previous.id, task.id),
                )
            slots.append(
                Slot(
                    start=task.fixed_start,
                    end=task.fixed_end,
                    task_id=task.id,
                    status=SlotStatus.PLANNED,
                )
            )
            if previous is None or task.fixed_end > previous.fixed_end:
                previous = task
        return slots

    @staticmethod
    def _effective_window(task: Task, day_window: TimeInterval) -> TimeInterval:
        start = day_window.start_minutes
        end = day_window.end_minutes
        if task.earliest_start is not None:
            start = max(start, time_to_minutes(task.earliest_start))
        if task.latest_end is not None:
            end = min(end, time_to_minutes(task.latest_end))
        return TimeInterval(start, end)
