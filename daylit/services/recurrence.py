"""
Recurrence evaluation.

Decides whether a task's recurrence rule fires on a given calendar date.
Evaluation never raises: a rule that cannot be evaluated is treated as
"not due".
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional

from daylit.models.enums import RecurrenceType
from daylit.models.task import Task


def is_due_on(task: Task, target: date) -> bool:
    """Return True when ``task``'s recurrence rule fires on ``target``."""
    rule = task.recurrence
    kind = getattr(rule, "type", None)

    if kind == RecurrenceType.DAILY:
        return True

    if kind == RecurrenceType.WEEKDAYS:
        return target.weekday() < 5

    if kind == RecurrenceType.WEEKLY:
        weekdays = getattr(rule, "weekdays", None) or []
        return target.weekday() in weekdays

    if kind == RecurrenceType.N_DAYS:
        return _n_days_due(task, getattr(rule, "interval_days", None), target)

    if kind == RecurrenceType.MONTHLY_DATE:
        return target.day == getattr(rule, "month_day", None)

    if kind == RecurrenceType.MONTHLY_DAY:
        return _monthly_day_due(
            getattr(rule, "week_occurrence", None),
            getattr(rule, "weekday", None),
            target,
        )

    if kind == RecurrenceType.YEARLY:
        return (
            target.month == getattr(rule, "month", None)
            and target.day == getattr(rule, "month_day", None)
        )

    # AD_HOC and anything unrecognised
    return False


def _anchor_date(task: Task) -> Optional[date]:
    if task.last_done is not None:
        return task.last_done
    created = task.created_at
    if isinstance(created, datetime):
        return created.date()
    return created


def _n_days_due(task: Task, interval: Optional[int], target: date) -> bool:
    if not isinstance(interval, int) or interval < 1:
        return False
    anchor = _anchor_date(task)
    if anchor is None or target < anchor:
        return False
    return (target - anchor).days % interval == 0


def weekday_occurrence(target: date) -> int:
    """1-based count of ``target``'s weekday from the 1st of the month."""
    return (target.day - 1) // 7 + 1


def weekday_occurrence_from_end(target: date) -> int:
    """1-based count of ``target``'s weekday from the last day of the month."""
    days_in_month = calendar.monthrange(target.year, target.month)[1]
    return (days_in_month - target.day) // 7 + 1


def _monthly_day_due(
    week_occurrence: Optional[int],
    weekday: Optional[int],
    target: date,
) -> bool:
    if not isinstance(week_occurrence, int) or week_occurrence == 0:
        return False
    if target.weekday() != weekday:
        return False
    if week_occurrence > 0:
        return weekday_occurrence(target) == week_occurrence
    return weekday_occurrence_from_end(target) == -week_occurrence
