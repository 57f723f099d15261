"""Pydantic models."""

from daylit.models.enums import (
    EnergyBand,
    FeedbackRating,
    NotificationKind,
    RecurrenceType,
    SlotStatus,
    TaskKind,
)
from daylit.models.plan import DayPlan, Feedback, PlanResult, Slot, UnplacedTask
from daylit.models.task import Task, TaskCreate

__all__ = [
    "DayPlan",
    "EnergyBand",
    "Feedback",
    "FeedbackRating",
    "NotificationKind",
    "PlanResult",
    "RecurrenceType",
    "Slot",
    "SlotStatus",
    "Task",
    "TaskCreate",
    "TaskKind",
    "UnplacedTask",
]
