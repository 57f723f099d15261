"""
Models for day plans and their slots.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field

from daylit.models.enums import FeedbackRating, NotificationKind, SlotStatus


class Feedback(BaseModel):
    rating: FeedbackRating
    note: str = ""


class Slot(BaseModel):
    """A time interval assigned to one task within one plan revision."""

    start: time
    end: time
    task_id: str
    status: SlotStatus = SlotStatus.PLANNED
    feedback: Optional[Feedback] = None
    last_notified_start: Optional[datetime] = None
    last_notified_end: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def duration_min(self) -> int:
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)


class DayPlan(BaseModel):
    """
    One revision of a day's plan.

    ``revision`` 0 asks the store to assign the revision number.
    """

    date: date
    revision: int = Field(0, ge=0)
    accepted_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    slots: list[Slot] = Field(default_factory=list)

    @property
    def is_accepted(self) -> bool:
        return self.accepted_at is not None


class UnplacedTask(BaseModel):
    """Due task the planner could not fit, with reason."""

    task_id: str
    reason: str


class PlanResult(BaseModel):
    """Planner output: the plan plus the due tasks left out of it."""

    plan: DayPlan
    unplaced: list[UnplacedTask] = Field(default_factory=list)


class TaskFeedbackEntry(BaseModel):
    """A rated slot read back for feedback analysis."""

    date: date
    task_id: str
    rating: FeedbackRating
    note: str = ""
    start: time
    end: time
    actual_duration_min: int


class FeedbackRequest(BaseModel):
    rating: FeedbackRating
    note: str = Field("", max_length=1000)
    task_id: Optional[str] = None
    start: Optional[time] = None


class NotificationStampRequest(BaseModel):
    revision: int = Field(..., ge=1)
    start: time
    task_id: str
    kind: NotificationKind
    timestamp: Optional[datetime] = None
