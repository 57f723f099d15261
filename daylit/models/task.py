"""
Task model definitions.

Tasks form the catalog the planner reads. Recurrence rules are a tagged
union discriminated on ``type``.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from daylit.models.enums import EnergyBand, TaskKind


class AdHocRecurrence(BaseModel):
    """Never auto-recurs."""

    type: Literal["ad_hoc"] = "ad_hoc"


class DailyRecurrence(BaseModel):
    type: Literal["daily"] = "daily"


class WeekdaysRecurrence(BaseModel):
    type: Literal["weekdays"] = "weekdays"


class WeeklyRecurrence(BaseModel):
    type: Literal["weekly"] = "weekly"
    weekdays: list[int] = Field(
        ..., min_length=1, description="0=Monday ... 6=Sunday"
    )

    @model_validator(mode="after")
    def _check_weekdays(self) -> "WeeklyRecurrence":
        if any(day < 0 or day > 6 for day in self.weekdays):
            raise ValueError("weekdays must be between 0 (Monday) and 6 (Sunday)")
        return self


class NDaysRecurrence(BaseModel):
    """Every ``interval_days`` days, counted from the last completion."""

    type: Literal["n_days"] = "n_days"
    interval_days: int = Field(..., ge=1)


class MonthlyDateRecurrence(BaseModel):
    type: Literal["monthly_date"] = "monthly_date"
    month_day: int = Field(..., ge=1, le=31)


class MonthlyDayRecurrence(BaseModel):
    """
    N-th weekday of the month.

    ``week_occurrence`` counts from the start of the month when positive
    (1 = first) and from the end when negative (-1 = last).
    """

    type: Literal["monthly_day"] = "monthly_day"
    week_occurrence: int = Field(..., ge=-5, le=5)
    weekday: int = Field(..., ge=0, le=6, description="0=Monday ... 6=Sunday")

    @model_validator(mode="after")
    def _check_occurrence(self) -> "MonthlyDayRecurrence":
        if self.week_occurrence == 0:
            raise ValueError("week_occurrence must be non-zero")
        return self


class YearlyRecurrence(BaseModel):
    type: Literal["yearly"] = "yearly"
    month: int = Field(..., ge=1, le=12)
    month_day: int = Field(..., ge=1, le=31)


Recurrence = Annotated[
    Union[
        AdHocRecurrence,
        DailyRecurrence,
        WeekdaysRecurrence,
        WeeklyRecurrence,
        NDaysRecurrence,
        MonthlyDateRecurrence,
        MonthlyDayRecurrence,
        YearlyRecurrence,
    ],
    Field(discriminator="type"),
]

recurrence_adapter: TypeAdapter[Recurrence] = TypeAdapter(Recurrence)


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    name: str = Field(..., min_length=1, max_length=200)
    kind: TaskKind = TaskKind.FLEXIBLE
    duration_min: int = Field(..., gt=0, description="Duration in minutes")
    earliest_start: Optional[time] = Field(None, description="Flexible tasks only")
    latest_end: Optional[time] = Field(None, description="Flexible tasks only")
    fixed_start: Optional[time] = Field(None, description="Appointments only")
    fixed_end: Optional[time] = Field(None, description="Appointments only")
    recurrence: Recurrence = Field(default_factory=DailyRecurrence)
    priority: int = Field(3, ge=1, le=5, description="1 = highest")
    energy_band: EnergyBand = EnergyBand.MEDIUM
    active: bool = True

    @model_validator(mode="after")
    def _check_bounds(self) -> "TaskBase":
        if self.fixed_start and self.fixed_end and self.fixed_start >= self.fixed_end:
            raise ValueError("fixed_start must be before fixed_end")
        if self.earliest_start and self.latest_end and self.earliest_start >= self.latest_end:
            raise ValueError("earliest_start must be before latest_end")
        return self


class TaskCreate(TaskBase):
    """Create a new task."""

    id: Optional[str] = Field(None, min_length=1, max_length=64)
    last_done: Optional[date] = None


class Task(TaskBase):
    """Task with metadata."""

    id: str
    last_done: Optional[date] = None
    success_streak: int = 0
    avg_actual_duration_min: float = 0.0
    created_at: datetime

    @property
    def is_fixed(self) -> bool:
        """Appointment with both fixed bounds set; otherwise planned as flexible."""
        return (
            self.kind == TaskKind.APPOINTMENT
            and self.fixed_start is not None
            and self.fixed_end is not None
        )


class TaskStatsUpdate(BaseModel):
    """Fields the feedback workflow is allowed to change."""

    duration_min: Optional[int] = Field(None, gt=0)
    recurrence: Optional[Recurrence] = None
    last_done: Optional[date] = None
    success_streak: Optional[int] = Field(None, ge=0)
    avg_actual_duration_min: Optional[float] = Field(None, ge=0)
