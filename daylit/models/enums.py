"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/kind values.
"""

from enum import Enum


class TaskKind(str, Enum):
    """How a task is placed in the day."""

    FLEXIBLE = "flexible"
    APPOINTMENT = "appointment"


class EnergyBand(str, Enum):
    """
    Energy a task demands. Advisory only; the planner does not enforce it.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecurrenceType(str, Enum):
    """Recurrence rule tags."""

    AD_HOC = "ad_hoc"
    DAILY = "daily"
    WEEKDAYS = "weekdays"  # Mon-Fri
    WEEKLY = "weekly"
    N_DAYS = "n_days"
    MONTHLY_DATE = "monthly_date"  # e.g. the 15th of every month
    MONTHLY_DAY = "monthly_day"  # e.g. the last Friday of the month
    YEARLY = "yearly"


class SlotStatus(str, Enum):
    """Lifecycle of a planned slot."""

    PLANNED = "planned"
    ACCEPTED = "accepted"
    DONE = "done"
    SKIPPED = "skipped"


class FeedbackRating(str, Enum):
    """Outcome rating attached to a slot."""

    ON_TRACK = "on_track"
    TOO_MUCH = "too_much"
    UNNECESSARY = "unnecessary"


class NotificationKind(str, Enum):
    """Which edge of a slot a notification was sent for."""

    START = "start"
    END = "end"
