"""
Typed suggestions produced by feedback analysis.

Each suggestion kind carries its own fields instead of a loose
current/suggested value map.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class ReduceDuration(BaseModel):
    kind: Literal["reduce_duration"] = "reduce_duration"
    current_minutes: int
    suggested_minutes: int


class SplitTask(BaseModel):
    kind: Literal["split_task"] = "split_task"
    current_minutes: int


class ReduceFrequency(BaseModel):
    """
    Make a recurring task fire less often.

    ``current_interval_days`` is None when the task is currently daily.
    """

    kind: Literal["reduce_frequency"] = "reduce_frequency"
    current_interval_days: Optional[int] = None
    suggested_interval_days: int


class RemoveTask(BaseModel):
    kind: Literal["remove_task"] = "remove_task"


Suggestion = Annotated[
    Union[ReduceDuration, SplitTask, ReduceFrequency, RemoveTask],
    Field(discriminator="kind"),
]


class Optimization(BaseModel):
    """A suggested change to one task, with the evidence behind it."""

    task_id: str
    task_name: str
    reason: str
    suggestion: Suggestion
