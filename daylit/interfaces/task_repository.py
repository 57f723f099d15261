"""
Task catalog repository interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from daylit.models.task import Task, TaskCreate, TaskStatsUpdate


class ITaskRepository(ABC):
    """Interface for the task catalog."""

    @abstractmethod
    async def create(self, data: TaskCreate) -> Task:
        """Add a task to the catalog."""
        pass

    @abstractmethod
    async def get(self, task_id: str) -> Optional[Task]:
        """Get a non-deleted task by id."""
        pass

    @abstractmethod
    async def list(self, include_inactive: bool = False) -> list[Task]:
        """List non-deleted tasks ordered by id."""
        pass

    @abstractmethod
    async def update_stats(self, task_id: str, update: TaskStatsUpdate) -> Task:
        """Apply feedback-driven adjustments to a task.

        Raises:
            NotFoundError: If the task does not exist
        """
        pass
