"""Repository interfaces."""

from daylit.interfaces.plan_store import IPlanStore
from daylit.interfaces.task_repository import ITaskRepository

__all__ = ["IPlanStore", "ITaskRepository"]
