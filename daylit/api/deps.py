"""
Dependency injection for API endpoints.

Repositories and services are built once per process and injected into
route handlers through the Annotated aliases at the bottom of this module.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from daylit.core.config import get_settings
from daylit.interfaces.plan_store import IPlanStore
from daylit.interfaces.task_repository import ITaskRepository
from daylit.services.day_plan_service import DayPlanService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from daylit.infrastructure.local.task_repository import SqliteTaskRepository

    return SqliteTaskRepository()


@lru_cache()
def get_plan_store() -> IPlanStore:
    """Get plan store instance."""
    from daylit.infrastructure.local.plan_store import SqlPlanStore

    return SqlPlanStore()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_day_plan_service() -> DayPlanService:
    """Get day plan service instance."""
    return DayPlanService(
        task_repo=get_task_repository(),
        plan_store=get_plan_store(),
        settings=get_settings(),
    )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
PlanStore = Annotated[IPlanStore, Depends(get_plan_store)]
DayPlanSvc = Annotated[DayPlanService, Depends(get_day_plan_service)]
