"""
SQL implementation of the task catalog repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from sqlalchemy import select

from daylit.core.exceptions import NotFoundError
from daylit.infrastructure.local.database import TaskORM, get_session_factory
from daylit.interfaces.task_repository import ITaskRepository
from daylit.models.enums import EnergyBand, TaskKind
from daylit.models.task import Task, TaskCreate, TaskStatsUpdate, recurrence_adapter
from daylit.utils.datetime_utils import ensure_utc


class SqliteTaskRepository(ITaskRepository):
    """SQL implementation of the task catalog."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TaskORM) -> Task:
        return Task(
            id=orm.id,
            name=orm.name,
            kind=TaskKind(orm.kind),
            duration_min=orm.duration_min,
            earliest_start=orm.earliest_start,
            latest_end=orm.latest_end,
            fixed_start=orm.fixed_start,
            fixed_end=orm.fixed_end,
            recurrence=recurrence_adapter.validate_python(orm.recurrence),
            priority=orm.priority,
            energy_band=EnergyBand(orm.energy_band),
            active=orm.active,
            last_done=orm.last_done,
            success_streak=orm.success_streak or 0,
            avg_actual_duration_min=orm.avg_actual_duration_min or 0.0,
            created_at=ensure_utc(orm.created_at),
        )

    async def create(self, data: TaskCreate) -> Task:
        async with self._session_factory() as session:
            orm = TaskORM(
                id=data.id or str(uuid4()),
                name=data.name,
                kind=data.kind.value,
                duration_min=data.duration_min,
                earliest_start=data.earliest_start,
                latest_end=data.latest_end,
                fixed_start=data.fixed_start,
                fixed_end=data.fixed_end,
                recurrence=recurrence_adapter.dump_python(data.recurrence, mode="json"),
                priority=data.priority,
                energy_band=data.energy_band.value,
                active=data.active,
                last_done=data.last_done,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, task_id: str) -> Optional[Task]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM).where(TaskORM.id == task_id, TaskORM.deleted_at.is_(None))
            )
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list(self, include_inactive: bool = False) -> list[Task]:
        async with self._session_factory() as session:
            query = select(TaskORM).where(TaskORM.deleted_at.is_(None))
            if not include_inactive:
                query = query.where(TaskORM.active.is_(True))
            result = await session.execute(query.order_by(TaskORM.id.asc()))
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def update_stats(self, task_id: str, update: TaskStatsUpdate) -> Task:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TaskORM).where(TaskORM.id == task_id, TaskORM.deleted_at.is_(None))
            )
            orm = result.scalar_one_or_none()
            if not orm:
                raise NotFoundError(f"Task {task_id} not found")

            update_data = update.model_dump(exclude_unset=True, exclude_none=True)
            if update_data.pop("recurrence", None) is not None:
                orm.recurrence = recurrence_adapter.dump_python(update.recurrence, mode="json")
            for field, value in update_data.items():
                setattr(orm, field, value)

            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)
