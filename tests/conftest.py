"""
Shared pytest fixtures.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from daylit.infrastructure.local.database import init_db
from daylit.models.task import Task


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def make_task():
    """Build a Task with sensible defaults; keyword arguments override them."""

    def _make(task_id: str = "task", **overrides) -> Task:
        values = {
            "id": task_id,
            "name": task_id.replace("-", " ").title(),
            "duration_min": 30,
            "created_at": datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        return Task(**values)

    return _make
