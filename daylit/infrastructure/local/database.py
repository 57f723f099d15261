"""
SQL database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
The same models serve every async SQLAlchemy dialect reachable through
DATABASE_URL; SQLite (aiosqlite) is the default.
"""

from functools import lru_cache

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKeyConstraint,
    Index,
    Integer,
    JSON,
    String,
    Text,
    Time,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from daylit.core.config import get_settings
from daylit.utils.datetime_utils import now_utc, to_db_datetime


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task catalog entry."""

    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    kind = Column(String(20), nullable=False, default="flexible")
    duration_min = Column(Integer, nullable=False)
    earliest_start = Column(Time, nullable=True)
    latest_end = Column(Time, nullable=True)
    fixed_start = Column(Time, nullable=True)
    fixed_end = Column(Time, nullable=True)
    recurrence = Column(JSON, nullable=False)
    priority = Column(Integer, nullable=False, default=3)
    energy_band = Column(String(10), nullable=False, default="medium")
    active = Column(Boolean, nullable=False, default=True, index=True)
    last_done = Column(Date, nullable=True)
    success_streak = Column(Integer, nullable=False, default=0)
    avg_actual_duration_min = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, nullable=False, default=lambda: to_db_datetime(now_utc()))
    deleted_at = Column(DateTime, nullable=True)


class PlanORM(Base):
    """One revision of a day plan. Primary key is (date, revision)."""

    __tablename__ = "plans"

    date = Column(Date, primary_key=True)
    revision = Column(Integer, primary_key=True, default=1)
    accepted_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True, index=True)


class SlotORM(Base):
    """A placed slot. Identity within a plan is (start_time, task_id)."""

    __tablename__ = "slots"
    __table_args__ = (
        ForeignKeyConstraint(
            ["plan_date", "plan_revision"],
            ["plans.date", "plans.revision"],
        ),
        Index("ix_slots_plan", "plan_date", "plan_revision"),
        Index("ix_slots_task", "task_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_date = Column(Date, nullable=False)
    plan_revision = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    task_id = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default="planned")
    feedback_rating = Column(String(20), nullable=True)
    feedback_note = Column(Text, nullable=True)
    last_notified_start = Column(DateTime, nullable=True)
    last_notified_end = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine() -> AsyncEngine:
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get async session factory."""
    engine = get_engine()
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
