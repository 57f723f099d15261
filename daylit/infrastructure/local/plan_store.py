"""
SQL implementation of the day plan store.

All revision, accept-gate and soft-delete rules live here; the SQL dialect
is whatever DATABASE_URL selects.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from daylit.core.exceptions import (
    AlreadyDeletedError,
    ConflictError,
    NotDeletedError,
    NotFoundError,
    ValidationError,
)
from daylit.core.logger import setup_logger
from daylit.infrastructure.local.database import PlanORM, SlotORM, get_session_factory
from daylit.interfaces.plan_store import IPlanStore
from daylit.models.enums import FeedbackRating, NotificationKind, SlotStatus
from daylit.models.plan import DayPlan, Feedback, Slot, TaskFeedbackEntry
from daylit.utils.datetime_utils import ensure_utc, now_utc, time_to_minutes, to_db_datetime

logger = setup_logger(__name__)


def _validate_slots(plan: DayPlan) -> None:
    active = sorted(
        (slot for slot in plan.slots if slot.deleted_at is None),
        key=lambda slot: (slot.start, slot.end, slot.task_id),
    )
    seen: set[tuple[time, str]] = set()
    latest_end: Optional[time] = None
    for slot in active:
        if slot.start >= slot.end:
            raise ValidationError(
                f"slot for task {slot.task_id} starts at {slot.start:%H:%M} "
                f"but ends at {slot.end:%H:%M}"
            )
        key = (slot.start, slot.task_id)
        if key in seen:
            raise ValidationError(
                f"duplicate slot for task {slot.task_id} at {slot.start:%H:%M}"
            )
        seen.add(key)
        if latest_end is not None and slot.start < latest_end:
            raise ValidationError(
                f"slot for task {slot.task_id} at {slot.start:%H:%M} overlaps an earlier slot"
            )
        latest_end = slot.end if latest_end is None else max(latest_end, slot.end)


def _same_instant(left: Optional[datetime], right: Optional[datetime]) -> bool:
    return to_db_datetime(left) == to_db_datetime(right)


class SqlPlanStore(IPlanStore):
    """Revisioned plan store over an async SQLAlchemy session factory."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    # ===========================================
    # Conversion
    # ===========================================

    @staticmethod
    def _slot_to_model(orm: SlotORM) -> Slot:
        feedback = None
        if orm.feedback_rating:
            feedback = Feedback(
                rating=FeedbackRating(orm.feedback_rating),
                note=orm.feedback_note or "",
            )
        return Slot(
            start=orm.start_time,
            end=orm.end_time,
            task_id=orm.task_id,
            status=SlotStatus(orm.status),
            feedback=feedback,
            last_notified_start=ensure_utc(orm.last_notified_start),
            last_notified_end=ensure_utc(orm.last_notified_end),
            deleted_at=ensure_utc(orm.deleted_at),
        )

    @staticmethod
    def _slot_to_orm(plan_date: date, revision: int, slot: Slot) -> SlotORM:
        return SlotORM(
            plan_date=plan_date,
            plan_revision=revision,
            start_time=slot.start,
            end_time=slot.end,
            task_id=slot.task_id,
            status=slot.status.value,
            feedback_rating=slot.feedback.rating.value if slot.feedback else None,
            feedback_note=slot.feedback.note if slot.feedback else None,
            last_notified_start=to_db_datetime(slot.last_notified_start),
            last_notified_end=to_db_datetime(slot.last_notified_end),
            deleted_at=to_db_datetime(slot.deleted_at),
        )

    # ===========================================
    # Queries
    # ===========================================

    @staticmethod
    async def _latest_active(
        session: AsyncSession,
        plan_date: date,
        for_update: bool = False,
    ) -> Optional[PlanORM]:
        query = (
            select(PlanORM)
            .where(PlanORM.date == plan_date, PlanORM.deleted_at.is_(None))
            .order_by(PlanORM.revision.desc())
            .limit(1)
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        return result.scalars().first()

    @staticmethod
    async def _max_revision(session: AsyncSession, plan_date: date) -> int:
        result = await session.execute(
            select(func.max(PlanORM.revision)).where(PlanORM.date == plan_date)
        )
        return result.scalar() or 0

    @staticmethod
    async def _count_plans(session: AsyncSession, plan_date: date, active_only: bool) -> int:
        query = select(func.count()).select_from(PlanORM).where(PlanORM.date == plan_date)
        if active_only:
            query = query.where(PlanORM.deleted_at.is_(None))
        result = await session.execute(query)
        return result.scalar() or 0

    async def _load_plan(self, session: AsyncSession, orm: PlanORM) -> DayPlan:
        # A deleted revision shows the slots removed together with it
        if orm.deleted_at is None:
            slot_filter = SlotORM.deleted_at.is_(None)
        else:
            slot_filter = SlotORM.deleted_at == orm.deleted_at
        result = await session.execute(
            select(SlotORM)
            .where(
                SlotORM.plan_date == orm.date,
                SlotORM.plan_revision == orm.revision,
                slot_filter,
            )
            .order_by(SlotORM.start_time.asc(), SlotORM.task_id.asc())
        )
        return DayPlan(
            date=orm.date,
            revision=orm.revision,
            accepted_at=ensure_utc(orm.accepted_at),
            deleted_at=ensure_utc(orm.deleted_at),
            slots=[self._slot_to_model(slot) for slot in result.scalars().all()],
        )

    @staticmethod
    async def _next_epoch(session: AsyncSession, plan_date: date) -> datetime:
        """Deletion timestamp strictly later than any earlier one for the date."""
        epoch = to_db_datetime(now_utc())
        plan_max = await session.execute(
            select(func.max(PlanORM.deleted_at)).where(PlanORM.date == plan_date)
        )
        slot_max = await session.execute(
            select(func.max(SlotORM.deleted_at)).where(SlotORM.plan_date == plan_date)
        )
        previous = [value for value in (plan_max.scalar(), slot_max.scalar()) if value is not None]
        if previous and max(previous) >= epoch:
            epoch = max(previous) + timedelta(microseconds=1)
        return epoch

    # ===========================================
    # Writes
    # ===========================================

    async def save_plan(self, plan: DayPlan) -> DayPlan:
        if plan.deleted_at is not None:
            raise ValidationError(
                "cannot save a plan with deleted_at set; use delete_plan/restore_plan instead"
            )
        _validate_slots(plan)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    revision, existing = await self._resolve_revision(session, plan)

                    if existing is None:
                        session.add(
                            PlanORM(
                                date=plan.date,
                                revision=revision,
                                accepted_at=to_db_datetime(plan.accepted_at),
                                deleted_at=None,
                            )
                        )
                        await session.flush()
                    else:
                        existing.accepted_at = to_db_datetime(plan.accepted_at)

                    await session.execute(
                        delete(SlotORM)
                        .where(
                            SlotORM.plan_date == plan.date,
                            SlotORM.plan_revision == revision,
                            SlotORM.deleted_at.is_(None),
                        )
                        .execution_options(synchronize_session=False)
                    )
                    session.add_all(
                        [self._slot_to_orm(plan.date, revision, slot) for slot in plan.slots]
                    )
        except IntegrityError as exc:
            raise ConflictError(
                f"plan {plan.date.isoformat()} was modified concurrently; re-run the command",
                details={"date": plan.date.isoformat()},
            ) from exc

        logger.info(
            f"Saved plan {plan.date.isoformat()} revision {revision} "
            f"({len(plan.slots)} slots, accepted={plan.accepted_at is not None})"
        )
        return await self.get_plan_revision(plan.date, revision)

    async def _resolve_revision(
        self,
        session: AsyncSession,
        plan: DayPlan,
    ) -> tuple[int, Optional[PlanORM]]:
        """Pick the revision to write and return it with its existing row, if any."""
        if plan.revision == 0:
            latest = await self._latest_active(session, plan.date, for_update=True)
            if latest is not None and latest.accepted_at is None:
                return latest.revision, latest
            # New revision; numbers of soft-deleted revisions are never reused
            return await self._max_revision(session, plan.date) + 1, None

        existing = await session.get(
            PlanORM, (plan.date, plan.revision), with_for_update=True
        )
        if existing is None:
            return plan.revision, None
        if existing.deleted_at is not None:
            raise AlreadyDeletedError(
                f"cannot save slots to a deleted plan: {plan.date.isoformat()} "
                f"revision {plan.revision}"
            )
        if existing.accepted_at is not None and not _same_instant(
            existing.accepted_at, plan.accepted_at
        ):
            raise ConflictError(
                f"cannot overwrite accepted plan: {plan.date.isoformat()} "
                f"revision {plan.revision}",
                details={"date": plan.date.isoformat(), "revision": plan.revision},
            )
        return plan.revision, existing

    async def delete_plan(self, plan_date: date) -> datetime:
        async with self._session_factory() as session:
            async with session.begin():
                if await self._count_plans(session, plan_date, active_only=True) == 0:
                    if await self._count_plans(session, plan_date, active_only=False) == 0:
                        raise NotFoundError(f"no plan found for date: {plan_date.isoformat()}")
                    raise AlreadyDeletedError(
                        f"no active plans found for date: {plan_date.isoformat()}"
                    )

                epoch = await self._next_epoch(session, plan_date)
                await session.execute(
                    update(PlanORM)
                    .where(PlanORM.date == plan_date, PlanORM.deleted_at.is_(None))
                    .values(deleted_at=epoch)
                    .execution_options(synchronize_session=False)
                )
                await session.execute(
                    update(SlotORM)
                    .where(SlotORM.plan_date == plan_date, SlotORM.deleted_at.is_(None))
                    .values(deleted_at=epoch)
                    .execution_options(synchronize_session=False)
                )

        logger.info(f"Deleted plan {plan_date.isoformat()} at {epoch.isoformat()}")
        return ensure_utc(epoch)

    async def restore_plan(self, plan_date: date) -> datetime:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(func.max(PlanORM.deleted_at)).where(PlanORM.date == plan_date)
                )
                epoch = result.scalar()
                if epoch is None:
                    if await self._count_plans(session, plan_date, active_only=False) == 0:
                        raise NotFoundError(f"no plan found for date: {plan_date.isoformat()}")
                    raise NotDeletedError(
                        f"no deleted plans found for date: {plan_date.isoformat()}"
                    )

                await session.execute(
                    update(PlanORM)
                    .where(PlanORM.date == plan_date, PlanORM.deleted_at == epoch)
                    .values(deleted_at=None)
                    .execution_options(synchronize_session=False)
                )
                # Slots deleted at any other time stay deleted
                await session.execute(
                    update(SlotORM)
                    .where(SlotORM.plan_date == plan_date, SlotORM.deleted_at == epoch)
                    .values(deleted_at=None)
                    .execution_options(synchronize_session=False)
                )

        logger.info(f"Restored plan {plan_date.isoformat()} deleted at {epoch.isoformat()}")
        return ensure_utc(epoch)

    async def update_slot_notification_timestamp(
        self,
        plan_date: date,
        revision: int,
        start: time,
        task_id: str,
        kind: NotificationKind | str,
        timestamp: datetime,
    ) -> bool:
        try:
            kind = NotificationKind(kind)
        except ValueError as exc:
            raise ValidationError(f"invalid notification type: {kind}") from exc

        values = (
            {"last_notified_start": to_db_datetime(timestamp)}
            if kind == NotificationKind.START
            else {"last_notified_end": to_db_datetime(timestamp)}
        )
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(SlotORM)
                    .where(
                        SlotORM.plan_date == plan_date,
                        SlotORM.plan_revision == revision,
                        SlotORM.start_time == start,
                        SlotORM.task_id == task_id,
                        SlotORM.deleted_at.is_(None),
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
        return (result.rowcount or 0) > 0

    async def delete_slot(
        self,
        plan_date: date,
        revision: int,
        start: time,
        task_id: str,
    ) -> datetime:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(SlotORM).where(
                        SlotORM.plan_date == plan_date,
                        SlotORM.plan_revision == revision,
                        SlotORM.start_time == start,
                        SlotORM.task_id == task_id,
                        SlotORM.deleted_at.is_(None),
                    )
                )
                orm = result.scalars().first()
                if orm is None:
                    raise NotFoundError(
                        f"slot {task_id} at {start:%H:%M} not found in "
                        f"{plan_date.isoformat()} revision {revision}"
                    )
                epoch = await self._next_epoch(session, plan_date)
                orm.deleted_at = epoch
        return ensure_utc(epoch)

    # ===========================================
    # Reads
    # ===========================================

    async def get_plan(self, plan_date: date) -> DayPlan:
        return await self.get_latest_plan_revision(plan_date)

    async def get_latest_plan_revision(self, plan_date: date) -> DayPlan:
        async with self._session_factory() as session:
            orm = await self._latest_active(session, plan_date)
            if orm is None:
                raise NotFoundError(f"no plan found for date: {plan_date.isoformat()}")
            return await self._load_plan(session, orm)

    async def get_plan_revision(self, plan_date: date, revision: int) -> DayPlan:
        async with self._session_factory() as session:
            orm = await session.get(PlanORM, (plan_date, revision))
            if orm is None:
                raise NotFoundError(
                    f"no plan found for date: {plan_date.isoformat()} revision: {revision}"
                )
            if orm.deleted_at is not None:
                raise NotFoundError(
                    f"plan for date {plan_date.isoformat()} revision {revision} has been "
                    f"deleted; restore it first",
                    details={"deleted_at": ensure_utc(orm.deleted_at).isoformat()},
                )
            return await self._load_plan(session, orm)

    async def get_task_feedback_history(
        self,
        task_id: str,
        limit: int,
    ) -> list[TaskFeedbackEntry]:
        if limit <= 0:
            raise ValidationError(f"limit must be positive, got {limit}")
        async with self._session_factory() as session:
            result = await session.execute(
                select(SlotORM)
                .join(
                    PlanORM,
                    and_(
                        SlotORM.plan_date == PlanORM.date,
                        SlotORM.plan_revision == PlanORM.revision,
                    ),
                )
                .where(
                    SlotORM.task_id == task_id,
                    SlotORM.feedback_rating.is_not(None),
                    SlotORM.feedback_rating != "",
                    SlotORM.deleted_at.is_(None),
                    PlanORM.deleted_at.is_(None),
                )
                .order_by(PlanORM.date.desc(), SlotORM.start_time.desc())
                .limit(limit)
            )
            entries: list[TaskFeedbackEntry] = []
            for orm in result.scalars().all():
                duration = time_to_minutes(orm.end_time) - time_to_minutes(orm.start_time)
                if duration < 0:
                    # Slot runs past midnight
                    duration += 24 * 60
                entries.append(
                    TaskFeedbackEntry(
                        date=orm.plan_date,
                        task_id=orm.task_id,
                        rating=FeedbackRating(orm.feedback_rating),
                        note=orm.feedback_note or "",
                        start=orm.start_time,
                        end=orm.end_time,
                        actual_duration_min=duration,
                    )
                )
            return entries

    async def list_plans(self, include_deleted: bool = False) -> list[DayPlan]:
        async with self._session_factory() as session:
            query = select(PlanORM).order_by(PlanORM.date.asc(), PlanORM.revision.desc())
            if not include_deleted:
                query = query.where(PlanORM.deleted_at.is_(None))
            result = await session.execute(query)

            latest_by_date: dict[date, PlanORM] = {}
            for orm in result.scalars().all():
                current = latest_by_date.get(orm.date)
                if current is None or (current.deleted_at is not None and orm.deleted_at is None):
                    latest_by_date[orm.date] = orm
            return [await self._load_plan(session, orm) for orm in latest_by_date.values()]
