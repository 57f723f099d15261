"""
Unit tests for the SQL plan store.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from daylit.core.exceptions import (
    AlreadyDeletedError,
    ConflictError,
    NotDeletedError,
    NotFoundError,
    ValidationError,
)
from daylit.infrastructure.local.plan_store import SqlPlanStore
from daylit.models.enums import FeedbackRating, NotificationKind, SlotStatus
from daylit.models.plan import DayPlan, Feedback, Slot

ACCEPTED_AT = datetime(2024, 3, 1, 7, 30, tzinfo=timezone.utc)


def _slot(start: str, end: str, task_id: str, **overrides) -> Slot:
    return Slot(
        start=time.fromisoformat(start),
        end=time.fromisoformat(end),
        task_id=task_id,
        **overrides,
    )


@pytest.mark.asyncio
async def test_accepted_plan_is_kept_when_regenerated(session_factory):
    """Saving after an accepted revision creates the next revision."""
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 1)

    first = await store.save_plan(
        DayPlan(
            date=plan_date,
            accepted_at=ACCEPTED_AT,
            slots=[_slot("09:00", "10:00", "t1", status=SlotStatus.ACCEPTED)],
        )
    )
    second = await store.save_plan(
        DayPlan(date=plan_date, slots=[_slot("10:00", "11:00", "t2")])
    )

    assert first.revision == 1
    assert first.accepted_at == ACCEPTED_AT
    assert second.revision == 2
    assert second.accepted_at is None

    kept = await store.get_plan_revision(plan_date, 1)
    assert kept.slots == first.slots
    assert kept.slots[0].start == time(9, 0)
    assert kept.slots[0].status == SlotStatus.ACCEPTED

    latest = await store.get_plan(plan_date)
    assert latest.revision == 2
    assert [slot.task_id for slot in latest.slots] == ["t2"]


@pytest.mark.asyncio
async def test_saving_unaccepted_plan_twice_keeps_one_revision(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 2)

    await store.save_plan(DayPlan(date=plan_date, slots=[_slot("09:00", "09:30", "a")]))
    saved = await store.save_plan(
        DayPlan(
            date=plan_date,
            slots=[_slot("08:00", "08:45", "b"), _slot("09:00", "09:30", "c")],
        )
    )

    assert saved.revision == 1
    assert [slot.task_id for slot in saved.slots] == ["b", "c"]
    with pytest.raises(NotFoundError):
        await store.get_plan_revision(plan_date, 2)


@pytest.mark.asyncio
async def test_slots_are_returned_in_start_order(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 2)

    saved = await store.save_plan(
        DayPlan(
            date=plan_date,
            slots=[_slot("14:00", "15:00", "late"), _slot("08:00", "09:00", "early")],
        )
    )

    assert [slot.task_id for slot in saved.slots] == ["early", "late"]


@pytest.mark.asyncio
async def test_explicit_revision_cannot_change_accepted_plan(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 4)
    accepted = await store.save_plan(
        DayPlan(date=plan_date, accepted_at=ACCEPTED_AT, slots=[_slot("09:00", "10:00", "t1")])
    )

    with pytest.raises(ConflictError):
        await store.save_plan(
            DayPlan(date=plan_date, revision=accepted.revision, slots=[])
        )
    with pytest.raises(ConflictError):
        await store.save_plan(
            accepted.model_copy(update={"accepted_at": ACCEPTED_AT + timedelta(minutes=1)})
        )

    unchanged = await store.get_plan(plan_date)
    assert unchanged.slots == accepted.slots


@pytest.mark.asyncio
async def test_explicit_revision_with_same_accepted_at_updates_slots(session_factory):
    """Feedback is written back to the accepted revision it belongs to."""
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 4)
    accepted = await store.save_plan(
        DayPlan(
            date=plan_date,
            accepted_at=ACCEPTED_AT,
            slots=[_slot("09:00", "10:00", "t1", status=SlotStatus.ACCEPTED)],
        )
    )

    rated = accepted.slots[0].model_copy(
        update={
            "status": SlotStatus.DONE,
            "feedback": Feedback(rating=FeedbackRating.ON_TRACK, note="fine"),
        }
    )
    saved = await store.save_plan(accepted.model_copy(update={"slots": [rated]}))

    assert saved.revision == accepted.revision
    assert saved.slots[0].status == SlotStatus.DONE
    assert saved.slots[0].feedback == Feedback(rating=FeedbackRating.ON_TRACK, note="fine")


@pytest.mark.asyncio
async def test_save_rejects_invalid_plans(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 5)

    with pytest.raises(ValidationError):
        await store.save_plan(
            DayPlan(date=plan_date, deleted_at=ACCEPTED_AT, slots=[_slot("09:00", "10:00", "t")])
        )
    with pytest.raises(ValidationError):
        await store.save_plan(DayPlan(date=plan_date, slots=[_slot("10:00", "09:00", "t")]))
    with pytest.raises(ValidationError):
        await store.save_plan(
            DayPlan(
                date=plan_date,
                slots=[_slot("09:00", "10:00", "a"), _slot("09:30", "10:30", "b")],
            )
        )
    with pytest.raises(NotFoundError):
        await store.get_plan(plan_date)


@pytest.mark.asyncio
async def test_delete_then_restore_returns_plan(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 3)
    original = await store.save_plan(
        DayPlan(
            date=plan_date,
            slots=[_slot("09:00", "10:00", "a"), _slot("11:00", "11:30", "b")],
        )
    )

    deleted_at = await store.delete_plan(plan_date)
    assert deleted_at.tzinfo is not None
    with pytest.raises(NotFoundError):
        await store.get_plan(plan_date)

    epoch = await store.restore_plan(plan_date)
    assert epoch == deleted_at

    restored = await store.get_plan(plan_date)
    assert restored == original


@pytest.mark.asyncio
async def test_deleted_revision_points_to_restore(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 3)
    await store.save_plan(DayPlan(date=plan_date, slots=[_slot("09:00", "10:00", "a")]))
    await store.delete_plan(plan_date)

    with pytest.raises(NotFoundError) as exc_info:
        await store.get_plan_revision(plan_date, 1)
    assert "restore" in str(exc_info.value)


@pytest.mark.asyncio
async def test_restore_keeps_individually_deleted_slot_deleted(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 6)
    await store.save_plan(
        DayPlan(
            date=plan_date,
            slots=[_slot("09:00", "10:00", "keep"), _slot("10:00", "11:00", "drop")],
        )
    )

    await store.delete_slot(plan_date, 1, time(10, 0), "drop")
    await store.delete_plan(plan_date)
    await store.restore_plan(plan_date)

    restored = await store.get_plan(plan_date)
    assert [slot.task_id for slot in restored.slots] == ["keep"]


@pytest.mark.asyncio
async def test_delete_and_restore_errors(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 7)

    with pytest.raises(NotFoundError):
        await store.delete_plan(plan_date)
    with pytest.raises(NotFoundError):
        await store.restore_plan(plan_date)

    await store.save_plan(DayPlan(date=plan_date, slots=[_slot("09:00", "10:00", "a")]))
    with pytest.raises(NotDeletedError):
        await store.restore_plan(plan_date)

    await store.delete_plan(plan_date)
    with pytest.raises(AlreadyDeletedError):
        await store.delete_plan(plan_date)


@pytest.mark.asyncio
async def test_saving_into_deleted_revision_is_rejected(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 8)
    saved = await store.save_plan(DayPlan(date=plan_date, slots=[_slot("09:00", "10:00", "a")]))
    await store.delete_plan(plan_date)

    with pytest.raises(AlreadyDeletedError):
        await store.save_plan(saved)


@pytest.mark.asyncio
async def test_new_plan_after_delete_does_not_reuse_revision(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 9)
    await store.save_plan(DayPlan(date=plan_date, slots=[_slot("09:00", "10:00", "old")]))
    await store.delete_plan(plan_date)

    fresh = await store.save_plan(
        DayPlan(date=plan_date, slots=[_slot("13:00", "14:00", "new")])
    )
    assert fresh.revision == 2

    await store.restore_plan(plan_date)
    old = await store.get_plan_revision(plan_date, 1)
    assert [slot.task_id for slot in old.slots] == ["old"]
    latest = await store.get_plan(plan_date)
    assert latest.revision == 2


@pytest.mark.asyncio
async def test_notification_timestamps(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 10)
    await store.save_plan(
        DayPlan(
            date=plan_date,
            slots=[_slot("09:00", "10:00", "a"), _slot("10:00", "11:00", "b")],
        )
    )
    sent_at = datetime(2024, 3, 10, 9, 0, 5, tzinfo=timezone.utc)

    assert await store.update_slot_notification_timestamp(
        plan_date, 1, time(9, 0), "a", NotificationKind.START, sent_at
    )
    assert await store.update_slot_notification_timestamp(
        plan_date, 1, time(9, 0), "a", "end", sent_at + timedelta(hours=1)
    )

    plan = await store.get_plan(plan_date)
    assert plan.slots[0].last_notified_start == sent_at
    assert plan.slots[0].last_notified_end == sent_at + timedelta(hours=1)
    assert plan.slots[1].last_notified_start is None

    # Missing and deleted slots are silently ignored
    assert not await store.update_slot_notification_timestamp(
        plan_date, 1, time(12, 0), "a", NotificationKind.START, sent_at
    )
    await store.delete_slot(plan_date, 1, time(10, 0), "b")
    assert not await store.update_slot_notification_timestamp(
        plan_date, 1, time(10, 0), "b", NotificationKind.START, sent_at
    )

    with pytest.raises(ValidationError):
        await store.update_slot_notification_timestamp(
            plan_date, 1, time(9, 0), "a", "middle", sent_at
        )


@pytest.mark.asyncio
async def test_delete_missing_slot(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    plan_date = date(2024, 3, 11)
    await store.save_plan(DayPlan(date=plan_date, slots=[_slot("09:00", "10:00", "a")]))

    with pytest.raises(NotFoundError):
        await store.delete_slot(plan_date, 1, time(9, 0), "other")


@pytest.mark.asyncio
async def test_task_feedback_history(session_factory):
    store = SqlPlanStore(session_factory=session_factory)

    def rated(start: str, end: str, rating: FeedbackRating) -> Slot:
        return _slot(start, end, "focus", status=SlotStatus.DONE, feedback=Feedback(rating=rating))

    await store.save_plan(
        DayPlan(date=date(2024, 4, 1), slots=[rated("09:00", "10:00", FeedbackRating.ON_TRACK)])
    )
    await store.save_plan(
        DayPlan(
            date=date(2024, 4, 2),
            slots=[
                rated("09:00", "09:45", FeedbackRating.TOO_MUCH),
                _slot("10:00", "10:30", "focus"),
            ],
        )
    )
    await store.save_plan(
        DayPlan(date=date(2024, 4, 3), slots=[rated("09:00", "10:00", FeedbackRating.UNNECESSARY)])
    )
    await store.delete_plan(date(2024, 4, 3))

    history = await store.get_task_feedback_history("focus", limit=10)

    assert [entry.date for entry in history] == [date(2024, 4, 2), date(2024, 4, 1)]
    assert history[0].rating == FeedbackRating.TOO_MUCH
    assert history[0].actual_duration_min == 45

    limited = await store.get_task_feedback_history("focus", limit=1)
    assert [entry.date for entry in limited] == [date(2024, 4, 2)]
    assert await store.get_task_feedback_history("other", limit=10) == []


@pytest.mark.asyncio
async def test_list_plans(session_factory):
    store = SqlPlanStore(session_factory=session_factory)
    await store.save_plan(
        DayPlan(date=date(2024, 5, 2), accepted_at=ACCEPTED_AT, slots=[_slot("09:00", "10:00", "a")])
    )
    await store.save_plan(DayPlan(date=date(2024, 5, 2), slots=[_slot("11:00", "12:00", "b")]))
    await store.save_plan(DayPlan(date=date(2024, 5, 1), slots=[_slot("09:00", "10:00", "c")]))
    await store.save_plan(DayPlan(date=date(2024, 5, 3), slots=[_slot("09:00", "10:00", "d")]))
    await store.delete_plan(date(2024, 5, 3))

    plans = await store.list_plans()
    assert [(plan.date, plan.revision) for plan in plans] == [
        (date(2024, 5, 1), 1),
        (date(2024, 5, 2), 2),
    ]

    with_deleted = await store.list_plans(include_deleted=True)
    assert [plan.date for plan in with_deleted] == [
        date(2024, 5, 1),
        date(2024, 5, 2),
        date(2024, 5, 3),
    ]
    assert with_deleted[2].deleted_at is not None
    assert [slot.task_id for slot in with_deleted[2].slots] == ["d"]
