from datetime import date, datetime, time, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from daylit.api.optimizations import list_optimizations
from daylit.api.plans import (
    accept_plan,
    delete_plan,
    generate_plan,
    get_plan,
    get_plan_revision,
    record_feedback,
    restore_plan,
    stamp_notification,
)
from daylit.api.tasks import create_task, get_task
from daylit.core.exceptions import (
    AlreadyDeletedError,
    ConflictError,
    NotDeletedError,
    NotFoundError,
    SchedulingConflictError,
    ValidationError,
)
from daylit.models.enums import FeedbackRating, NotificationKind
from daylit.models.plan import DayPlan, FeedbackRequest, NotificationStampRequest, PlanResult
from daylit.models.task import TaskCreate

PLAN_DATE = date(2026, 1, 5)


@pytest.mark.asyncio
async def test_generate_returns_plan_result() -> None:
    service = AsyncMock()
    expected = PlanResult(plan=DayPlan(date=PLAN_DATE, revision=1))
    service.generate.return_value = expected

    result = await generate_plan(plan_date=PLAN_DATE, service=service)

    assert result == expected
    service.generate.assert_awaited_once_with(PLAN_DATE)


@pytest.mark.asyncio
async def test_generate_maps_fixed_conflict_to_409() -> None:
    service = AsyncMock()
    service.generate.side_effect = SchedulingConflictError(
        "fixed tasks a and b overlap", task_ids=("a", "b")
    )

    with pytest.raises(HTTPException) as exc_info:
        await generate_plan(plan_date=PLAN_DATE, service=service)

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail["details"] == {"task_ids": ["a", "b"]}


@pytest.mark.asyncio
async def test_get_deleted_revision_is_404() -> None:
    service = AsyncMock()
    service.get_plan_revision.side_effect = NotFoundError("deleted; restore it first")

    with pytest.raises(HTTPException) as exc_info:
        await get_plan_revision(plan_date=PLAN_DATE, revision=1, service=service)

    assert exc_info.value.status_code == 404
    assert "restore" in exc_info.value.detail


@pytest.mark.asyncio
async def test_get_plan_keeps_error_details() -> None:
    service = AsyncMock()
    service.get_plan.side_effect = NotFoundError(
        "no plan for date", details={"date": PLAN_DATE.isoformat()}
    )

    with pytest.raises(HTTPException) as exc_info:
        await get_plan(plan_date=PLAN_DATE, service=service)

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail == {
        "message": "no plan for date",
        "details": {"date": "2026-01-05"},
    }


@pytest.mark.asyncio
async def test_get_plan_revision_maps_validation_error_to_422() -> None:
    service = AsyncMock()
    service.get_plan_revision.side_effect = ValidationError("revision must be positive")

    with pytest.raises(HTTPException) as exc_info:
        await get_plan_revision(plan_date=PLAN_DATE, revision=0, service=service)

    assert exc_info.value.status_code == 422
    assert exc_info.value.detail == "revision must be positive"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (ConflictError("already accepted"), 409),
        (NotFoundError("no plan"), 404),
        (ValidationError("bad"), 422),
    ],
)
async def test_accept_error_mapping(error, status_code) -> None:
    service = AsyncMock()
    service.accept.side_effect = error

    with pytest.raises(HTTPException) as exc_info:
        await accept_plan(plan_date=PLAN_DATE, service=service)

    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_record_feedback_forwards_payload() -> None:
    service = AsyncMock()
    service.record_feedback.return_value = DayPlan(date=PLAN_DATE, revision=2)
    payload = FeedbackRequest(
        rating=FeedbackRating.TOO_MUCH, note="long", task_id="a", start=time(9, 0)
    )

    await record_feedback(plan_date=PLAN_DATE, payload=payload, service=service)

    service.record_feedback.assert_awaited_once_with(
        PLAN_DATE,
        FeedbackRating.TOO_MUCH,
        note="long",
        task_id="a",
        start=time(9, 0),
    )


@pytest.mark.asyncio
async def test_delete_and_restore_responses() -> None:
    service = AsyncMock()
    epoch = datetime(2026, 1, 5, 20, 0, tzinfo=timezone.utc)
    service.delete.return_value = epoch
    service.restore.return_value = epoch

    deleted = await delete_plan(plan_date=PLAN_DATE, service=service)
    restored = await restore_plan(plan_date=PLAN_DATE, service=service)

    assert deleted.deleted_at == epoch
    assert restored.restored_epoch == epoch

    service.delete.side_effect = AlreadyDeletedError("no active plans")
    with pytest.raises(HTTPException) as exc_info:
        await delete_plan(plan_date=PLAN_DATE, service=service)
    assert exc_info.value.status_code == 409

    service.restore.side_effect = NotDeletedError("nothing deleted")
    with pytest.raises(HTTPException) as exc_info:
        await restore_plan(plan_date=PLAN_DATE, service=service)
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_stamp_notification() -> None:
    service = AsyncMock()
    service.mark_notified.return_value = False
    payload = NotificationStampRequest(
        revision=1, start=time(9, 0), task_id="a", kind=NotificationKind.END
    )

    response = await stamp_notification(plan_date=PLAN_DATE, payload=payload, service=service)

    assert response.updated is False
    service.mark_notified.assert_awaited_once_with(
        PLAN_DATE, 1, time(9, 0), "a", NotificationKind.END, None
    )


@pytest.mark.asyncio
async def test_list_optimizations_passes_limit() -> None:
    service = AsyncMock()
    service.suggest_optimizations.return_value = []

    assert await list_optimizations(service=service, limit=5) == []
    service.suggest_optimizations.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_create_task_rejects_duplicate_id(make_task) -> None:
    repo = AsyncMock()
    repo.get.return_value = make_task("walk")

    with pytest.raises(HTTPException) as exc_info:
        await create_task(task=TaskCreate(id="walk", name="Walk", duration_min=20), repo=repo)

    assert exc_info.value.status_code == 409
    repo.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_missing_task_is_404() -> None:
    repo = AsyncMock()
    repo.get.return_value = None

    with pytest.raises(HTTPException) as exc_info:
        await get_task(task_id="missing", repo=repo)

    assert exc_info.value.status_code == 404
