"""
Day plan API endpoints.

Generate, read, accept, rate, delete and restore a day's plan.
"""

from datetime import date, datetime

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from daylit.api.deps import DayPlanSvc
from daylit.core.exceptions import (
    AlreadyDeletedError,
    ConflictError,
    DaylitError,
    NotDeletedError,
    NotFoundError,
    SchedulingConflictError,
    ValidationError,
)
from daylit.models.plan import DayPlan, FeedbackRequest, NotificationStampRequest, PlanResult

router = APIRouter()


class DeletionResponse(BaseModel):
    date: date
    deleted_at: datetime


class RestoreResponse(BaseModel):
    date: date
    restored_epoch: datetime


class NotificationStampResponse(BaseModel):
    updated: bool


def http_error(error: DaylitError) -> HTTPException:
    """Map a domain error to the HTTP status the API reports for it."""
    if isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(
        error, (ConflictError, AlreadyDeletedError, NotDeletedError, SchedulingConflictError)
    ):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_CONTENT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if error.details:
        return HTTPException(
            status_code=code,
            detail={"message": error.message, "details": error.details},
        )
    return HTTPException(status_code=code, detail=error.message)


@router.get("", response_model=list[DayPlan])
async def list_plans(
    service: DayPlanSvc,
    include_deleted: bool = Query(False),
):
    """List the latest revision of every planned date."""
    return await service.list_plans(include_deleted=include_deleted)


@router.post("/{plan_date}/generate", response_model=PlanResult, status_code=status.HTTP_201_CREATED)
async def generate_plan(plan_date: date, service: DayPlanSvc):
    """Plan the date from the active task catalog."""
    try:
        return await service.generate(plan_date)
    except DaylitError as e:
        raise http_error(e) from e


@router.get("/{plan_date}", response_model=DayPlan)
async def get_plan(plan_date: date, service: DayPlanSvc):
    try:
        return await service.get_plan(plan_date)
    except DaylitError as e:
        raise http_error(e) from e


@router.get("/{plan_date}/revisions/{revision}", response_model=DayPlan)
async def get_plan_revision(plan_date: date, revision: int, service: DayPlanSvc):
    try:
        return await service.get_plan_revision(plan_date, revision)
    except DaylitError as e:
        raise http_error(e) from e


@router.post("/{plan_date}/accept", response_model=DayPlan)
async def accept_plan(plan_date: date, service: DayPlanSvc):
    """Accept the latest revision; later generations create a new revision."""
    try:
        return await service.accept(plan_date)
    except DaylitError as e:
        raise http_error(e) from e


@router.post("/{plan_date}/feedback", response_model=DayPlan)
async def record_feedback(
    plan_date: date,
    payload: FeedbackRequest,
    service: DayPlanSvc,
):
    """Rate a slot of the latest revision."""
    try:
        return await service.record_feedback(
            plan_date,
            payload.rating,
            note=payload.note,
            task_id=payload.task_id,
            start=payload.start,
        )
    except DaylitError as e:
        raise http_error(e) from e


@router.delete("/{plan_date}", response_model=DeletionResponse)
async def delete_plan(plan_date: date, service: DayPlanSvc):
    try:
        deleted_at = await service.delete(plan_date)
    except DaylitError as e:
        raise http_error(e) from e
    return DeletionResponse(date=plan_date, deleted_at=deleted_at)


@router.post("/{plan_date}/restore", response_model=RestoreResponse)
async def restore_plan(plan_date: date, service: DayPlanSvc):
    try:
        epoch = await service.restore(plan_date)
    except DaylitError as e:
        raise http_error(e) from e
    return RestoreResponse(date=plan_date, restored_epoch=epoch)


@router.post("/{plan_date}/notifications", response_model=NotificationStampResponse)
async def stamp_notification(
    plan_date: date,
    payload: NotificationStampRequest,
    service: DayPlanSvc,
):
    """Record that a start/end notification was sent for a slot."""
    try:
        updated = await service.mark_notified(
            plan_date,
            payload.revision,
            payload.start,
            payload.task_id,
            payload.kind,
            payload.timestamp,
        )
    except DaylitError as e:
        raise http_error(e) from e
    return NotificationStampResponse(updated=updated)
