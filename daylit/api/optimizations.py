"""
Optimization suggestions API endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Query

from daylit.api.deps import DayPlanSvc
from daylit.api.plans import http_error
from daylit.core.exceptions import DaylitError
from daylit.models.suggestion import Optimization

router = APIRouter()


@router.get("", response_model=list[Optimization])
async def list_optimizations(
    service: DayPlanSvc,
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    """Suggest task changes from recent feedback."""
    try:
        return await service.suggest_optimizations(limit)
    except DaylitError as e:
        raise http_error(e) from e
