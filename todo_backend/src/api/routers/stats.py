from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..lifecycle import Clock, TodoService, get_clock
from ..schemas import WeeklyStatsOut
from ..statistics import MESSAGE_LOGIN_REQUIRED, empty_stats, get_weekly_stats
from .todos import get_optional_service

router = APIRouter(
    prefix="/api/v1/stats",
    tags=["stats"],
)


# PUBLIC_INTERFACE
@router.get(
    "/weekly",
    response_model=WeeklyStatsOut,
    summary="Weekly Statistics",
    description=(
        "Completed-todo counts for each of the last seven days (today included), "
        "their total, an encouragement message and the most used tags."
    ),
)
def weekly_stats(
    service: Optional[TodoService] = Depends(get_optional_service),
    now: Clock = Depends(get_clock),
) -> WeeklyStatsOut:
    if service is None:
        return empty_stats(MESSAGE_LOGIN_REQUIRED)
    return get_weekly_stats(service.repository, today=now())
