from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from .errors import StoreError
from .repositories import TodoRepository
from .schemas import DailyStat, TagStat, WeeklyStatsOut

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7
TOP_TAGS = 5

# Fixed value shown with the positive message; not derived from history.
TREND_PLACEHOLDER_PERCENTAGE = 15

MESSAGE_GET_STARTED = "아직 완료한 일이 없어요. 오늘 하나 시작해볼까요?"
MESSAGE_STEADY_START = "좋은 출발이에요! 이 흐름을 이어가 봐요."
MESSAGE_POSITIVE = "지난주보다 {percentage}% 더 성장했어요! 🔥"
MESSAGE_LOGIN_REQUIRED = "로그인이 필요합니다."
MESSAGE_UNAVAILABLE = "데이터를 불러올 수 없습니다."

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def window_days(today: date) -> List[date]:
    """The seven calendar days ending with `today`, oldest first."""
    return [today - timedelta(days=WINDOW_DAYS - 1 - i) for i in range(WINDOW_DAYS)]


def trend_message(total: int) -> str:
    if total == 0:
        return MESSAGE_GET_STARTED
    if total < 5:
        return MESSAGE_STEADY_START
    return MESSAGE_POSITIVE.format(percentage=TREND_PLACEHOLDER_PERCENTAGE)


def empty_stats(message: str) -> WeeklyStatsOut:
    return WeeklyStatsOut(
        total_completed=0,
        daily_stats=[],
        trend_message=message,
        trend_percentage=0,
        tag_stats=[],
    )


# PUBLIC_INTERFACE
def get_weekly_stats(repository: TodoRepository, today: Optional[datetime] = None) -> WeeklyStatsOut:
    """
    Build the trailing seven-day completion histogram for the repository's owner.

    Completed todos are bucketed by the calendar date of their creation
    timestamp. The trend percentage is the fixed placeholder whenever the
    positive message is shown, and 0 otherwise.
    """
    days = window_days((today or datetime.now()).date())
    start = datetime.combine(days[0], time.min)
    end = datetime.combine(days[-1], time.max)

    try:
        counts = repository.completed_counts_by_day(start, end)
        top_tags = repository.completed_tag_counts(start, end, limit=TOP_TAGS)
    except StoreError as exc:
        logger.error("Failed to fetch statistics: %s", exc.detail)
        return empty_stats(MESSAGE_UNAVAILABLE)

    daily = [
        DailyStat(date=d.isoformat(), day_name=_DAY_NAMES[d.weekday()], count=counts.get(d.isoformat(), 0))
        for d in days
    ]
    total = sum(s.count for s in daily)
    return WeeklyStatsOut(
        total_completed=total,
        daily_stats=daily,
        trend_message=trend_message(total),
        trend_percentage=TREND_PLACEHOLDER_PERCENTAGE if total >= 5 else 0,
        tag_stats=[TagStat(tag=tag, count=count) for tag, count in top_tags],
    )
