"""
Pure todo rules shared by the server and guest paths: recurrence advancement,
the expansion trigger, and list ordering.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from dateutil.relativedelta import relativedelta

_PATTERN_UNITS = {
    "daily": "days",
    "weekly": "weeks",
    "monthly": "months",
}


# PUBLIC_INTERFACE
def next_due_date(due_date: datetime, pattern: Optional[str], interval: int) -> Optional[datetime]:
    """
    Advance `due_date` by `interval` units of `pattern`.

    Month steps clamp to the last day of shorter months (Jan 31 + 1 month -> Feb 28/29).
    Returns None for 'none' or unknown patterns.
    """
    unit = _PATTERN_UNITS.get(pattern or "none")
    if unit is None:
        return None
    return due_date + relativedelta(**{unit: max(int(interval or 1), 1)})


# PUBLIC_INTERFACE
def should_expand(previous: Mapping[str, Any], is_completed: bool) -> bool:
    """
    True only for a genuine incomplete -> complete transition of a recurring,
    due-dated todo whose pattern produces a next date.
    """
    if not is_completed or previous["is_completed"]:
        return False
    if not previous["is_recurring"] or previous["due_date"] is None:
        return False
    return (previous["recurrence_pattern"] or "none") in _PATTERN_UNITS


# PUBLIC_INTERFACE
def successor_of(todo: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Return creation fields for the next occurrence of `todo`, or None if it has none."""
    due = next_due_date(todo["due_date"], todo["recurrence_pattern"], todo["recurrence_interval"])
    if due is None:
        return None
    return {
        "content": todo["content"],
        "folder_id": todo["folder_id"],
        "priority": todo["priority"],
        "due_date": due,
        "is_recurring": todo["is_recurring"],
        "recurrence_pattern": todo["recurrence_pattern"],
        "recurrence_interval": todo["recurrence_interval"],
        "tags": list(todo["tags"]),
    }


def order_marker(now: datetime) -> float:
    """Epoch milliseconds of `now`; new todos sort after everything created earlier."""
    return now.timestamp() * 1000


# PUBLIC_INTERFACE
def sort_todos(todos: Iterable[Mapping[str, Any]]) -> List[Any]:
    """Order ascending by `order`, ties broken newest-created first."""
    newest_first = sorted(todos, key=lambda t: t["created_at"], reverse=True)
    return sorted(newest_first, key=lambda t: t["order"])
