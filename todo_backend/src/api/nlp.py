"""
Best-effort extraction of a relative due date/time from Korean todo text,
e.g. "내일 오후 3시 회의" -> ("회의", tomorrow 15:00).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

# Only the first keyword found, in this order, is consumed.
_DAY_KEYWORDS = (
    (re.compile("오늘"), 0),
    (re.compile("내일"), 1),
    (re.compile("모레"), 2),
)

_TIME = re.compile(r"(오전|오후)?\s*(\d{1,2})시\s*((\d{1,2})분)?")
_SPACES = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsedContent:
    content: str
    due_date: Optional[datetime]


# PUBLIC_INTERFACE
def parse_date_from_content(text: str, today: Optional[datetime] = None) -> ParsedContent:
    """
    Pull one day keyword (오늘/내일/모레) and one time expression
    ([오전|오후] H시 [M분]) out of `text`.

    A time without a day keyword lands on today; a day keyword without a time
    lands on midnight. When neither is present the text is returned untouched
    with no due date.
    """
    base = (today or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0)
    target: Optional[datetime] = None
    clean = text

    for pattern, days in _DAY_KEYWORDS:
        if pattern.search(clean):
            target = base + timedelta(days=days)
            clean = pattern.sub("", clean, count=1).strip()
            break

    match = _TIME.search(clean)
    if match:
        if target is None:
            target = base
        hours = int(match.group(2))
        minutes = int(match.group(4)) if match.group(4) else 0
        period = match.group(1)
        if period == "오후" and hours < 12:
            hours += 12
        if period == "오전" and hours == 12:
            hours = 0
        # Out-of-range values roll over like clock arithmetic ("25시" is 01:00 the next day).
        target = target + timedelta(hours=hours, minutes=minutes)
        clean = clean.replace(match.group(0), "", 1).strip()

    if target is None:
        return ParsedContent(content=text, due_date=None)

    return ParsedContent(content=_SPACES.sub(" ", clean).strip(), due_date=target)
