# scheduler/recurrence.py
"""
Plain calendar-day helpers used by reminder ranges and weekday words.

Nothing here knows about study-day offsets; windows.py owns those.
"""

from __future__ import annotations
from datetime import date, timedelta
from typing import List, Optional

_WEEKDAY_ALIASES = (
    ("mon", "monday"),
    ("tue", "tues", "tuesday"),
    ("wed", "wednesday"),
    ("thu", "thur", "thurs", "thursday"),
    ("fri", "friday"),
    ("sat", "saturday"),
    ("sun", "sunday"),
)

# date.weekday() numbering: Monday=0 .. Sunday=6
WEEKDAY_NAME_TO_INT = {alias: i for i, names in enumerate(_WEEKDAY_ALIASES) for alias in names}


def clamp_to_weekday(d: date, weekday: int) -> date:
    """First date >= d falling on `weekday` (d itself when it already does)."""
    return d + timedelta(days=(weekday - d.weekday()) % 7)


def weekday_from_name(name: str) -> Optional[int]:
    return WEEKDAY_NAME_TO_INT.get((name or "").strip().lower())


def expand_daily_until(start_date: date, until_date: date, interval_days: int = 1) -> List[date]:
    """
    Every `interval_days` days from start_date through until_date, both ends
    included, ascending. A reversed pair gives []; it is never swapped.
    """
    step = timedelta(days=max(1, interval_days))
    days: List[date] = []
    current = start_date
    while current <= until_date:
        days.append(current)
        current += step
    return days
