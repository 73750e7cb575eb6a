# scheduler/windows.py
"""
Study-day window helpers.

A "study day" is a 24h accounting period that starts `day_offset_minutes`
after midnight instead of at midnight. With an offset of 05:00, a session
logged at 04:59 belongs to the *previous* study day.

Every caller that needs day/week/month boundaries (stats, reminder listing)
goes through window_for(); do not redo the boundary arithmetic elsewhere.

Boundary semantics:
  • daily / weekly with offset 0   -> half-open [start, end)
  • daily / weekly with offset > 0 -> closed [start, end], end = next start - 1ms
  • monthly (any offset)           -> closed [start, end], end = next start - 1ms
TemporalWindow.contains() understands both, so consecutive windows tile the
timeline with no gap and no overlap.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as _date, datetime as _dt, time as _time, timedelta
from typing import List

MINUTES_PER_DAY = 1440
ONE_MS = timedelta(milliseconds=1)
ONE_DAY = timedelta(days=1)

GRANULARITIES = ("daily", "weekly", "monthly")


@dataclass(frozen=True)
class TemporalWindow:
    start: _dt
    end: _dt
    closed: bool = False  # True when `end` itself belongs to the window

    @property
    def exclusive_end(self) -> _dt:
        """First instant *after* the window (the next window's start)."""
        return self.end + ONE_MS if self.closed else self.end

    def contains(self, t: _dt) -> bool:
        return self.start <= t < self.exclusive_end

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def validate_offset(day_offset_minutes: int) -> int:
    try:
        offset = int(day_offset_minutes)
    except (TypeError, ValueError):
        raise ValueError(f"day offset must be an integer, got {day_offset_minutes!r}")
    if not 0 <= offset < MINUTES_PER_DAY:
        raise ValueError(f"day offset must be in [0, {MINUTES_PER_DAY}), got {offset}")
    return offset


def _at_offset(d: _date, offset: int, tzinfo=None) -> _dt:
    """Wall-clock instant `offset` minutes after midnight on calendar date `d`."""
    return _dt.combine(d, _time(0, 0), tzinfo=tzinfo) + timedelta(minutes=offset)


def _minutes_since_midnight(t: _dt) -> float:
    return t.hour * 60 + t.minute + (t.second + t.microsecond / 1_000_000) / 60


def study_day_start(d: _date, day_offset_minutes: int = 0, tzinfo=None) -> _dt:
    """Start instant of the study day labelled by calendar date `d`."""
    return _at_offset(d, validate_offset(day_offset_minutes), tzinfo)


def daily_window_for_date(d: _date, day_offset_minutes: int = 0, tzinfo=None) -> TemporalWindow:
    """Window of the study day labelled `d` (the calendar date it starts on)."""
    offset = validate_offset(day_offset_minutes)
    start = _at_offset(d, offset, tzinfo)
    if offset == 0:
        return TemporalWindow(start, start + ONE_DAY, closed=False)
    return TemporalWindow(start, start + ONE_DAY - ONE_MS, closed=True)


def study_day_of(reference: _dt, day_offset_minutes: int = 0) -> _date:
    """
    Calendar date labelling the study day that contains `reference`.
    An instant strictly before the offset belongs to the previous date;
    an instant exactly on the offset opens the new day.
    """
    offset = validate_offset(day_offset_minutes)
    if offset and _minutes_since_midnight(reference) < offset:
        return reference.date() - ONE_DAY
    return reference.date()


def daily_window(reference: _dt, day_offset_minutes: int = 0) -> TemporalWindow:
    d = study_day_of(reference, day_offset_minutes)
    return daily_window_for_date(d, day_offset_minutes, reference.tzinfo)


def weekly_window(reference: _dt, day_offset_minutes: int = 0) -> TemporalWindow:
    """
    Seven consecutive study days, Monday first.
    The weekday comes from the study day's date, not from `reference`, so
    Tuesday 03:00 with a 05:00 offset still counts as Monday.
    """
    day = study_day_of(reference, day_offset_minutes)
    first = day - timedelta(days=day.weekday())
    head = daily_window_for_date(first, day_offset_minutes, reference.tzinfo)
    tail = daily_window_for_date(first + timedelta(days=6), day_offset_minutes, reference.tzinfo)
    return TemporalWindow(head.start, tail.end, closed=tail.closed)


def monthly_window(reference: _dt, day_offset_minutes: int = 0) -> TemporalWindow:
    """
    From the 1st of the month at the offset to the 1st of the next month at
    the offset, minus 1ms. The month is taken from the study day, so an
    instant before the offset on the 1st still belongs to the previous month.
    """
    offset = validate_offset(day_offset_minutes)
    day = study_day_of(reference, offset)
    first = day.replace(day=1)
    if first.month == 12:
        following = _date(first.year + 1, 1, 1)
    else:
        following = _date(first.year, first.month + 1, 1)
    start = _at_offset(first, offset, reference.tzinfo)
    end = _at_offset(following, offset, reference.tzinfo) - ONE_MS
    return TemporalWindow(start, end, closed=True)


def window_for(reference: _dt, granularity: str = "daily", day_offset_minutes: int = 0) -> TemporalWindow:
    """
    Map (reference instant, granularity, day offset) to the window that
    contains the reference. Pure; no I/O.
    """
    g = (granularity or "").strip().lower()
    if g == "daily":
        return daily_window(reference, day_offset_minutes)
    if g == "weekly":
        return weekly_window(reference, day_offset_minutes)
    if g == "monthly":
        return monthly_window(reference, day_offset_minutes)
    raise ValueError(f"unknown granularity {granularity!r}; expected one of {', '.join(GRANULARITIES)}")


def study_days_in(window: TemporalWindow, day_offset_minutes: int = 0) -> List[_date]:
    """Labels of every study day that starts inside `window`, ascending."""
    out: List[_date] = []
    d = study_day_of(window.start, day_offset_minutes)
    while True:
        start = study_day_start(d, day_offset_minutes, window.start.tzinfo)
        if start >= window.exclusive_end:
            break
        if window.contains(start):
            out.append(d)
        d += ONE_DAY
    return out
