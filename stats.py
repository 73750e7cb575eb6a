# stats.py
"""
Study-time statistics over a study-day window.

Sessions are bucketed by the study day their start falls in, so with a 05:00
offset a session started at 01:30 counts toward the previous date. Daily,
weekly and monthly totals use the same windows, which keeps them consistent.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from scheduler.windows import TemporalWindow, study_day_of, study_days_in


def _hours(seconds: int) -> float:
    return round(seconds / 3600, 1)


def compute_stats(
    sessions: Iterable[Any],
    window: TemporalWindow,
    day_offset_minutes: int = 0,
    daily_goal: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Aggregate sessions (objects with category, start_time, duration seconds)
    whose start lies inside `window`.
    """
    picked = [s for s in sessions if window.contains(s.start_time)]
    picked.sort(key=lambda s: s.start_time)

    total = sum(int(s.duration or 0) for s in picked)

    by_category: Dict[str, int] = defaultdict(int)
    by_day: Dict[str, int] = defaultdict(int)
    for s in picked:
        by_category[s.category] += int(s.duration or 0)
        by_day[study_day_of(s.start_time, day_offset_minutes).isoformat()] += int(s.duration or 0)

    graph: List[Dict[str, Any]] = []
    for d in study_days_in(window, day_offset_minutes):
        seconds = by_day.get(d.isoformat(), 0)
        graph.append({"date": d.isoformat(), "minutes": round(seconds / 60), "hours": _hours(seconds)})

    out: Dict[str, Any] = {
        "window": window.to_dict(),
        "dayOffsetMinutes": day_offset_minutes,
        "totalSeconds": total,
        "totalMinutes": round(total / 60),
        "totalHours": _hours(total),
        "categoryBreakdown": dict(by_category),
        "graphData": graph,
    }
    if daily_goal is not None:
        days = max(1, len(graph))
        goal_minutes = daily_goal * days
        out["dailyGoal"] = daily_goal
        out["goalMinutes"] = goal_minutes
        out["goalProgress"] = round(100 * (total / 60) / goal_minutes, 1) if goal_minutes else 0.0
    return out

