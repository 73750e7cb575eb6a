# date_parser.py
"""
Best-effort natural-language date / time parsing for chat scheduling.

None of the public helpers raise: an unparseable date becomes "today" and an
unparseable time becomes 09:00. That favours availability over correctness,
so a typo'd date silently lands on today. Ranges are the one exception: an
unresolvable or reversed range comes back as None so the caller can refuse it.
"""

from __future__ import annotations

import re
from datetime import date as _date, datetime as _dt, time as _time, timedelta
from typing import Optional, Tuple

from scheduler.recurrence import clamp_to_weekday, weekday_from_name

DEFAULT_TIME = "09:00"

_month_map = {
    'jan': 1, 'january': 1, 'feb': 2, 'february': 2, 'mar': 3, 'march': 3,
    'apr': 4, 'april': 4, 'may': 5, 'jun': 6, 'june': 6, 'jul': 7, 'july': 7,
    'aug': 8, 'august': 8, 'sep': 9, 'sept': 9, 'september': 9, 'oct': 10,
    'october': 10, 'nov': 11, 'november': 11, 'dec': 12, 'december': 12,
}

MON_PAT = (
    r'(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?'
    r'|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)'
)
_ORD = r'(?:st|nd|rd|th)?'
_RANGE_SEP = r'(?:-|–|to|through|thru|till|until)'
_WEEKDAY_PAT = r'(mon(?:day)?|tue(?:s(?:day)?)?|wed(?:nesday)?|thu(?:r(?:s(?:day)?)?)?|fri(?:day)?|sat(?:urday)?|sun(?:day)?)'

_ISO_RE = re.compile(r'\b(\d{4})-(\d{2})-(\d{2})\b')
_NUMERIC_RE = re.compile(
    rf'\b(\d{{1,2}})[/-](\d{{1,2}})(?:[/-](\d{{4}}|\d{{2}}))?\b(?!\s*(?:{MON_PAT}|[ap]\.?m\b))', re.I
)
_DAY_MON_RE = re.compile(rf'\b(\d{{1,2}}){_ORD}\s+(?:of\s+)?{MON_PAT}\b(?:,?\s+(\d{{4}}))?', re.I)
_MON_DAY_RE = re.compile(rf'\b{MON_PAT}\s+(?:the\s+)?(\d{{1,2}}){_ORD}\b(?:,?\s+(\d{{4}}))?', re.I)


# ------------------------ small helpers ------------------------
def _today(now: Optional[_dt]) -> _date:
    return (now or _dt.now()).date()


def _month_from_token(tok: str) -> Optional[int]:
    return _month_map.get((tok or '').strip().lower())


def _safe_date(y: int, m: int, d: int) -> Optional[_date]:
    try:
        return _date(y, m, d)
    except ValueError:
        return None


def _roll_forward(month: int, day: int, today: _date) -> Optional[_date]:
    """
    A year-less month/day that already passed this year means next year.
    Feb 29 keeps moving until it hits a leap year.
    """
    cand = _safe_date(today.year, month, day)
    if cand is not None and cand >= today:
        return cand
    for year in range(today.year + 1, today.year + 9):
        cand = _safe_date(year, month, day)
        if cand is not None:
            return cand
    return None


def _full_year(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    y = int(raw)
    return y + 2000 if y < 100 else y


# ------------------------ dates ------------------------
def _parse_relative(t: str, today: _date) -> Optional[_date]:
    """'today', 'tomorrow', 'day after tomorrow', 'in 3 days', 'next friday', 'on monday'."""
    if re.search(r'\bday\s+after\s+tomorrow\b', t):
        return today + timedelta(days=2)
    if re.search(r'\btomorrow\b', t):
        return today + timedelta(days=1)
    if re.search(r'\btoday\b|\btonight\b', t):
        return today
    m = re.search(r'\bin\s+(\d{1,3})\s+(day|week)s?\b', t)
    if m:
        n = int(m.group(1))
        return today + timedelta(days=n * (7 if m.group(2) == 'week' else 1))
    m = re.search(rf'\b(next\s+|this\s+|on\s+)?{_WEEKDAY_PAT}\b', t)
    if m:
        wd = weekday_from_name(m.group(2))
        if wd is not None:
            if (m.group(1) or '').strip() == 'next':
                return clamp_to_weekday(today + timedelta(days=1), wd)
            return clamp_to_weekday(today, wd)
    return None


def _parse_absolute(t: str, today: _date) -> Optional[_date]:
    """ISO, numeric and month-name forms; None when none of them resolves."""
    m = _ISO_RE.search(t)
    if m:
        d = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if d:
            return d

    m = _NUMERIC_RE.search(t)
    if m:
        day, month = int(m.group(1)), int(m.group(2))
        year = _full_year(m.group(3))
        d = _safe_date(year, month, day) if year else _roll_forward(month, day, today)
        if d:
            return d

    for rx, day_idx, mon_idx in ((_DAY_MON_RE, 1, 2), (_MON_DAY_RE, 2, 1)):
        m = rx.search(t)
        if not m:
            continue
        day = int(m.group(day_idx))
        month = _month_from_token(m.group(mon_idx))
        year = _full_year(m.group(3))
        if not month:
            continue
        d = _safe_date(year, month, day) if year else _roll_forward(month, day, today)
        if d:
            return d
    return None


def resolve_date(text: Optional[str], now: Optional[_dt] = None) -> _date:
    """
    Resolve a free-text date token. First match wins:
      1. ISO 'YYYY-MM-DD' (passthrough)
      2. numeric D/M[/YY|YYYY] or D-M[-YYYY] (day first)
      3. '14th dec', 'dec 14', 'Sun, Dec 14, 2025'
      4. relative words ('tomorrow', 'next friday', 'in 3 days')
    A weekday name next to an absolute date does not override it.
    A year-less date that already happened this year rolls to next year.
    Anything else resolves to today.
    """
    today = _today(now)
    if not text:
        return today
    t = re.sub(r'\s+', ' ', text.strip().lower())
    return _parse_absolute(t, today) or _parse_relative(t, today) or today


def parse_date(text: Optional[str], now: Optional[_dt] = None) -> str:
    """Like resolve_date() but returns the ISO string."""
    return resolve_date(text, now).isoformat()


def has_explicit_date(text: Optional[str], now: Optional[_dt] = None) -> bool:
    """True when resolve_date() would not just fall back to today."""
    if not text:
        return False
    today = _today(now)
    t = re.sub(r'\s+', ' ', text.strip().lower())
    return bool(_parse_absolute(t, today) or _parse_relative(t, today))


# ------------------------ ranges ------------------------
_ISO_RANGE_RE = re.compile(rf'(\d{{4}}-\d{{2}}-\d{{2}})\s*{_RANGE_SEP}\s*(\d{{4}}-\d{{2}}-\d{{2}})', re.I)
_DAY_MON_TO_DAY_MON_RE = re.compile(
    rf'\b(\d{{1,2}}){_ORD}\s+(?:of\s+)?{MON_PAT}\s*{_RANGE_SEP}\s*(\d{{1,2}}){_ORD}\s+(?:of\s+)?{MON_PAT}\b', re.I
)
_MON_DAY_TO_MON_DAY_RE = re.compile(
    rf'\b{MON_PAT}\s+(\d{{1,2}}){_ORD}\s*{_RANGE_SEP}\s*{MON_PAT}\s+(\d{{1,2}}){_ORD}\b', re.I
)
_DAYS_MON_RE = re.compile(
    rf'\b(\d{{1,2}}){_ORD}\s*{_RANGE_SEP}\s*(\d{{1,2}}){_ORD}\s+(?:of\s+)?{MON_PAT}\b', re.I
)
_MON_DAYS_RE = re.compile(
    rf'\b{MON_PAT}\s+(\d{{1,2}}){_ORD}\s*{_RANGE_SEP}\s*(\d{{1,2}}){_ORD}\b', re.I
)
_WEEKDAYS_RE = re.compile(
    rf'\b(next\s+|this\s+)?{_WEEKDAY_PAT}\b\s*{_RANGE_SEP}\s*(?:next\s+|this\s+)?{_WEEKDAY_PAT}\b', re.I
)


def _bump_year(d: _date) -> Optional[_date]:
    return _safe_date(d.year + 1, d.month, d.day)


def _finish_inferred_range(start: Optional[_date], end: Optional[_date], today: _date) -> Optional[Tuple[_date, _date]]:
    """
    Year-less ranges: if the end already passed, both ends move forward one
    year together. A reversed range is rejected, never swapped.
    """
    if start is None or end is None:
        return None
    if end < today:
        start, end = _bump_year(start), _bump_year(end)
        if start is None or end is None:
            return None
    if start > end:
        return None
    return start, end


def parse_date_range(text: Optional[str], now: Optional[_dt] = None) -> Optional[Tuple[_date, _date]]:
    """
    Extract an inclusive (start, end) date range:
      - '2025-01-15 to 2025-01-19'      (explicit years, no rollover)
      - '15-19 jan', '15th to 19th of January', 'jan 15 - 19'
      - '28 dec to 3 jan', 'dec 28 - jan 3'   (the end may spill into next year)
      - 'monday to friday', 'next mon-fri'   (from the next such weekday, today included)
    Returns None when no range is present or when start > end.
    """
    if not text:
        return None
    today = _today(now)
    t = re.sub(r'\s+', ' ', text.strip().lower())

    m = _ISO_RANGE_RE.search(t)
    if m:
        try:
            start, end = _date.fromisoformat(m.group(1)), _date.fromisoformat(m.group(2))
        except ValueError:
            return None
        return (start, end) if start <= end else None

    for rx, order in ((_DAY_MON_TO_DAY_MON_RE, (1, 2, 3, 4)), (_MON_DAY_TO_MON_DAY_RE, (2, 1, 4, 3))):
        m = rx.search(t)
        if not m:
            continue
        d1, m1, d2, m2 = (m.group(i) for i in order)
        mon1, mon2 = _month_from_token(m1), _month_from_token(m2)
        if not mon1 or not mon2:
            return None
        start = _safe_date(today.year, mon1, int(d1))
        end_year = today.year + 1 if mon2 < mon1 else today.year
        end = _safe_date(end_year, mon2, int(d2))
        return _finish_inferred_range(start, end, today)

    for rx, order in ((_DAYS_MON_RE, (1, 2, 3)), (_MON_DAYS_RE, (2, 3, 1))):
        m = rx.search(t)
        if not m:
            continue
        d1, d2, mon_tok = (m.group(i) for i in order)
        month = _month_from_token(mon_tok)
        if not month or int(d1) > int(d2):
            return None
        start = _safe_date(today.year, month, int(d1))
        end = _safe_date(today.year, month, int(d2))
        return _finish_inferred_range(start, end, today)

    m = _WEEKDAYS_RE.search(t)
    if m:
        wd1, wd2 = weekday_from_name(m.group(2)), weekday_from_name(m.group(3))
        if wd1 is None or wd2 is None:
            return None
        first = today + timedelta(days=1) if (m.group(1) or '').strip() == 'next' else today
        start = clamp_to_weekday(first, wd1)
        return start, clamp_to_weekday(start, wd2)

    return None


def format_range(start: _date, end: _date) -> str:
    """Human-readable span, e.g. 'Jan 15 – Jan 19, 2025'."""
    if start.year == end.year:
        return f"{start.strftime('%b')} {start.day} – {end.strftime('%b')} {end.day}, {end.year}"
    return f"{start.strftime('%b')} {start.day}, {start.year} – {end.strftime('%b')} {end.day}, {end.year}"


# ------------------------ times ------------------------
def resolve_time(text: Optional[str]) -> _time:
    """
    '2 pm' -> 14:00, '9:30am' -> 09:30, '18:45' -> 18:45,
    'noon' -> 12:00, 'midnight' -> 00:00; anything else -> 09:00.
    """
    if not text:
        return _time(9, 0)
    t = text.strip().lower().replace('a.m.', 'am').replace('p.m.', 'pm')

    if re.search(r'\bnoon\b|\bmidday\b', t):
        return _time(12, 0)
    if re.search(r'\bmidnight\b', t):
        return _time(0, 0)

    m = re.search(r'\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b', t)
    if m:
        hh = int(m.group(1))
        mm = int(m.group(2) or 0)
        if 1 <= hh <= 12 and 0 <= mm <= 59:
            if m.group(3) == 'pm' and hh != 12:
                hh += 12
            if m.group(3) == 'am' and hh == 12:
                hh = 0
            return _time(hh, mm)

    m = re.search(r'\b(\d{1,2}):(\d{2})\b', t)
    if m:
        hh, mm = int(m.group(1)), int(m.group(2))
        if 0 <= hh <= 23 and 0 <= mm <= 59:
            return _time(hh, mm)

    return _time(9, 0)


def parse_time(text: Optional[str]) -> str:
    """Like resolve_time() but returns 24h 'HH:MM'."""
    return resolve_time(text).strftime('%H:%M')
