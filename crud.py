# crud.py

import os
from datetime import date as _date, time as _time, datetime as _dt
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from models import Task, Reminder, Note, StudySession, UserSettings

DEFAULT_DAY_OFFSET_MINUTES = int(os.getenv("STUDY_DAY_OFFSET_MINUTES", "0"))
DEFAULT_DAILY_GOAL_MINUTES = int(os.getenv("DAILY_GOAL_MINUTES", "120"))


def _save(db: Session, obj):
    """Add + commit + refresh; a failed commit leaves the session usable."""
    try:
        db.add(obj)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(obj)
    return obj


# ------------------------
# Tasks
# ------------------------

def create_task(db: Session, *, title: str, description: Optional[str] = None) -> Task:
    t = Task(title=title, description=description, status="todo")
    return _save(db, t)


def list_tasks(db: Session, *, status: Optional[str] = None) -> List[Task]:
    q = db.query(Task)
    if status:
        q = q.filter(Task.status == status)
    return q.order_by(Task.created_at, Task.id).all()


# ------------------------
# Reminders
# ------------------------

def create_reminder(
    db: Session,
    *,
    date_: _date,
    time_: _time,
    title: str,
    description: Optional[str] = None,
) -> Reminder:
    r = Reminder(
        date=date_,
        time=time_,
        title=title or (description or "Reminder"),
        description=description,
        active=True,
        delivered=False,
    )
    return _save(db, r)


def list_reminders(
    db: Session,
    *,
    start_date: Optional[_date] = None,
    end_date: Optional[_date] = None,
    active: Optional[bool] = None,
) -> List[Reminder]:
    """Reminders whose calendar date falls in [start_date, end_date]; either bound may be omitted."""
    q = db.query(Reminder)
    if start_date is not None:
        q = q.filter(Reminder.date >= start_date)
    if end_date is not None:
        q = q.filter(Reminder.date <= end_date)
    if active is not None:
        q = q.filter(Reminder.active == active)
    return q.order_by(Reminder.date, Reminder.time, Reminder.id).all()


def find_reminders_by_titles(db: Session, titles: Iterable[str]) -> List[Reminder]:
    return db.query(Reminder).filter(Reminder.title.in_(list(titles))).all()


# ------------------------
# Notes
# ------------------------

def create_note(db: Session, *, content: str) -> Note:
    n = Note(content=content)
    return _save(db, n)


def list_notes(db: Session) -> List[Note]:
    return db.query(Note).order_by(Note.created_at.desc(), Note.id.desc()).all()


# ------------------------
# Study sessions
# ------------------------

def create_study_session(
    db: Session,
    *,
    category: str,
    start_time: _dt,
    end_time: _dt,
    duration: int,
) -> StudySession:
    s = StudySession(category=category, start_time=start_time, end_time=end_time, duration=int(duration))
    return _save(db, s)


def get_sessions_starting_between(db: Session, start: _dt, end_exclusive: _dt) -> List[StudySession]:
    """Sessions with start_time in [start, end_exclusive), oldest first."""
    return (
        db.query(StudySession)
        .filter(StudySession.start_time >= start, StudySession.start_time < end_exclusive)
        .order_by(StudySession.start_time)
        .all()
    )


# ------------------------
# Settings
# ------------------------

def get_settings(db: Session) -> UserSettings:
    """The single settings row, created from process defaults on first use."""
    s = db.get(UserSettings, 1)
    if s is None:
        s = UserSettings(
            id=1,
            day_offset_minutes=DEFAULT_DAY_OFFSET_MINUTES,
            daily_goal=DEFAULT_DAILY_GOAL_MINUTES,
        )
        s = _save(db, s)
    return s


def update_settings(
    db: Session,
    *,
    day_offset_minutes: Optional[int] = None,
    daily_goal: Optional[int] = None,
) -> UserSettings:
    s = get_settings(db)
    if day_offset_minutes is not None:
        s.day_offset_minutes = int(day_offset_minutes)
    if daily_goal is not None:
        s.daily_goal = int(daily_goal)
    return _save(db, s)
