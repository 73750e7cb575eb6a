# models.py
from __future__ import annotations

import os
from datetime import datetime as _dt
from pathlib import Path

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    Date,
    Time,
    String,
    Text,
    Boolean,
    DateTime,
    func,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Default DB file sits next to the code so scripts/ and the app share it.
BASE_DIR = Path(__file__).resolve().parent
SQLALCHEMY_DATABASE_URL = os.getenv(
    "STUDY_DB_URL", f"sqlite:///{(BASE_DIR / 'study.db').as_posix()}"
)


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite lives inside one connection; share it.
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(SQLALCHEMY_DATABASE_URL, **_engine_kwargs(SQLALCHEMY_DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def _iso_or_none(value):
    return value.isoformat() if value else None


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    status = Column(String(20), nullable=False, default="todo", index=True)  # todo|in-progress|done
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Task #{self.id} {self.title!r} [{self.status}]>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "created_at": _iso_or_none(self.created_at),
        }


class Reminder(Base):
    """One scheduled nudge; a chat date range becomes one row per day."""
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text)
    active = Column(Boolean, nullable=False, default=True)
    delivered = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Reminder #{self.id} {self.title!r} at {self.when:%Y-%m-%d %H:%M}>"

    @property
    def when(self) -> _dt:
        return _dt.combine(self.date, self.time)

    def to_dict(self) -> dict:
        out = {c: getattr(self, c) for c in ("id", "title", "description", "active", "delivered")}
        out["date"] = self.date.isoformat()
        out["time"] = self.time.isoformat(timespec="seconds")
        return out


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "content": self.content, "created_at": _iso_or_none(self.created_at)}


class StudySession(Base):
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True)
    category = Column(String(50), nullable=False, index=True)  # revision|self-study|class|others
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # seconds

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "duration": self.duration,
        }


class UserSettings(Base):
    """Single-row table; auth is handled outside this service."""
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True)
    day_offset_minutes = Column(Integer, nullable=False, default=0)
    daily_goal = Column(Integer, nullable=False, default=120)  # minutes

    def to_dict(self) -> dict:
        return {"dayOffsetMinutes": self.day_offset_minutes, "dailyGoal": self.daily_goal}


def init_db() -> None:
    """Create any missing tables."""
    Base.metadata.create_all(bind=engine)
