# schemas.py

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import date, time, datetime
from typing import List, Literal, Optional

TIMER_CATEGORIES = ("revision", "self-study", "class", "others")

_CAMEL = ConfigDict(populate_by_name=True, from_attributes=True)


def _to_local_naive(v: datetime) -> datetime:
    """Stored datetimes are naive local wall-clock time."""
    if v.tzinfo is not None:
        return v.astimezone().replace(tzinfo=None)
    return v


# -----------------------------
# Chat
# -----------------------------
class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str
    history: List[ChatTurn] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def _message_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Message is required")
        return v


class ChatResponse(BaseModel):
    """What one chat turn hands back; unset flags are dropped from the JSON."""
    model_config = _CAMEL

    response: str
    created_task: Optional[bool] = Field(default=None, alias="createdTask")
    created_reminder: Optional[bool] = Field(default=None, alias="createdReminder")
    created_note: Optional[bool] = Field(default=None, alias="createdNote")
    reminder_count: Optional[int] = Field(default=None, alias="reminderCount")
    failed_dates: Optional[List[date]] = Field(default=None, alias="failedDates")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# -----------------------------
# Tasks / notes / reminders
# -----------------------------
class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class ReminderCreate(BaseModel):
    title: str
    date: datetime
    description: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _naive_date(cls, v: datetime) -> datetime:
        return _to_local_naive(v)

    @field_validator("title")
    @classmethod
    def _title_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class Reminder(BaseModel):
    model_config = _CAMEL

    id: int
    title: str
    description: Optional[str] = None
    date: date
    time: time
    active: bool = True
    delivered: bool = False


# -----------------------------
# Timer / study sessions
# -----------------------------
class TimerStart(BaseModel):
    category: Literal["revision", "self-study", "class", "others"]


class TimerStop(BaseModel):
    model_config = _CAMEL

    category: Literal["revision", "self-study", "class", "others"]
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    duration: int

    @field_validator("start_time", "end_time")
    @classmethod
    def _naive_times(cls, v: datetime) -> datetime:
        return _to_local_naive(v)

    @model_validator(mode="after")
    def _validate_session(self):
        if self.duration <= 0:
            raise ValueError("duration must be a positive number of seconds")
        if not (self.end_time > self.start_time):
            raise ValueError("endTime must be after startTime")
        return self


# -----------------------------
# Settings
# -----------------------------
class SettingsUpdate(BaseModel):
    """Partial update; only provided fields change."""
    model_config = _CAMEL

    day_offset_minutes: Optional[int] = Field(default=None, alias="dayOffsetMinutes")
    daily_goal: Optional[int] = Field(default=None, alias="dailyGoal")

    @field_validator("day_offset_minutes")
    @classmethod
    def _offset_in_day(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not (0 <= v < 1440):
            raise ValueError("dayOffsetMinutes must be between 0 and 1439")
        return v

    @field_validator("daily_goal")
    @classmethod
    def _goal_in_day(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not (0 <= v <= 1440):
            raise ValueError("Daily goal must be a number between 0 and 1440 minutes (24 hours)")
        return v
