from __future__ import annotations

from datetime import date, datetime, time
from typing import Literal, Optional, List, Dict

from pydantic import BaseModel, Field, field_validator


Priority = Literal["high", "medium", "low"]
Frequency = Literal["daily", "weekly", "monthly"]


class Recurrence(BaseModel):
    frequency: Frequency
    # 0 = Monday, matching date.weekday()
    days_of_week: Optional[List[int]] = None


class ParsedTask(BaseModel):
    """Result of parsing one line of captured text. A new value per keystroke."""

    text: str = ""
    clean_text: str = ""

    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None  # "HH:MM", 24-hour

    priority: Optional[Priority] = None
    context: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)  # minutes
    tags: List[str] = Field(default_factory=list)

    recurring: Optional[Recurrence] = None


class TaskItem(BaseModel):
    id: str = Field(..., min_length=1)
    task: str
    completed: bool = False

    due_date: Optional[datetime] = None
    scheduled_date: Optional[datetime] = None
    scheduled_time: Optional[str] = None
    # "30 min", "All day" or a clock time such as "14:30"
    time_estimate: Optional[str] = None

    priority: Optional[Priority] = None
    notes: Optional[str] = None
    context: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("task")
    @classmethod
    def task_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("task must not be blank")
        return v2


class Category(BaseModel):
    name: str
    emoji: str = "📋"
    color: str = "#6366F1"
    items: List[TaskItem] = Field(default_factory=list)


class DumpSession(BaseModel):
    """Envelope handed to the task store for a batch of imported categories."""

    id: str
    raw_text: str
    categories: List[Category] = Field(default_factory=list)
    created_at: datetime
    summary: Optional[str] = None


class TriggerPayload(BaseModel):
    task_id: str
    dump_id: str
    category_name: str = ""


class ReminderTrigger(BaseModel):
    identifier: str
    fire_at: datetime
    title: str
    body: str
    payload: TriggerPayload


class NotificationContent(BaseModel):
    title: str
    body: str
    data: Dict[str, str] = Field(default_factory=dict)
    category_identifier: Optional[str] = None


class ScheduledNotification(BaseModel):
    """What the notification service reports back as registered.

    Exactly one of ``fire_at`` (one-shot) or ``daily`` (repeats at that clock
    time every day) is set.
    """

    identifier: str
    content: NotificationContent
    fire_at: Optional[datetime] = None
    daily: Optional[time] = None


class CalendarInfo(BaseModel):
    id: str
    title: str
    source: str = ""
    color: Optional[str] = None
    is_primary: bool = False
    allows_modifications: bool = False


class CalendarEvent(BaseModel):
    id: str
    title: str = ""
    start_date: datetime
    end_date: datetime
    all_day: bool = False
    location: Optional[str] = None
    notes: Optional[str] = None
    calendar_id: str
    calendar_title: str = "Unknown Calendar"
    calendar_color: Optional[str] = None


class CategoryCount(BaseModel):
    emoji: str = ""
    name: str
    count: int = Field(0, ge=0)


class NudgeState(BaseModel):
    pending_count: int = Field(0, ge=0)
    category_breakdown: List[CategoryCount] = Field(default_factory=list)


class UrgentTask(BaseModel):
    task: TaskItem
    category_emoji: str = ""
    hours_until_due: float = Field(..., ge=0)
