from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import (
    DEFAULT_NOTIFICATION_MINUTES,
    TODO_MODEL_CONFIG,
    FreeText,
    TodoDateInput,
    TodoId,
    TodoTime,
    TodoTitle,
    normalize_title,
)

CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item. The id and createdAt are assigned by the server.
    """

    model_config = ConfigDict(
        **TODO_MODEL_CONFIG,
        json_schema_extra={
            "example": {
                "title": "Dentist",
                "date": "2024-03-15",
                "time": "09:00",
                "description": "Bring insurance card",
                "link": "https://example.com/booking",
                "enableNotification": True,
                "notificationMinutes": 15,
                "completed": False,
            }
        },
    )

    date: TodoDateInput = Field(
        ..., description="Calendar date (YYYY-MM-DD); an ISO datetime with offset is read in the server zone"
    )
    time: TodoTime = Field(default=None, description="Optional time of day (HH:MM); omitted means all-day")
    title: TodoTitle = Field(..., description="Short title for the todo item")
    description: FreeText = Field(default="", description="Optional detailed description")
    link: FreeText = Field(default="", description="Optional related URL")
    enable_notification: bool = Field(default=False, description="Whether a reminder should fire")
    notification_minutes: int = Field(
        default=DEFAULT_NOTIFICATION_MINUTES, ge=0, description="Reminder lead time in minutes before `time`"
    )
    completed: bool = Field(default=False, description="Completion status flag")
    source: Optional[str] = Field(default=None, description="Provenance tag")
    external_event_id: Optional[str] = Field(default=None, description="Linked Google Calendar event id")


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be merged into the record.
    An explicit null for `time` turns the todo into an all-day item.
    """

    model_config = ConfigDict(
        **TODO_MODEL_CONFIG,
        json_schema_extra={
            "example": {
                "time": "10:30",
                "notificationMinutes": 30,
                "completed": True,
            }
        },
    )

    date: Optional[TodoDateInput] = None
    time: TodoTime = None
    title: Optional[str] = Field(default=None, description="Short title for the todo item")
    description: Optional[str] = None
    link: Optional[str] = None
    enable_notification: Optional[bool] = None
    notification_minutes: Optional[int] = Field(default=None, ge=0)
    completed: Optional[bool] = None
    source: Optional[str] = None
    external_event_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        if v is None:
            return v
        return normalize_title(v)

    def changes(self) -> Dict[str, Any]:
        """
        Fields explicitly sent by the client, by attribute name. Explicit nulls are kept
        except for fields that cannot be null on the record.
        """
        data = self.model_dump(exclude_unset=True)
        for name in ("date", "title", "enable_notification", "notification_minutes", "completed"):
            if name in data and data[name] is None:
                del data[name]
        return data


# PUBLIC_INTERFACE
class Reminder(BaseModel):
    """A reminder surfaced by the notification channel."""

    model_config = CAMEL_CONFIG

    tag: str = Field(..., description="Stable per-todo tag; a newer reminder with the same tag replaces the old one")
    todo_id: TodoId
    title: str
    body: str
    fired_at: dt.datetime


# PUBLIC_INTERFACE
class ScheduledReminderOut(BaseModel):
    """A pending reminder owned by the scheduler."""

    model_config = CAMEL_CONFIG

    todo_id: TodoId
    fire_at: dt.datetime


# PUBLIC_INTERFACE
class BackupInfo(BaseModel):
    """A snapshot file of the todo collection."""

    model_config = CAMEL_CONFIG

    filename: str
    created_at: dt.datetime


# PUBLIC_INTERFACE
class DayCell(BaseModel):
    """One cell of the 6-week month grid."""

    model_config = CAMEL_CONFIG

    date: dt.date
    day: int
    outside_month: bool = Field(..., description="Belongs to the previous or next month")
    is_today: bool
    has_todos: bool


# PUBLIC_INTERFACE
class MonthView(BaseModel):
    model_config = CAMEL_CONFIG

    year: int
    month: int
    cells: list[DayCell]


class MessageOut(BaseModel):
    message: str


class BackupCreated(MessageOut):
    file: str


class RestoreResult(MessageOut):
    count: int


class ImportResult(MessageOut):
    imported: int
    skipped: int
