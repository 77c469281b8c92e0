from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

TITLE_MAX_LENGTH = 200
DEFAULT_NOTIFICATION_MINUTES = 15
GOOGLE_CALENDAR_SOURCE = "google-calendar"


def _parse_iso_datetime(s: str) -> dt.datetime:
    # fromisoformat only understands the 'Z' designator from Python 3.11 on
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    return dt.datetime.fromisoformat(s)


def parse_date_input(value: Any) -> Union[dt.date, dt.datetime]:
    """
    Parse a todo date as sent by a client, without collapsing it yet.
    - 'YYYY-MM-DD' strings and date objects become a date
    - ISO datetimes carrying an offset stay aware datetimes, so the store can
      convert them to the configured zone before keeping the date
    - naive datetimes become their wall-clock date
    """
    if isinstance(value, dt.datetime):
        return value if value.tzinfo is not None else value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        s = value.strip()
        try:
            return dt.date.fromisoformat(s)
        except ValueError:
            try:
                return parse_date_input(_parse_iso_datetime(s))
            except ValueError as e:
                raise ValueError(
                    "Invalid date format. Use an ISO8601 date (e.g., '2025-01-31')."
                ) from e
    raise ValueError("Invalid type for date; expected date, datetime, or ISO8601 string.")


def parse_todo_date(value: Any, zone: Optional[dt.tzinfo] = None) -> dt.date:
    """
    Normalize a todo date into a plain calendar date.

    A datetime with an offset is converted to `zone` first (the machine's
    local zone when None), so '2024-03-14T17:00:00.000Z' is 15 March in
    Asia/Bangkok.
    """
    parsed = parse_date_input(value)
    if isinstance(parsed, dt.datetime):
        return parsed.astimezone(zone).date()
    return parsed


def _validate_todo_date(value: Any, info: ValidationInfo) -> dt.date:
    zone = (info.context or {}).get("zone")
    return parse_todo_date(value, zone)


def parse_todo_time(value: Any) -> Optional[dt.time]:
    """
    Normalize a todo time. None and '' mean all-day; 'HH:MM' and 'HH:MM:SS'
    are accepted. Seconds are dropped since reminders are minute-granular.
    """
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        value = value.time()
    if isinstance(value, dt.time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            parsed = dt.time.fromisoformat(s)
        except ValueError as e:
            raise ValueError("Invalid time format. Use 'HH:MM' (e.g., '09:30').") from e
        return parsed.replace(second=0, microsecond=0, tzinfo=None)
    raise ValueError("Invalid type for time; expected 'HH:MM' string.")


def format_todo_time(value: Optional[dt.time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def normalize_title(value: Optional[str]) -> str:
    """Strip whitespace and enforce 1..200 length."""
    if value is None:
        raise ValueError("title is required")
    if not isinstance(value, str):
        raise ValueError("title must be a string")
    s = value.strip()
    if not (1 <= len(s) <= TITLE_MAX_LENGTH):
        raise ValueError(f"title length must be between 1 and {TITLE_MAX_LENGTH} characters")
    return s


def _text_or_empty(value: Any) -> Any:
    return "" if value is None else value


def _id_to_text(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


TodoId = Union[int, str]
TodoDate = Annotated[dt.date, BeforeValidator(_validate_todo_date)]
# Request bodies keep offset-aware datetimes until the store applies the configured zone
TodoDateInput = Annotated[Union[dt.datetime, dt.date], BeforeValidator(parse_date_input)]
TodoTime = Annotated[
    Optional[dt.time],
    BeforeValidator(parse_todo_time),
    PlainSerializer(format_todo_time, return_type=Optional[str]),
]
TodoTitle = Annotated[str, BeforeValidator(normalize_title)]
FreeText = Annotated[str, BeforeValidator(_text_or_empty)]
ExternalId = Annotated[Optional[str], BeforeValidator(_id_to_text)]

# Shared by every todo-shaped model: camelCase on the wire, snake_case in Python.
TODO_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


# PUBLIC_INTERFACE
class Todo(BaseModel):
    """
    The validated todo record kept by the store and written to persistence.

    Fields:
    - id: Unique identifier (server-assigned integer, or a legacy string id)
    - date: Calendar date the todo applies to
    - time: Optional clock time; None means all-day
    - title: Short title (1..200 chars, trimmed)
    - description / link: Optional free text
    - enable_notification / notification_minutes: reminder switch and lead time
    - completed: Completion flag
    - source: Provenance tag, e.g. 'google-calendar'
    - external_event_id: Google Calendar event this todo was imported from or exported to
    - created_at: Server-assigned creation timestamp
    """

    model_config = TODO_MODEL_CONFIG

    id: TodoId
    date: TodoDate
    time: TodoTime = None
    title: TodoTitle
    description: FreeText = ""
    link: FreeText = ""
    enable_notification: bool = False
    notification_minutes: int = Field(default=DEFAULT_NOTIFICATION_MINUTES, ge=0)
    completed: bool = False
    source: Optional[str] = None
    external_event_id: ExternalId = Field(
        default=None,
        # googleCalendarId is how older data files marked exported todos
        validation_alias=AliasChoices("externalEventId", "external_event_id", "googleCalendarId"),
        serialization_alias="externalEventId",
    )
    created_at: Optional[dt.datetime] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: TodoId) -> TodoId:
        if isinstance(v, str) and not v.strip():
            raise ValueError("id must not be empty")
        return v

    @property
    def key(self) -> str:
        """Lookup key; ids compare by their string form across int/str storage."""
        return str(self.id)

    def starts_at(self) -> Optional[dt.datetime]:
        """Naive local datetime of the todo, or None for all-day todos."""
        if self.time is None:
            return None
        return dt.datetime.combine(self.date, self.time)

    def to_record(self) -> dict:
        """JSON-ready dict in the persisted (camelCase) shape."""
        return self.model_dump(mode="json", by_alias=True)
