"""
Google Calendar integration.

`GoogleCalendarClient` talks to the Calendar v3 REST API with a caller supplied
OAuth access token. `ExternalCalendarAdapter` converts between Google events
and todos and applies imports/exports to the store.
"""
from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import CalendarProviderError, PermissionDeniedError, ValidationError
from .models import DEFAULT_NOTIFICATION_MINUTES, GOOGLE_CALENDAR_SOURCE, Todo, TodoId
from .schemas import TodoCreate
from .store import TodoStore

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
DEFAULT_EVENT_DURATION = timedelta(hours=1)
UNTITLED_EVENT = "Untitled Event"


class EventDateTime(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    date: Optional[str] = None
    date_time: Optional[str] = None
    time_zone: Optional[str] = None


# PUBLIC_INTERFACE
class CalendarEvent(BaseModel):
    """The subset of a Google Calendar event this service reads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    summary: Optional[str] = None
    description: Optional[str] = None
    html_link: Optional[str] = None
    start: EventDateTime
    end: Optional[EventDateTime] = None


def _start_of(event: CalendarEvent, zone: tzinfo) -> Tuple[str, Optional[str]]:
    """Return (date, time) strings of an event start in the local zone."""
    if event.start.date_time:
        try:
            start = datetime.fromisoformat(event.start.date_time.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"Event {event.id} has an invalid start: {event.start.date_time}") from e
        if start.tzinfo is not None:
            start = start.astimezone(zone)
        return start.date().isoformat(), start.strftime("%H:%M")
    if event.start.date:
        return event.start.date, None
    raise ValidationError(f"Event {event.id} has no start date")


# PUBLIC_INTERFACE
def event_to_todo(event: Dict[str, Any], zone: tzinfo) -> TodoCreate:
    """
    Convert a Google event into todo fields. Imported todos remind 15 minutes
    ahead by default and remember the event id for de-duplication.
    """
    try:
        parsed = CalendarEvent.model_validate(event)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid calendar event", errors=e.errors(include_url=False, include_context=False, include_input=False)
        ) from e
    day, clock = _start_of(parsed, zone)
    try:
        return TodoCreate(
            title=(parsed.summary or "").strip() or UNTITLED_EVENT,
            date=day,
            time=clock,
            description=parsed.description or "",
            link=parsed.html_link or "",
            enable_notification=True,
            notification_minutes=DEFAULT_NOTIFICATION_MINUTES,
            completed=False,
            source=GOOGLE_CALENDAR_SOURCE,
            external_event_id=parsed.id,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            f"Event {parsed.id} cannot be converted",
            errors=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


# PUBLIC_INTERFACE
def todo_to_event(todo: Todo, zone: tzinfo, zone_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Convert a todo into a Google event body: one hour starting at the todo's
    time, or 00:00-01:00 for all-day todos. Datetimes carry the local offset.
    """
    start = datetime.combine(todo.date, todo.time or time(0, 0)).replace(tzinfo=zone)
    end = start + DEFAULT_EVENT_DURATION

    def _point(value: datetime) -> Dict[str, str]:
        point = {"dateTime": value.isoformat()}
        if zone_name:
            point["timeZone"] = zone_name
        return point

    event: Dict[str, Any] = {
        "summary": todo.title,
        "description": todo.description or "",
        "start": _point(start),
        "end": _point(end),
    }
    if todo.link:
        event["source"] = {"title": todo.title, "url": todo.link}
    return event


# PUBLIC_INTERFACE
class GoogleCalendarClient:
    """
    Minimal async client for the Calendar v3 events endpoints.
    The OAuth flow happens elsewhere; every call takes a bearer access token.
    """

    def __init__(
        self,
        base_url: str = GOOGLE_CALENDAR_API_BASE_URL,
        calendar_id: str = "primary",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._calendar_id = calendar_id
        self._timeout = timeout
        self._transport = transport

    def _events_url(self) -> str:
        return f"{self._base_url}/calendars/{quote(self._calendar_id, safe='')}/events"

    async def _request(self, method: str, access_token: str, **kwargs: Any) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.request(method, self._events_url(), headers=headers, **kwargs)
            except httpx.HTTPError as e:
                logger.exception("Google Calendar request failed")
                raise CalendarProviderError(f"Google Calendar request failed: {e}") from e
        if response.status_code in (401, 403):
            raise PermissionDeniedError("Google Calendar authorization was refused")
        if response.is_error:
            logger.error("Google Calendar answered %s: %s", response.status_code, response.text[:200])
            raise CalendarProviderError(f"Google Calendar answered {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise CalendarProviderError("Google Calendar returned a malformed response") from e

    async def list_upcoming_events(
        self, access_token: str, time_min: datetime, max_results: int = 100
    ) -> List[Dict[str, Any]]:
        params = {
            "timeMin": time_min.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            "showDeleted": "false",
            "singleEvents": "true",
            "maxResults": str(max_results),
            "orderBy": "startTime",
        }
        payload = await self._request("GET", access_token, params=params)
        items = payload.get("items") or []
        logger.info("Fetched %d upcoming events from Google Calendar", len(items))
        return items

    async def insert_event(self, access_token: str, event: Dict[str, Any]) -> Dict[str, Any]:
        created = await self._request("POST", access_token, json=event)
        logger.info("Created Google Calendar event %s", created.get("id"))
        return created


# PUBLIC_INTERFACE
class ExternalCalendarAdapter:
    """Applies Google Calendar imports and exports to the todo store."""

    def __init__(
        self,
        store: TodoStore,
        client: GoogleCalendarClient,
        zone: tzinfo,
        zone_name: Optional[str] = None,
        max_results: int = 100,
    ) -> None:
        self._store = store
        self._client = client
        self._zone = zone
        self._zone_name = zone_name
        self._max_results = max_results

    def _known_event_ids(self) -> set:
        known = set()
        for todo in self._store.list():
            if todo.external_event_id:
                known.add(todo.external_event_id)
            if todo.source == GOOGLE_CALENDAR_SOURCE:
                # Older imports used the event id as the todo id
                known.add(todo.key)
        return known

    # PUBLIC_INTERFACE
    def import_events(self, events: Sequence[Dict[str, Any]]) -> Tuple[List[Todo], int]:
        """
        Insert todos for events not seen before. Every event is converted before
        anything is inserted, so one malformed event rejects the whole batch.
        Returns the created todos and the number of skipped duplicates.
        """
        converted = [event_to_todo(event, self._zone) for event in events]
        known = self._known_event_ids()
        fresh: List[TodoCreate] = []
        for item in converted:
            if item.external_event_id in known:
                continue
            known.add(item.external_event_id)
            fresh.append(item)
        created = self._store.create_many(fresh)
        skipped = len(converted) - len(created)
        logger.info("Imported %d events from Google Calendar (%d duplicates skipped)", len(created), skipped)
        return created, skipped

    async def sync_from_provider(self, access_token: str, now: Optional[datetime] = None) -> Tuple[List[Todo], int]:
        """Fetch upcoming events and import them."""
        time_min = now or datetime.now(timezone.utc)
        events = await self._client.list_upcoming_events(access_token, time_min, self._max_results)
        return self.import_events(events)

    # PUBLIC_INTERFACE
    async def export_todo(self, todo_id: TodoId, access_token: str) -> Todo:
        """Create a Google event for the todo and link the todo to it."""
        todo = self._store.get(todo_id)
        created = await self._client.insert_event(access_token, todo_to_event(todo, self._zone, self._zone_name))
        event_id = created.get("id")
        if not event_id:
            raise CalendarProviderError("Google Calendar did not return an event id")
        return self._store.mark_exported(todo.id, str(event_id))
