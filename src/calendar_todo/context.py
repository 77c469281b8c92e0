from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Optional

import httpx
from fastapi import Request

from .google_calendar import ExternalCalendarAdapter, GoogleCalendarClient
from .notifications import InboxChannel
from .repositories import Repository, get_repository
from .scheduler import NotificationScheduler
from .settings import Settings
from .store import TodoStore
from .utils import local_now, resolve_zone


# PUBLIC_INTERFACE
@dataclass
class AppContext:
    """Everything a request handler needs; one instance per application."""

    settings: Settings
    zone: tzinfo
    clock: Callable[[], datetime]
    store: TodoStore
    scheduler: NotificationScheduler
    channel: InboxChannel
    calendar: ExternalCalendarAdapter

    def today(self) -> date:
        return self.clock().date()


# PUBLIC_INTERFACE
def build_context(
    settings: Settings,
    *,
    repository: Optional[Repository] = None,
    clock: Optional[Callable[[], datetime]] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AppContext:
    """
    Wire the store, scheduler, reminder channel and calendar adapter together.
    `repository`, `clock`, `loop` and `transport` exist so tests can substitute them.
    """
    zone = resolve_zone(settings.timezone)
    clock = clock or (lambda: local_now(zone))
    channel = InboxChannel(enabled=settings.notifications_enabled)
    scheduler = NotificationScheduler(
        channel,
        clock=clock,
        loop=loop,
        zone=zone,
        grace_window=timedelta(seconds=settings.notification_grace_seconds),
    )
    store = TodoStore(repository or get_repository(settings), scheduler, zone=zone)
    client = GoogleCalendarClient(
        base_url=settings.google_api_base_url,
        calendar_id=settings.google_calendar_id,
        transport=transport,
    )
    calendar = ExternalCalendarAdapter(
        store,
        client,
        zone=zone,
        zone_name=settings.timezone,
        max_results=settings.google_import_max_results,
    )
    return AppContext(
        settings=settings,
        zone=zone,
        clock=clock,
        store=store,
        scheduler=scheduler,
        channel=channel,
        calendar=calendar,
    )


# PUBLIC_INTERFACE
def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context attached to the running app."""
    return request.app.state.context
