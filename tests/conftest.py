import asyncio
import os
from dataclasses import replace
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from calendar_todo.context import build_context  # noqa: E402
from calendar_todo.main import create_app  # noqa: E402
from calendar_todo.notifications import InboxChannel  # noqa: E402
from calendar_todo.repositories import InMemoryRepository  # noqa: E402
from calendar_todo.scheduler import NotificationScheduler  # noqa: E402
from calendar_todo.settings import get_settings  # noqa: E402
from calendar_todo.store import TodoStore  # noqa: E402

START = datetime(2024, 3, 15, 8, 0, 0)


class FakeClock:
    """Naive local clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeHandle:
    def __init__(self, when: datetime, callback, args, delay: float = 0.0) -> None:
        self.when = when
        self.delay = delay
        self.callback = callback
        self.args = args
        self._cancelled = False
        self.ran = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class FakeLoop:
    """Stands in for the event loop's call_later; timers run only via advance()."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.clock() + timedelta(seconds=delay), callback, args, delay)
        self.handles.append(handle)
        return handle

    def active(self):
        return [h for h in self.handles if not h.cancelled() and not h.ran]

    def advance(self, **kwargs) -> None:
        target = self.clock() + timedelta(**kwargs)
        for handle in sorted(self.active(), key=lambda h: h.when):
            if handle.when > target:
                break
            self.clock.now = handle.when
            handle.ran = True
            handle.callback(*handle.args)
        self.clock.now = target


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def loop(clock) -> FakeLoop:
    return FakeLoop(clock)


@pytest.fixture
def channel() -> InboxChannel:
    ch = InboxChannel(enabled=True)
    asyncio.run(ch.request_permission())
    return ch


@pytest.fixture
def scheduler(channel, clock, loop) -> NotificationScheduler:
    return NotificationScheduler(channel, clock=clock, loop=loop)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def store(repository, scheduler) -> TodoStore:
    return TodoStore(repository, scheduler, zone=ZoneInfo("UTC"))


@pytest.fixture
def settings(tmp_path):
    return replace(
        get_settings(),
        persistence_backend="memory",
        data_folder=str(tmp_path),
        timezone="UTC",
        notifications_enabled=True,
        notification_grace_seconds=60,
        cors_allow_origins=["*"],
    )


@pytest.fixture
def transport():
    """Modules that talk to Google Calendar override this with an httpx.MockTransport."""
    return None


@pytest.fixture
def context(settings, clock, loop, transport):
    return build_context(settings, repository=InMemoryRepository(), clock=clock, loop=loop, transport=transport)


@pytest.fixture
def client(settings, context):
    app = create_app(settings, context=context)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_payload():
    return todo_payload


def todo_payload(
    title="Dentist",
    date="2024-03-15",
    time="09:00",
    enable_notification=True,
    notification_minutes=15,
    **extra,
):
    payload = {
        "title": title,
        "date": date,
        "time": time,
        "enableNotification": enable_notification,
        "notificationMinutes": notification_minutes,
    }
    payload.update(extra)
    return payload
