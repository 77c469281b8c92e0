"""
Notification scheduling for todo reminders.

A todo with notifications enabled and a time of day has a fire time of
`date + time - notificationMinutes`. The scheduler keeps at most one pending
timer per todo id: every schedule call replaces the previous entry, and every
cancel removes it before anything new is registered.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Dict, Iterable, List, Optional

from .errors import PermissionDeniedError
from .models import Todo, TodoId
from .notifications import NotificationChannel
from .schemas import Reminder
from .utils import seconds_until

logger = logging.getLogger(__name__)

DEFAULT_GRACE_WINDOW = timedelta(seconds=60)
REMINDER_TITLE = "Calendar Todo Reminder"

Clock = Callable[[], datetime]


# PUBLIC_INTERFACE
def fire_time(todo: Todo) -> Optional[datetime]:
    """
    Return the naive local instant the todo's reminder is due, or None when the
    todo has no effective reminder (notifications off, or an all-day todo).
    """
    if not todo.enable_notification:
        return None
    starts = todo.starts_at()
    if starts is None:
        return None
    return starts - timedelta(minutes=todo.notification_minutes)


def reminder_tag(todo_id: TodoId) -> str:
    return f"todo-{todo_id}"


@dataclass
class ScheduledNotification:
    """A pending reminder. Owns its timer handle; references the todo by id."""

    todo_id: TodoId
    fire_at: datetime
    todo: Todo
    handle: asyncio.TimerHandle

    def cancel(self) -> None:
        self.handle.cancel()


# PUBLIC_INTERFACE
class NotificationScheduler:
    """
    Owns the pending reminder timers.

    Timers are registered on the asyncio event loop with `call_later`. All calls
    are expected to happen on that loop's thread; the scheduler holds no locks.
    `zone` is the zone of the naive wall-clock times; timer delays are measured
    in elapsed time, so a DST change between now and the fire time is honored.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        clock: Clock,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        grace_window: timedelta = DEFAULT_GRACE_WINDOW,
        zone: Optional[tzinfo] = None,
    ) -> None:
        self._channel = channel
        self._clock = clock
        self._loop = loop
        self._zone = zone
        self._grace_window = grace_window
        self._pending: Dict[str, ScheduledNotification] = {}

    @property
    def grace_window(self) -> timedelta:
        return self._grace_window

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, todo_id: object) -> bool:
        return str(todo_id) in self._pending

    def pending(self) -> List[ScheduledNotification]:
        """Pending entries ordered by fire time."""
        return sorted(self._pending.values(), key=lambda n: n.fire_at)

    def get(self, todo_id: TodoId) -> Optional[ScheduledNotification]:
        return self._pending.get(str(todo_id))

    # PUBLIC_INTERFACE
    def schedule(self, todo: Todo, now: Optional[datetime] = None) -> Optional[ScheduledNotification]:
        """
        Register the todo's reminder.

        Returns the pending entry, or None when nothing is pending afterwards:
        the todo has no effective reminder, or its fire time is at or before
        `now` and the reminder was delivered immediately.
        """
        due = fire_time(todo)
        if due is None:
            return None

        # Replace semantics: the old timer is gone before a new one exists
        self.cancel(todo.id)

        now = now if now is not None else self._clock()
        if due <= now:
            logger.debug("Reminder for todo %s already due (%s), firing now", todo.id, due)
            self.fire(todo)
            return None

        delay = seconds_until(due, now, self._zone)
        handle = self._get_loop().call_later(delay, self._on_timer, todo.key)
        entry = ScheduledNotification(todo_id=todo.id, fire_at=due, todo=todo, handle=handle)
        self._pending[todo.key] = entry
        logger.debug("Scheduled reminder for todo %s at %s (in %.0fs)", todo.id, due, delay)
        return entry

    # PUBLIC_INTERFACE
    def cancel(self, todo_id: TodoId) -> bool:
        """Cancel the pending reminder for a todo id. Idempotent."""
        entry = self._pending.pop(str(todo_id), None)
        if entry is None:
            return False
        entry.cancel()
        logger.debug("Cancelled reminder for todo %s", todo_id)
        return True

    def cancel_all(self) -> int:
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            entry.cancel()
        return len(entries)

    # PUBLIC_INTERFACE
    def reconcile_all(self, todos: Iterable[Todo], now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Rebuild reminders after the collection was loaded.

        - fire time within the grace window ending at `now` (both ends inclusive): fire immediately
        - fire time after `now`: schedule
        - anything older: dropped as stale
        """
        now = now if now is not None else self._clock()
        cutoff = now - self._grace_window
        counts = {"fired": 0, "scheduled": 0, "stale": 0}
        for todo in todos:
            due = fire_time(todo)
            if due is None:
                continue
            if cutoff <= due <= now:
                self.cancel(todo.id)
                self.fire(todo)
                counts["fired"] += 1
            elif due > now:
                self.schedule(todo, now=now)
                counts["scheduled"] += 1
            else:
                counts["stale"] += 1
        logger.info(
            "Reconciled reminders: %d fired, %d scheduled, %d stale",
            counts["fired"],
            counts["scheduled"],
            counts["stale"],
        )
        return counts

    # PUBLIC_INTERFACE
    def fire(self, todo: Todo) -> bool:
        """
        Deliver the todo's reminder through the channel. Returns False, without
        raising, when the channel is not permitted.
        """
        if not self._channel.is_permitted:
            logger.debug("Reminder for todo %s suppressed: permission %s", todo.id, self._channel.permission)
            return False
        reminder = Reminder(
            tag=reminder_tag(todo.id),
            todo_id=todo.id,
            title=REMINDER_TITLE,
            body=f"{todo.title} - {todo.time.strftime('%H:%M') if todo.time else 'All day'}",
            fired_at=self._clock(),
        )
        try:
            self._channel.show(reminder)
        except PermissionDeniedError as e:
            logger.warning("Reminder for todo %s not shown: %s", todo.id, e.message)
            return False
        logger.info("Reminder fired for todo %s", todo.id)
        return True

    def _on_timer(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        self.fire(entry.todo)
