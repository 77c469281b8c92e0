"""
Reminder delivery channels.

A channel is the user-visible surface reminders end up on. Delivery is guarded
by a permission that is requested once at startup; reminders carry a stable
per-todo tag so that showing the same todo's reminder again replaces the
still-visible one instead of stacking a duplicate.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from threading import RLock
from typing import List, Optional

from .errors import NotFoundError
from .schemas import Reminder

logger = logging.getLogger(__name__)

PERMISSION_DEFAULT = "default"
PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"


# PUBLIC_INTERFACE
class NotificationChannel(ABC):
    """Abstract reminder surface."""

    def __init__(self) -> None:
        self._permission = PERMISSION_DEFAULT

    @property
    def permission(self) -> str:
        """'default' until requested, then 'granted' or 'denied'."""
        return self._permission

    @property
    def is_permitted(self) -> bool:
        return self._permission == PERMISSION_GRANTED

    @abstractmethod
    async def request_permission(self) -> str:
        """Ask for permission to show reminders and return the resulting state."""

    @abstractmethod
    def show(self, reminder: Reminder) -> None:
        """Surface a reminder, replacing any visible reminder with the same tag."""


class InboxChannel(NotificationChannel):
    """
    In-app reminder inbox polled by the UI client.

    Reminders are keyed by tag; the most recently shown reminder for a tag moves
    to the end of the inbox. The inbox is capped so an unattended server does
    not grow without bound.
    """

    def __init__(self, enabled: bool = True, capacity: int = 200) -> None:
        super().__init__()
        self._enabled = enabled
        self._capacity = capacity
        self._lock = RLock()
        self._items: "OrderedDict[str, Reminder]" = OrderedDict()

    async def request_permission(self) -> str:
        if self._permission == PERMISSION_DEFAULT:
            self._permission = PERMISSION_GRANTED if self._enabled else PERMISSION_DENIED
            logger.info("Reminder permission %s", self._permission)
        return self._permission

    def show(self, reminder: Reminder) -> None:
        with self._lock:
            self._items.pop(reminder.tag, None)
            self._items[reminder.tag] = reminder
            while len(self._items) > self._capacity:
                self._items.popitem(last=False)
        logger.info("Reminder shown: %s (%s)", reminder.body, reminder.tag)

    def list(self) -> List[Reminder]:
        """Visible reminders, newest first."""
        with self._lock:
            return list(reversed(self._items.values()))

    def get(self, tag: str) -> Optional[Reminder]:
        with self._lock:
            return self._items.get(tag)

    def dismiss(self, tag: str) -> Reminder:
        with self._lock:
            reminder = self._items.pop(tag, None)
        if reminder is None:
            raise NotFoundError("Reminder not found")
        return reminder

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
