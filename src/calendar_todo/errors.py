"""
Exception taxonomy shared by the store, scheduler, adapter and HTTP layer.
"""
from __future__ import annotations


class CalendarTodoError(Exception):
    """Base class for all application errors."""

    status_code = 500
    kind = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CalendarTodoError):
    """Unknown todo id, reminder tag or backup file."""

    status_code = 404
    kind = "NotFound"


class ValidationError(CalendarTodoError):
    """Malformed todo data in an import, restore or file load batch."""

    status_code = 422
    kind = "ValidationError"

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class PersistenceError(CalendarTodoError):
    """Read or write failure on the backing store."""

    status_code = 500
    kind = "PersistenceError"


class PermissionDeniedError(CalendarTodoError):
    """Notification or external calendar authorization refused."""

    status_code = 403
    kind = "PermissionDenied"


class CalendarProviderError(CalendarTodoError):
    """The external calendar provider answered with an unexpected failure."""

    status_code = 502
    kind = "CalendarProviderError"
