from __future__ import annotations

import time
from datetime import datetime, timezone, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


# PUBLIC_INTERFACE
def resolve_zone(name: Optional[str]) -> tzinfo:
    """
    Return the configured timezone, falling back to the machine's local zone
    when no name is set or the name is unknown.
    """
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else timezone.utc


# PUBLIC_INTERFACE
def local_now(zone: tzinfo) -> datetime:
    """Current wall-clock time in `zone` as a naive datetime, comparable with todo times."""
    return datetime.now(zone).replace(tzinfo=None)


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdAllocator:
    """
    Hands out millisecond-timestamp ids that never repeat, even when several
    todos are created within the same millisecond.
    """

    def __init__(self) -> None:
        self._last = 0

    def observe(self, ids: Iterable[object]) -> None:
        """Account for ids already present in a loaded collection."""
        for value in ids:
            if isinstance(value, int) and value > self._last:
                self._last = value

    def allocate(self) -> int:
        candidate = time.time_ns() // 1_000_000
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


# PUBLIC_INTERFACE
def backup_filename(now: datetime) -> str:
    """
    Build a filesystem-safe snapshot name, e.g. todos-backup-2024-03-15T08-44-00-123456Z.json
    """
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return f"todos-backup-{stamp}.json"


def is_backup_filename(name: str) -> bool:
    return (
        name.startswith("todos-backup-")
        and name.endswith(".json")
        and "/" not in name
        and "\\" not in name
        and ".." not in name
    )


def seconds_until(due: datetime, now: datetime, zone: Optional[tzinfo] = None) -> float:
    """
    Elapsed seconds from `now` to `due`, both naive wall-clock times in `zone`.
    With a zone, both sides go through UTC so a DST change in between counts.
    """
    if zone is None:
        return (due - now).total_seconds()
    due_utc = due.replace(tzinfo=zone).astimezone(timezone.utc)
    now_utc = now.replace(tzinfo=zone).astimezone(timezone.utc)
    return (due_utc - now_utc).total_seconds()
