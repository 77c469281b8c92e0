from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Tuple

from .errors import NotFoundError
from .schemas import BackupInfo
from .settings import Settings
from .utils import backup_filename, is_backup_filename, utc_now

logger = logging.getLogger(__name__)

TodoRecords = List[dict]


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Abstract persistence contract for the todo collection.

    The collection is stored as one JSON-ready array of todo records; writes
    replace the whole array. Backups are named snapshots of that array.
    """

    @abstractmethod
    def load(self) -> TodoRecords:
        """Return the persisted records, or an empty list when nothing was saved yet."""

    @abstractmethod
    def save(self, records: TodoRecords) -> None:
        """Replace the persisted records. Raise PersistenceError on failure."""

    @abstractmethod
    def create_backup(self) -> str:
        """Snapshot the persisted records and return the snapshot filename."""

    @abstractmethod
    def list_backups(self) -> List[BackupInfo]:
        """Return available snapshots, newest first."""

    @abstractmethod
    def read_backup(self, filename: str) -> TodoRecords:
        """
        Return the records of a snapshot.
        Raise NotFoundError if the snapshot does not exist.
        """

    @property
    def description(self) -> str:
        return type(self).__name__


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and ephemeral runs.
    """

    def __init__(self, records: TodoRecords | None = None) -> None:
        self._lock = RLock()
        self._records: TodoRecords = copy.deepcopy(records or [])
        self._backups: Dict[str, Tuple[BackupInfo, TodoRecords]] = {}

    def load(self) -> TodoRecords:
        with self._lock:
            return copy.deepcopy(self._records)

    def save(self, records: TodoRecords) -> None:
        with self._lock:
            self._records = copy.deepcopy(records)

    def create_backup(self) -> str:
        with self._lock:
            now = utc_now()
            name = backup_filename(now)
            self._backups[name] = (BackupInfo(filename=name, created_at=now), copy.deepcopy(self._records))
            return name

    def list_backups(self) -> List[BackupInfo]:
        with self._lock:
            infos = [info for info, _ in self._backups.values()]
        return sorted(infos, key=lambda b: b.created_at, reverse=True)

    def read_backup(self, filename: str) -> TodoRecords:
        with self._lock:
            entry = self._backups.get(filename) if is_backup_filename(filename) else None
            if entry is None:
                raise NotFoundError("Backup file not found")
            return copy.deepcopy(entry[1])


# PUBLIC_INTERFACE
def get_repository(settings: Settings) -> Repository:
    """
    Factory to return the configured repository based on settings.
    - memory: InMemoryRepository
    - json: JsonFileRepository writing <DATA_FOLDER>/todos.json
    """
    if settings.persistence_backend == "memory":
        return InMemoryRepository()
    from .filestore import JsonFileRepository

    return JsonFileRepository(settings.data_folder)
