from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from threading import RLock
from typing import List

from .errors import NotFoundError, PersistenceError
from .repositories import Repository, TodoRecords
from .schemas import BackupInfo
from .utils import backup_filename, is_backup_filename, utc_now

logger = logging.getLogger(__name__)

TODOS_FILENAME = "todos.json"


class JsonFileRepository(Repository):
    """
    Repository keeping the collection as a pretty-printed JSON array in
    <data_folder>/todos.json, with snapshots stored next to it as
    todos-backup-<timestamp>.json.
    """

    def __init__(self, data_folder: str) -> None:
        self._folder = data_folder or "."
        self._path = os.path.join(self._folder, TODOS_FILENAME)
        self._lock = RLock()

    @property
    def path(self) -> str:
        return self._path

    @property
    def description(self) -> str:
        return self._path

    def _read(self, path: str) -> TodoRecords:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.exception("Error loading todos from %s", path)
            raise PersistenceError(f"Failed to load todos from {os.path.basename(path)}") from e
        if not isinstance(data, list):
            raise PersistenceError(f"{os.path.basename(path)} does not contain a JSON array")
        return data

    def _write(self, path: str, records: TodoRecords) -> None:
        # Write to a sibling temp file first so a failed write never truncates the target
        try:
            os.makedirs(self._folder, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self._folder, prefix=".todos-", suffix=".tmp")
        except OSError as e:
            logger.exception("Error preparing %s", path)
            raise PersistenceError(f"Failed to save todos to {os.path.basename(path)}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.exception("Error saving todos to %s", path)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise PersistenceError(f"Failed to save todos to {os.path.basename(path)}") from e

    def load(self) -> TodoRecords:
        with self._lock:
            if not os.path.exists(self._path):
                return []
            return self._read(self._path)

    def save(self, records: TodoRecords) -> None:
        with self._lock:
            self._write(self._path, records)

    def create_backup(self) -> str:
        with self._lock:
            name = backup_filename(utc_now())
            self._write(os.path.join(self._folder, name), self.load())
            logger.info("Backup created: %s", name)
            return name

    def list_backups(self) -> List[BackupInfo]:
        if not os.path.isdir(self._folder):
            return []
        try:
            names = os.listdir(self._folder)
        except OSError as e:
            raise PersistenceError("Failed to get backups") from e
        infos: List[BackupInfo] = []
        for name in names:
            if not is_backup_filename(name):
                continue
            try:
                stat = os.stat(os.path.join(self._folder, name))
            except OSError:
                logger.warning("Skipping unreadable backup %s", name)
                continue
            created = getattr(stat, "st_birthtime", stat.st_mtime)
            infos.append(
                BackupInfo(filename=name, created_at=datetime.fromtimestamp(created, tz=timezone.utc))
            )
        return sorted(infos, key=lambda b: (b.created_at, b.filename), reverse=True)

    def read_backup(self, filename: str) -> TodoRecords:
        path = os.path.join(self._folder, filename)
        if not is_backup_filename(filename) or not os.path.isfile(path):
            raise NotFoundError("Backup file not found")
        with self._lock:
            return self._read(path)
