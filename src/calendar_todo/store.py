from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from .errors import NotFoundError, PersistenceError, ValidationError
from .models import Todo, TodoId
from .repositories import Repository
from .scheduler import NotificationScheduler
from .schemas import TodoCreate, TodoUpdate
from .utils import IdAllocator, utc_now

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def validate_records(records: Any, zone: Optional[tzinfo] = None) -> List[Todo]:
    """
    Validate a whole batch of raw todo records (restore, file load).
    Dates written as offset-aware datetimes are read in `zone`.
    Raises ValidationError for a non-list payload, any invalid record or duplicate ids;
    nothing is applied in that case.
    """
    if not isinstance(records, list):
        raise ValidationError("Invalid file format: expected a JSON array of todos")
    todos: List[Todo] = []
    errors: List[dict] = []
    seen: Dict[str, int] = {}
    for index, record in enumerate(records):
        try:
            todo = Todo.model_validate(record, context={"zone": zone})
        except PydanticValidationError as e:
            errors.append(
                {"index": index, "errors": e.errors(include_url=False, include_context=False, include_input=False)}
            )
            continue
        if todo.key in seen:
            errors.append({"index": index, "errors": [{"msg": f"duplicate id {todo.id!r}"}]})
            continue
        seen[todo.key] = index
        todos.append(todo)
    if errors:
        raise ValidationError("Invalid todo data", errors=errors)
    return todos


# PUBLIC_INTERFACE
class TodoStore:
    """
    Ordered in-memory todo collection, persisted through a Repository.

    Every mutation follows the same order: change memory, persist, then tell the
    scheduler. A failed persist restores the previous collection and leaves the
    scheduler untouched.
    """

    def __init__(
        self, repository: Repository, scheduler: NotificationScheduler, zone: Optional[tzinfo] = None
    ) -> None:
        self._repository = repository
        self._scheduler = scheduler
        self._zone = zone
        self._todos: List[Todo] = []
        self._ids = IdAllocator()

    @property
    def repository(self) -> Repository:
        return self._repository

    def load(self) -> List[Todo]:
        """Read the persisted collection into memory. Does not touch the scheduler."""
        try:
            todos = validate_records(self._repository.load(), self._zone)
        except ValidationError as e:
            raise PersistenceError(f"Stored todos are invalid: {e.message}") from e
        self._todos = todos
        self._ids.observe(t.id for t in todos)
        logger.info("Loaded %d todos from %s", len(todos), self._repository.description)
        return self.list()

    def _persist(self, previous: List[Todo]) -> None:
        try:
            self._repository.save([t.to_record() for t in self._todos])
        except PersistenceError:
            self._todos = previous
            raise

    def _index(self, todo_id: TodoId) -> int:
        key = str(todo_id)
        for i, todo in enumerate(self._todos):
            if todo.key == key:
                return i
        raise NotFoundError("Todo not found")

    def __len__(self) -> int:
        return len(self._todos)

    def list(self) -> List[Todo]:
        return list(self._todos)

    def get(self, todo_id: TodoId) -> Todo:
        return self._todos[self._index(todo_id)]

    def for_date(self, day: date) -> List[Todo]:
        return [t for t in self._todos if t.date == day]

    def _new_todo(self, data: TodoCreate) -> Todo:
        return Todo.model_validate(
            {**data.model_dump(), "id": self._ids.allocate(), "created_at": utc_now()},
            context={"zone": self._zone},
        )

    # PUBLIC_INTERFACE
    def create(self, data: TodoCreate) -> Todo:
        """Assign an id, append, persist, then schedule the reminder."""
        return self.create_many([data])[0]

    def create_many(self, items: Sequence[TodoCreate]) -> List[Todo]:
        """Append a batch with a single persist; the batch is applied entirely or not at all."""
        if not items:
            return []
        previous = list(self._todos)
        created = [self._new_todo(item) for item in items]
        self._todos.extend(created)
        self._persist(previous)
        for todo in created:
            self._scheduler.schedule(todo)
        logger.info("Created %d todo(s): %s", len(created), ", ".join(str(t.id) for t in created))
        return created

    # PUBLIC_INTERFACE
    def update(self, todo_id: TodoId, patch: TodoUpdate) -> Todo:
        """
        Shallow-merge the patch into the record, persist, then cancel and
        reschedule the reminder. Fields absent from the patch are retained.
        """
        return self.merge(todo_id, patch.changes())

    def merge(self, todo_id: TodoId, changes: Dict[str, Any]) -> Todo:
        index = self._index(todo_id)
        current = self._todos[index]
        try:
            merged = Todo.model_validate(
                {**current.model_dump(), **changes, "id": current.id}, context={"zone": self._zone}
            )
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid todo data", errors=e.errors(include_url=False, include_context=False, include_input=False)
            ) from e

        previous = list(self._todos)
        self._todos[index] = merged
        self._persist(previous)
        self._scheduler.cancel(merged.id)
        self._scheduler.schedule(merged)
        logger.info("Updated todo %s", merged.id)
        return merged

    def mark_exported(self, todo_id: TodoId, external_event_id: str) -> Todo:
        return self.merge(todo_id, {"external_event_id": external_event_id})

    # PUBLIC_INTERFACE
    def delete(self, todo_id: TodoId) -> Todo:
        """Remove the record, persist, then cancel its reminder."""
        index = self._index(todo_id)
        previous = list(self._todos)
        removed = self._todos.pop(index)
        self._persist(previous)
        self._scheduler.cancel(removed.id)
        logger.info("Deleted todo %s", removed.id)
        return removed

    # PUBLIC_INTERFACE
    def replace_all(self, records: Any) -> List[Todo]:
        """
        Replace the whole collection (restore from backup, load from file).
        The batch is validated before anything changes; reminders are then
        rebuilt with the same grace-window rule used at startup.
        """
        todos = validate_records(records, self._zone)
        previous = list(self._todos)
        self._todos = todos
        self._persist(previous)
        self._ids.observe(t.id for t in todos)
        self._scheduler.cancel_all()
        self._scheduler.reconcile_all(self._todos)
        logger.info("Replaced collection with %d todos", len(todos))
        return self.list()
