from __future__ import annotations

from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ..context import AppContext, get_context
from ..models import Todo
from ..schemas import (
    BackupCreated,
    BackupInfo,
    MessageOut,
    RestoreResult,
    TodoCreate,
    TodoUpdate,
)

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)

_TODO_NOT_FOUND = {404: {"description": "Todo not found"}}


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[Todo],
    summary="List Todos",
    description=(
        "Return the whole todo collection in insertion order.\n\n"
        "Query parameters:\n"
        "- date: only todos on this calendar date (YYYY-MM-DD)"
    ),
    responses={200: {"description": "List retrieved successfully"}},
)
async def list_todos(
    on: Optional[date] = Query(None, alias="date", description="Only todos on this date (YYYY-MM-DD)"),
    ctx: AppContext = Depends(get_context),
) -> List[Todo]:
    """
    List todos, optionally for a single date.
    """
    if on is not None:
        return ctx.store.for_date(on)
    return ctx.store.list()


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Todo,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new todo; the server assigns `id` and `createdAt` and schedules its reminder.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"description": "Validation error"},
    },
)
async def create_todo(payload: TodoCreate, ctx: AppContext = Depends(get_context)) -> Todo:
    """
    Create a new Todo.
    """
    return ctx.store.create(payload)


# PUBLIC_INTERFACE
@router.post(
    "/backup",
    response_model=BackupCreated,
    summary="Create Backup",
    description="Snapshot the current collection to a timestamped file.",
)
async def create_backup(ctx: AppContext = Depends(get_context)) -> BackupCreated:
    filename = ctx.store.repository.create_backup()
    return BackupCreated(message="Backup created", file=filename)


# PUBLIC_INTERFACE
@router.get(
    "/backups",
    response_model=List[BackupInfo],
    summary="List Backups",
    description="List snapshot files, newest first.",
)
async def list_backups(ctx: AppContext = Depends(get_context)) -> List[BackupInfo]:
    return ctx.store.repository.list_backups()


# PUBLIC_INTERFACE
@router.post(
    "/restore/{filename}",
    response_model=RestoreResult,
    summary="Restore Backup",
    description=(
        "Replace the current collection with a snapshot. The snapshot is validated as a whole; "
        "an invalid record rejects the restore and leaves the collection untouched."
    ),
    responses={
        404: {"description": "Backup file not found"},
        422: {"description": "Snapshot contains invalid todo data"},
    },
)
async def restore_backup(filename: str, ctx: AppContext = Depends(get_context)) -> RestoreResult:
    records = ctx.store.repository.read_backup(filename)
    todos = ctx.store.replace_all(records)
    return RestoreResult(message="Todos restored from backup", count=len(todos))


# PUBLIC_INTERFACE
@router.post(
    "/load",
    response_model=RestoreResult,
    summary="Load Todos",
    description=(
        "Replace the current collection with an uploaded JSON array of todos (a previously saved file). "
        "Every record needs id, title and date; the load is all-or-nothing."
    ),
    responses={422: {"description": "Invalid todo data"}},
)
async def load_todos(
    records: Any = Body(..., description="JSON array of todo records"),
    ctx: AppContext = Depends(get_context),
) -> RestoreResult:
    todos = ctx.store.replace_all(records)
    return RestoreResult(message=f"Loaded {len(todos)} todos successfully", count=len(todos))


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=Todo,
    summary="Get Todo",
    description="Get a single todo by id.",
    responses={200: {"description": "Todo found"}, **_TODO_NOT_FOUND},
)
async def get_todo(todo_id: str, ctx: AppContext = Depends(get_context)) -> Todo:
    """
    Retrieve a single Todo item by its ID.
    """
    return ctx.store.get(todo_id)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=Todo,
    summary="Update Todo",
    description=(
        "Merge the provided fields into an existing todo; omitted fields are kept. "
        "The todo's reminder is cancelled and rescheduled from the merged record."
    ),
    responses={200: {"description": "Todo updated"}, **_TODO_NOT_FOUND},
)
@router.patch(
    "/{todo_id}",
    response_model=Todo,
    summary="Update Todo (PATCH)",
    description="Same merge semantics as PUT.",
    responses={200: {"description": "Todo updated"}, **_TODO_NOT_FOUND},
)
async def update_todo(todo_id: str, payload: TodoUpdate, ctx: AppContext = Depends(get_context)) -> Todo:
    """
    Partial update of a Todo item.
    """
    return ctx.store.update(todo_id, payload)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageOut,
    summary="Delete Todo",
    description="Delete a todo by id and cancel its pending reminder.",
    responses={200: {"description": "Todo deleted"}, **_TODO_NOT_FOUND},
)
async def delete_todo(todo_id: str, ctx: AppContext = Depends(get_context)) -> MessageOut:
    """
    Delete a Todo. Returns a confirmation message, 404 if not found.
    """
    ctx.store.delete(todo_id)
    return MessageOut(message="Todo deleted successfully")
