from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..context import AppContext, get_context
from ..schemas import MessageOut, Reminder, ScheduledReminderOut

router = APIRouter(
    prefix="/api/reminders",
    tags=["reminders"],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[Reminder],
    summary="List Reminders",
    description="Reminders that fired and were not dismissed yet, newest first. One per todo tag.",
)
async def list_reminders(ctx: AppContext = Depends(get_context)) -> List[Reminder]:
    return ctx.channel.list()


# PUBLIC_INTERFACE
@router.get(
    "/scheduled",
    response_model=List[ScheduledReminderOut],
    summary="Pending Reminders",
    description="Reminders waiting for their fire time, soonest first.",
)
async def list_scheduled(ctx: AppContext = Depends(get_context)) -> List[ScheduledReminderOut]:
    return [ScheduledReminderOut(todo_id=n.todo_id, fire_at=n.fire_at) for n in ctx.scheduler.pending()]


# PUBLIC_INTERFACE
@router.delete(
    "/{tag}",
    response_model=MessageOut,
    summary="Dismiss Reminder",
    responses={404: {"description": "Reminder not found"}},
)
async def dismiss_reminder(tag: str, ctx: AppContext = Depends(get_context)) -> MessageOut:
    ctx.channel.dismiss(tag)
    return MessageOut(message="Reminder dismissed")
