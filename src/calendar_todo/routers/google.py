from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_google_access_token
from ..context import AppContext, get_context
from ..models import Todo
from ..schemas import ImportResult

router = APIRouter(
    prefix="/api/google",
    tags=["google"],
)

_AUTH_RESPONSES = {
    403: {"description": "Missing or refused Google authorization"},
    502: {"description": "Google Calendar failure"},
}


# PUBLIC_INTERFACE
@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import From Google Calendar",
    description=(
        "Fetch upcoming events from the configured Google calendar and add them as todos. "
        "Events already linked to a todo are skipped. Requires `Authorization: Bearer <access token>`."
    ),
    responses={422: {"description": "Malformed event data"}, **_AUTH_RESPONSES},
)
async def import_from_google(
    token: str = Depends(get_google_access_token),
    ctx: AppContext = Depends(get_context),
) -> ImportResult:
    created, skipped = await ctx.calendar.sync_from_provider(token)
    return ImportResult(
        message=f"Imported {len(created)} events from Google Calendar",
        imported=len(created),
        skipped=skipped,
    )


# PUBLIC_INTERFACE
@router.post(
    "/export/{todo_id}",
    response_model=Todo,
    summary="Export Todo To Google Calendar",
    description="Create a one-hour Google Calendar event for the todo and link the todo to it.",
    responses={404: {"description": "Todo not found"}, **_AUTH_RESPONSES},
)
async def export_to_google(
    todo_id: str,
    token: str = Depends(get_google_access_token),
    ctx: AppContext = Depends(get_context),
) -> Todo:
    return await ctx.calendar.export_todo(todo_id, token)
