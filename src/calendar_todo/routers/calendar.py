from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from ..calendar_view import project
from ..context import AppContext, get_context
from ..schemas import MonthView

router = APIRouter(
    prefix="/api/calendar",
    tags=["calendar"],
)


# PUBLIC_INTERFACE
@router.get(
    "/{year}/{month}",
    response_model=MonthView,
    summary="Month Grid",
    description=(
        "Project the todo collection onto a Sunday-first 6-week grid (42 cells). "
        "Each cell flags days outside the month, today, and days with at least one todo.\n\n"
        "Query parameters:\n"
        "- today: override today's date (YYYY-MM-DD); defaults to the server's local date"
    ),
)
async def month_grid(
    year: int = Path(..., ge=1900, le=9998, description="Four digit year"),
    month: int = Path(..., ge=1, le=12, description="Month number, 1..12"),
    today: Optional[date] = Query(None, description="Date highlighted as today"),
    ctx: AppContext = Depends(get_context),
) -> MonthView:
    cells = project(year, month, ctx.store.list(), today or ctx.today())
    return MonthView(year=year, month=month, cells=cells)
