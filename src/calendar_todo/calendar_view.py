from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List

from .models import Todo
from .schemas import DayCell

GRID_CELLS = 42  # six full weeks


# PUBLIC_INTERFACE
def project(year: int, month: int, todos: Iterable[Todo], today: date) -> List[DayCell]:
    """
    Map a month and the todo collection onto a Sunday-first grid of 42 day cells.

    The grid starts on the Sunday on or before the 1st, so leading cells belong
    to the previous month and trailing cells to the next one. `has_todos` is
    set when any todo falls on the cell's date; time of day plays no part.
    """
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    first = date(year, month, 1)
    # date.weekday(): Monday == 0 ... Sunday == 6
    leading = (first.weekday() + 1) % 7
    start = first - timedelta(days=leading)
    todo_dates = {t.date for t in todos}

    cells: List[DayCell] = []
    for offset in range(GRID_CELLS):
        day = start + timedelta(days=offset)
        cells.append(
            DayCell(
                date=day,
                day=day.day,
                outside_month=day.month != month,
                is_today=day == today,
                has_todos=day in todo_dates,
            )
        )
    return cells
