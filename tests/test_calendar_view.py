from datetime import date

import pytest

from calendar_todo.calendar_view import GRID_CELLS, project
from calendar_todo.models import Todo


def todo_on(day: str, todo_id=1, time=None):
    return Todo(id=todo_id, date=day, time=time, title="Something")


def test_grid_always_has_six_weeks():
    for month in range(1, 13):
        cells = project(2024, month, [], today=date(2024, 1, 1))
        assert len(cells) == GRID_CELLS == 42


def test_march_2024_starts_on_previous_sunday():
    cells = project(2024, 3, [], today=date(2024, 3, 15))
    # 2024-03-01 is a Friday
    assert cells[0].date == date(2024, 2, 25)
    assert [c.outside_month for c in cells[:5]] == [True] * 5
    assert cells[5].date == date(2024, 3, 1)
    assert cells[5].outside_month is False
    assert cells[-1].date == date(2024, 4, 6)
    assert cells[-1].outside_month is True


def test_month_starting_on_sunday_has_no_leading_days():
    # 2024-09-01 is a Sunday
    cells = project(2024, 9, [], today=date(2024, 9, 1))
    assert cells[0].date == date(2024, 9, 1)
    assert cells[0].outside_month is False
    assert cells[0].is_today is True


def test_cells_are_consecutive_days():
    cells = project(2023, 2, [], today=date(2023, 2, 1))
    for previous, current in zip(cells, cells[1:]):
        assert (current.date - previous.date).days == 1
        assert current.day == current.date.day


def test_has_todos_marks_dates_with_todos_only():
    todos = [
        todo_on("2024-03-15", 1, time="09:00"),
        todo_on("2024-03-15", 2),
        todo_on("2024-02-26", 3),
        todo_on("2024-07-01", 4),
    ]
    cells = project(2024, 3, todos, today=date(2024, 3, 15))
    marked = {c.date for c in cells if c.has_todos}
    assert marked == {date(2024, 3, 15), date(2024, 2, 26)}


def test_exactly_one_cell_is_today():
    cells = project(2024, 3, [], today=date(2024, 3, 15))
    assert [c.date for c in cells if c.is_today] == [date(2024, 3, 15)]

    cells = project(2024, 5, [], today=date(2024, 3, 15))
    assert not any(c.is_today for c in cells)


@pytest.mark.parametrize("month", [0, 13])
def test_invalid_month(month):
    with pytest.raises(ValueError):
        project(2024, month, [], today=date(2024, 1, 1))
