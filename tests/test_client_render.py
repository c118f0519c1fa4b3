from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

from todogame.client.render import (
    is_overdue,
    progress_bar,
    render_app,
    render_header,
    render_list,
    render_task,
)
from todogame.client.state import EditSession, TaskForm, ViewState, parse_tags

TODAY = dt.date(2024, 6, 15)


def _task(**kwargs: object) -> dict[str, object]:
    base: dict[str, object] = {
        "id": 1,
        "text": "water plants",
        "completed": False,
        "priority": 1,
        "dueDate": None,
        "category": None,
        "tags": [],
        "archived": False,
    }
    base.update(kwargs)
    return base


def test_overdue_only_for_open_past_due_tasks() -> None:
    assert is_overdue(_task(dueDate="2024-06-14"), TODAY)
    assert not is_overdue(_task(dueDate="2024-06-15"), TODAY)
    assert not is_overdue(_task(dueDate="2024-06-14", completed=True), TODAY)
    assert not is_overdue(_task(), TODAY)
    assert not is_overdue(_task(dueDate="someday"), TODAY)


def test_render_task_row() -> None:
    row = render_task(
        _task(priority=2, dueDate="2024-06-01", category="home", tags=["green", "weekly"]),
        today=TODAY,
    )
    assert "[ ]" in row
    assert "HIGH" in row
    assert "due:2024-06-01 OVERDUE" in row
    assert "@home" in row
    assert "#green #weekly" in row

    done = render_task(_task(completed=True, archived=True), today=TODAY)
    assert "[x]" in done
    assert "(archived)" in done
    assert render_task(_task(), deleting=True).startswith("~~ ")


def test_header_and_progress() -> None:
    assert render_header(0, 0) == ["TODO GAME"]
    header = render_header(1, 4)
    assert header[1] == "1 DONE / 4 TOTAL"
    assert header[2].endswith(" 25.0%")
    assert progress_bar(100.0, width=4) == "[####] 100.0%"


def test_empty_list_placeholder() -> None:
    assert render_list([]) == ["NO TODOS", "ADD NEW TODO ABOVE"]


def test_render_app_screen() -> None:
    task = _task(id=3, text="call bank")
    app = SimpleNamespace(
        view=ViewState(filter="active"),
        tasks=[task],
        stats={"total": 1, "completed": 0, "active": 1, "highPriority": 0, "archived": 2},
        error="Failed to load tasks",
        deleting=set(),
        editing=EditSession.open(task),
        completed_count=0,
    )
    screen = render_app(app, today=TODAY)
    assert "ACTIVE 1" in screen
    assert "ARCHIVED 2" in screen
    assert "[!] Failed to load tasks" in screen
    assert "filter=active" in screen
    assert "call bank" in screen
    assert "editing #3" in screen


def test_state_helpers() -> None:
    assert parse_tags(" a, ,b ,") == ["a", "b"]
    view = ViewState(search="milk", priority="0", show_archived=True)
    assert view.to_params() == {
        "sort": "date",
        "search": "milk",
        "priority": "0",
        "archived": "true",
    }
    form = TaskForm(text=" x ", due_date="2024-01-01", tags="t")
    assert form.to_payload() == {
        "text": "x",
        "priority": 1,
        "dueDate": "2024-01-01",
        "category": None,
        "tags": ["t"],
    }
