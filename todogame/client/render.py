from __future__ import annotations

import datetime as _dt
from typing import Any

from .state import PRIORITY_LABELS

SHORT_PRIORITY = {0: "LOW", 1: "MED", 2: "HIGH"}


def is_overdue(task: dict[str, Any], today: _dt.date | None = None) -> bool:
    due = task.get("dueDate")
    if not due or task.get("completed"):
        return False
    try:
        due_date = _dt.date.fromisoformat(str(due)[:10])
    except ValueError:
        return False
    return due_date < (today or _dt.date.today())


def progress_bar(percent: float, width: int = 30) -> str:
    filled = int(round(max(0.0, min(100.0, percent)) / 100.0 * width))
    return "[" + "#" * filled + "." * (width - filled) + f"] {percent:5.1f}%"


def render_header(done: int, total: int) -> list[str]:
    lines = ["TODO GAME"]
    if total > 0:
        lines.append(f"{done} DONE / {total} TOTAL")
        lines.append(progress_bar(done / total * 100.0))
    return lines


def render_stats(stats: dict[str, int]) -> str:
    return (
        f"ACTIVE {stats.get('active', 0)}  "
        f"HIGH {stats.get('highPriority', 0)}  "
        f"ARCHIVED {stats.get('archived', 0)}"
    )


def render_error(error: str | None) -> list[str]:
    return [f"[!] {error}"] if error else []


def render_task(
    task: dict[str, Any],
    *,
    deleting: bool = False,
    today: _dt.date | None = None,
) -> str:
    box = "[x]" if task.get("completed") else "[ ]"
    prio = SHORT_PRIORITY.get(int(task.get("priority", 1)), "LOW")
    parts = [f"{int(task['id']):>4}", box, f"{prio:<4}", str(task.get("text", ""))]
    due = task.get("dueDate")
    if due:
        parts.append(f"due:{due}" + (" OVERDUE" if is_overdue(task, today) else ""))
    if task.get("category"):
        parts.append(f"@{task['category']}")
    tags = task.get("tags") or []
    if tags:
        parts.append(" ".join(f"#{t}" for t in tags))
    if task.get("archived"):
        parts.append("(archived)")
    line = " ".join(parts)
    if deleting:
        line = f"~~ {line} ~~"
    return line


def render_list(
    tasks: list[dict[str, Any]],
    *,
    deleting: set[int] | None = None,
    today: _dt.date | None = None,
) -> list[str]:
    if not tasks:
        return ["NO TODOS", "ADD NEW TODO ABOVE"]
    doomed = deleting or set()
    return [render_task(t, deleting=int(t["id"]) in doomed, today=today) for t in tasks]


def render_edit(session: Any) -> list[str]:
    return [
        f"editing #{session.task_id}",
        f"  text:     {session.text}",
        f"  priority: {PRIORITY_LABELS.get(session.priority, session.priority)}",
        f"  due:      {session.due_date or '-'}",
        f"  category: {session.category or '-'}",
        f"  tags:     {session.tags or '-'}",
    ]


def render_app(app: Any, today: _dt.date | None = None) -> str:
    """Full screen for a TodoApp: header, stats, banner, filters and rows."""
    view = app.view
    lines = render_header(app.completed_count, len(app.tasks))
    lines.append(render_stats(app.stats))
    lines.extend(render_error(app.error))
    lines.append(
        f"filter={view.filter} sort={view.sort} search={view.search or '-'} "
        f"category={view.category or 'all'} priority={view.priority or 'all'} "
        f"archived={'shown' if view.show_archived else 'hidden'}"
    )
    lines.append("-" * 60)
    lines.extend(render_list(app.tasks, deleting=app.deleting, today=today))
    if app.editing is not None:
        lines.append("-" * 60)
        lines.extend(render_edit(app.editing))
    return "\n".join(lines)


__all__ = [
    "is_overdue",
    "progress_bar",
    "render_app",
    "render_edit",
    "render_error",
    "render_header",
    "render_list",
    "render_stats",
    "render_task",
]
