from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from todogame.models.task import PRIORITY_HIGH, Stats, Task

SORT_KEYS = ("date", "priority", "dueDate", "text")


@dataclass(slots=True)
class TaskQuery:
    """Conjunctive list predicates plus an ordering key.

    - archived: None selects non-archived tasks only (the default view)
    - filter: "active" / "completed"; any other value adds no predicate
    - search: case-insensitive substring over text and category
    """

    filter: str | None = None
    sort: str | None = None
    search: str | None = None
    category: str | None = None
    priority: int | None = None
    archived: bool | None = None

    @property
    def archived_value(self) -> bool:
        return bool(self.archived)

    @property
    def completed_value(self) -> bool | None:
        if self.filter == "active":
            return False
        if self.filter == "completed":
            return True
        return None

    def matches(self, task: Task) -> bool:
        if task.archived != self.archived_value:
            return False
        completed = self.completed_value
        if completed is not None and task.completed != completed:
            return False
        if self.category and task.category != self.category:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.search and not search_matches(self.search, task.text, task.category):
            return False
        return True

    def apply(self, tasks: Iterable[Task]) -> list[Task]:
        return sort_tasks([t for t in tasks if self.matches(t)], self.sort)


def search_matches(needle: str, *haystacks: str | None) -> bool:
    n = needle.casefold()
    return any(h is not None and n in h.casefold() for h in haystacks)


def _newest_first(task: Task) -> tuple[float, int]:
    return (-task.created_at.timestamp(), -task.id)


def sort_tasks(tasks: list[Task], sort: str | None) -> list[Task]:
    """Order tasks for a listing.

    Remaining ties always fall back to newest first (created_at, then id).
    """
    if sort == "priority":
        return sorted(tasks, key=lambda t: (-t.priority, *_newest_first(t)))
    if sort == "dueDate":
        dated = sorted(
            (t for t in tasks if t.due_date),
            key=lambda t: (t.due_date or "", *_newest_first(t)),
        )
        undated = sorted((t for t in tasks if not t.due_date), key=_newest_first)
        return dated + undated
    if sort == "text":
        return sorted(tasks, key=lambda t: (t.text, *_newest_first(t)))
    return sorted(tasks, key=_newest_first)


def select_batch_targets(
    tasks: Iterable[Task],
    action: str,
    ids: list[int] | None = None,
    filter: str | None = None,
) -> list[Task]:
    """Pick the tasks a batch action applies to.

    The base set is non-archived tasks, or archived tasks for ``unarchive``.
    A non-empty ``ids`` list wins over ``filter``.
    """
    want_archived = action == "unarchive"
    base = [t for t in tasks if t.archived == want_archived]
    if ids:
        wanted = set(ids)
        return [t for t in base if t.id in wanted]
    if filter == "active":
        return [t for t in base if not t.completed]
    if filter == "completed":
        return [t for t in base if t.completed]
    return base


def batch_changes(action: str) -> dict[str, Any] | None:
    """Field changes for an update-style batch action; None means delete."""
    if action == "complete":
        return {"completed": True}
    if action == "uncomplete":
        return {"completed": False}
    if action == "archive":
        return {"archived": True}
    if action == "unarchive":
        return {"archived": False}
    if action == "delete":
        return None
    raise ValueError(f"invalid action: {action}")


def distinct_categories(tasks: Iterable[Task]) -> list[str]:
    """Distinct non-empty categories of non-archived tasks, newest task first."""
    seen: dict[str, None] = {}
    for t in sort_tasks([t for t in tasks if not t.archived], None):
        if t.category:
            seen.setdefault(t.category, None)
    return list(seen)


def compute_stats(tasks: Iterable[Task]) -> Stats:
    items = list(tasks)
    live = [t for t in items if not t.archived]
    return Stats(
        total=len(live),
        completed=sum(1 for t in live if t.completed),
        active=sum(1 for t in live if not t.completed),
        high_priority=sum(1 for t in live if t.priority == PRIORITY_HIGH),
        archived=sum(1 for t in items if t.archived),
    )


__all__ = [
    "SORT_KEYS",
    "TaskQuery",
    "batch_changes",
    "compute_stats",
    "distinct_categories",
    "search_matches",
    "select_batch_targets",
    "sort_tasks",
]
