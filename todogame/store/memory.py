from __future__ import annotations

import threading
from typing import Any

from todogame.models.task import Stats, Task, TaskCreate

from .interface import TodoStore
from .query import (
    TaskQuery,
    batch_changes,
    compute_stats,
    distinct_categories,
    select_batch_targets,
)


class InMemoryTodoStore(TodoStore):
    """Process-local task store.

    - Rows live in a list owned by this instance; nothing is module-global
    - Ids come from a per-instance counter starting at 1
    - An RLock serializes mutations from concurrent requests
    """

    backend = "memory"

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self._next_id = 1
        self._lock = threading.RLock()

    def _find(self, task_id: int) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def list_tasks(self, query: TaskQuery) -> list[Task]:
        with self._lock:
            return [t.model_copy(deep=True) for t in query.apply(self._tasks)]

    def get_task(self, task_id: int) -> Task | None:
        with self._lock:
            t = self._find(task_id)
            return t.model_copy(deep=True) if t is not None else None

    def create_task(self, data: TaskCreate) -> Task:
        with self._lock:
            task = Task(
                id=self._next_id,
                text=data.text or "",
                priority=data.priority,
                due_date=data.due_date,
                category=data.category,
                tags=list(data.tags),
            )
            self._next_id += 1
            self._tasks.append(task)
            return task.model_copy(deep=True)

    def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None:
        with self._lock:
            current = self._find(task_id)
            if current is None:
                return None
            for name, value in changes.items():
                setattr(current, name, list(value) if name == "tags" else value)
            return current.model_copy(deep=True)

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            before = len(self._tasks)
            self._tasks = [t for t in self._tasks if t.id != task_id]
            return len(self._tasks) < before

    def stats(self) -> Stats:
        with self._lock:
            return compute_stats(self._tasks)

    def categories(self) -> list[str]:
        with self._lock:
            return distinct_categories(self._tasks)

    def apply_batch(
        self, action: str, ids: list[int] | None = None, filter: str | None = None
    ) -> int:
        changes = batch_changes(action)
        with self._lock:
            targets = select_batch_targets(self._tasks, action, ids, filter)
            if changes is None:
                doomed = {t.id for t in targets}
                self._tasks = [t for t in self._tasks if t.id not in doomed]
            else:
                for t in targets:
                    for name, value in changes.items():
                        setattr(t, name, value)
            return len(targets)

    def close(self) -> None:
        return None


__all__ = ["InMemoryTodoStore"]
