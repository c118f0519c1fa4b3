from __future__ import annotations

from typing import Any, Protocol

from todogame.models.task import Stats, Task, TaskCreate

from .query import TaskQuery


class TodoStore(Protocol):
    """Pluggable task store interface.

    Every backend honours the same contract so the API can swap them at startup
    without any behavior change visible to clients.
    """

    backend: str

    def list_tasks(self, query: TaskQuery) -> list[Task]:
        """Tasks matching all predicates of ``query`` in its order."""

    def get_task(self, task_id: int) -> Task | None:
        """Return one task or None when the id is unknown."""

    def create_task(self, data: TaskCreate) -> Task:
        """Persist a new task with a fresh id and creation timestamp."""

    def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None:
        """Apply only the supplied fields. Returns None when the id is unknown."""

    def delete_task(self, task_id: int) -> bool:
        """Remove a task permanently. Returns False when the id is unknown."""

    def stats(self) -> Stats:
        """Counts over non-archived tasks plus the archived count."""

    def categories(self) -> list[str]:
        """Distinct non-empty categories among non-archived tasks."""

    def apply_batch(
        self, action: str, ids: list[int] | None = None, filter: str | None = None
    ) -> int:
        """Apply a batch action to the selected tasks. Returns the affected count."""

    def close(self) -> None:
        """Release backend resources."""


__all__ = ["TodoStore"]
