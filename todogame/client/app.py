from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from todogame.observability import get_json_logger

from .api import ApiError, TodoApiClient
from .state import FILTERS, SORTS, EditSession, TaskForm, ViewState

MSG_LOAD_FAILED = "Failed to load tasks"
MSG_ADD_FAILED = "Failed to add task"
MSG_UPDATE_FAILED = "Failed to update task"
MSG_DELETE_FAILED = "Failed to delete task"
MSG_BATCH_FAILED = "Batch operation failed"

EMPTY_STATS = {"total": 0, "completed": 0, "active": 0, "highPriority": 0, "archived": 0}


class TodoApp:
    """Client-side controller holding the list, view state and form state.

    Every view-state change re-fetches tasks, stats and categories. Mutations
    update the local list after the API call succeeds and refresh the stats.
    Failures set ``error`` to a generic banner and log the details; nothing is
    retried automatically.
    """

    def __init__(
        self,
        api: TodoApiClient,
        *,
        delete_delay: float = 0.3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api = api
        self.view = ViewState()
        self.form = TaskForm()
        self.tasks: list[dict[str, Any]] = []
        self.stats: dict[str, int] = dict(EMPTY_STATS)
        self.categories: list[str] = []
        self.error: str | None = None
        self.editing: EditSession | None = None
        self.deleting: set[int] = set()
        self.on_change: Callable[[], None] | None = None
        self._delete_delay = delete_delay
        self._sleep = sleep
        self._logger = get_json_logger("todogame.client")

    # ----------------------------
    # Helpers
    # ----------------------------
    def _fail(self, banner: str, operation: str, exc: ApiError) -> None:
        self.error = banner
        self._logger.error(
            "api call failed",
            extra={
                "event": "client_error",
                "service": "client",
                "status": exc.status,
                "attributes": {"operation": operation, "error": exc.message[:200]},
            },
        )

    def find(self, task_id: int) -> dict[str, Any] | None:
        for t in self.tasks:
            if int(t["id"]) == task_id:
                return t
        return None

    def _replace(self, task: dict[str, Any]) -> None:
        self.tasks = [task if int(t["id"]) == int(task["id"]) else t for t in self.tasks]

    def _refresh_stats(self) -> None:
        try:
            self.stats = self.api.stats()
        except ApiError as exc:
            self._fail(self.error or MSG_LOAD_FAILED, "stats", exc)

    def _refresh_categories(self) -> None:
        try:
            self.categories = self.api.categories()
        except ApiError as exc:
            self._fail(self.error or MSG_LOAD_FAILED, "categories", exc)

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.tasks if t.get("completed"))

    @property
    def progress(self) -> float:
        total = len(self.tasks)
        return (self.completed_count / total) * 100.0 if total else 0.0

    # ----------------------------
    # Fetching
    # ----------------------------
    def refresh(self) -> bool:
        self.error = None
        try:
            self.tasks = self.api.list_tasks(self.view.to_params())
        except ApiError as exc:
            self._fail(MSG_LOAD_FAILED, "list", exc)
            return False
        self._refresh_stats()
        self._refresh_categories()
        return True

    # ----------------------------
    # View-state changes (each one re-fetches)
    # ----------------------------
    def set_filter(self, value: str) -> bool:
        if value not in FILTERS:
            raise ValueError(f"filter must be one of {', '.join(FILTERS)}")
        self.view.filter = value
        return self.refresh()

    def set_sort(self, value: str) -> bool:
        if value not in SORTS:
            raise ValueError(f"sort must be one of {', '.join(SORTS)}")
        self.view.sort = value
        return self.refresh()

    def set_search(self, value: str) -> bool:
        self.view.search = value
        return self.refresh()

    def set_category(self, value: str) -> bool:
        self.view.category = value
        return self.refresh()

    def set_priority(self, value: str) -> bool:
        if value not in ("", "0", "1", "2"):
            raise ValueError("priority must be 0, 1, 2 or empty")
        self.view.priority = value
        return self.refresh()

    def toggle_archived(self) -> bool:
        self.view.show_archived = not self.view.show_archived
        return self.refresh()

    # ----------------------------
    # Mutations
    # ----------------------------
    def add_task(self) -> dict[str, Any] | None:
        if not self.form.is_submittable():
            return None
        self.error = None
        try:
            created = self.api.create_task(self.form.to_payload())
        except ApiError as exc:
            self._fail(MSG_ADD_FAILED, "create", exc)
            return None
        self.tasks = [created, *self.tasks]
        self.form.reset()
        self._refresh_stats()
        self._refresh_categories()
        return created

    def update_task(self, task_id: int, changes: dict[str, Any]) -> dict[str, Any] | None:
        self.error = None
        try:
            updated = self.api.update_task(task_id, changes)
        except ApiError as exc:
            self._fail(MSG_UPDATE_FAILED, "update", exc)
            return None
        self._replace(updated)
        self._refresh_stats()
        return updated

    def toggle_task(self, task_id: int) -> dict[str, Any] | None:
        current = self.find(task_id)
        completed = bool(current.get("completed")) if current else False
        return self.update_task(task_id, {"completed": not completed})

    def toggle_archive(self, task_id: int) -> dict[str, Any] | None:
        current = self.find(task_id)
        archived = bool(current.get("archived")) if current else False
        return self.update_task(task_id, {"archived": not archived})

    def delete_task(self, task_id: int) -> bool:
        # Brief visual transition: the row renders as "deleting" before removal
        self.deleting.add(task_id)
        if self.on_change is not None:
            self.on_change()
        try:
            if self._delete_delay > 0:
                self._sleep(self._delete_delay)
            self.error = None
            try:
                self.api.delete_task(task_id)
            except ApiError as exc:
                self._fail(MSG_DELETE_FAILED, "delete", exc)
                return False
        finally:
            self.deleting.discard(task_id)
        self.tasks = [t for t in self.tasks if int(t["id"]) != task_id]
        if self.editing is not None and self.editing.task_id == task_id:
            self.editing = None
        self._refresh_stats()
        return True

    def batch(self, action: str, filter: str | None = None) -> bool:
        self.error = None
        try:
            self.api.batch(action, filter=filter)
        except ApiError as exc:
            self._fail(MSG_BATCH_FAILED, "batch", exc)
            return False
        return self.refresh()

    # ----------------------------
    # Inline editing
    # ----------------------------
    def begin_edit(self, task_id: int) -> EditSession | None:
        task = self.find(task_id)
        if task is None:
            return None
        self.editing = EditSession.open(task)
        return self.editing

    def cancel_edit(self) -> None:
        if self.editing is not None:
            self.editing.cancel()
        self.editing = None

    def save_edit(self) -> dict[str, Any] | None:
        """Submit the open edit session; unchanged or blank text submits nothing."""
        session = self.editing
        if session is None:
            return None
        self.editing = None
        payload = session.build_update()
        if payload is None:
            return None
        return self.update_task(session.task_id, payload)


__all__ = [
    "MSG_ADD_FAILED",
    "MSG_BATCH_FAILED",
    "MSG_DELETE_FAILED",
    "MSG_LOAD_FAILED",
    "MSG_UPDATE_FAILED",
    "TodoApp",
]
