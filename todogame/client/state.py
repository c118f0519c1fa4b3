from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

FILTERS = ("all", "active", "completed")
SORTS = ("date", "priority", "dueDate", "text")
PRIORITY_LABELS = {0: "LOW", 1: "MEDIUM", 2: "HIGH"}


def parse_tags(raw: str) -> list[str]:
    """Split a comma-separated tag field, dropping blanks."""
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def join_tags(tags: list[str] | None) -> str:
    return ", ".join(tags or [])


@dataclass
class ViewState:
    """Filter, sort and search selections of the list view."""

    filter: str = "all"
    sort: str = "date"
    search: str = ""
    category: str = ""
    priority: str = ""
    show_archived: bool = False

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.filter != "all":
            params["filter"] = self.filter
        if self.sort:
            params["sort"] = self.sort
        if self.search:
            params["search"] = self.search
        if self.category:
            params["category"] = self.category
        if self.priority != "":
            params["priority"] = self.priority
        if self.show_archived:
            params["archived"] = "true"
        return params


@dataclass
class TaskForm:
    """The add-task form: text, priority, due date, category and raw tags."""

    text: str = ""
    priority: int = 1
    due_date: str = ""
    category: str = ""
    tags: str = ""

    def is_submittable(self) -> bool:
        return bool(self.text.strip())

    def to_payload(self) -> dict[str, Any]:
        return {
            "text": self.text.strip(),
            "priority": self.priority,
            "dueDate": self.due_date or None,
            "category": self.category or None,
            "tags": parse_tags(self.tags),
        }

    def reset(self) -> None:
        self.text = ""
        self.priority = 1
        self.due_date = ""
        self.category = ""
        self.tags = ""


@dataclass
class EditSession:
    """Inline edit state for one task row.

    Fields start from the task's current values; ``cancel`` restores them.
    """

    task: dict[str, Any]
    text: str = ""
    priority: int = 1
    due_date: str = ""
    category: str = ""
    tags: str = ""
    _original: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def open(cls, task: dict[str, Any]) -> EditSession:
        session = cls(task=dict(task))
        session._original = {
            "text": str(task.get("text", "")),
            "priority": int(task.get("priority", 1)),
            "due_date": task.get("dueDate") or "",
            "category": task.get("category") or "",
            "tags": join_tags(task.get("tags")),
        }
        session.cancel()
        return session

    @property
    def task_id(self) -> int:
        return int(self.task["id"])

    def cancel(self) -> None:
        for name, value in self._original.items():
            setattr(self, name, value)

    def build_update(self) -> dict[str, Any] | None:
        """Payload to submit, or None when the text is blank or unchanged."""
        text = self.text.strip()
        if not text or self.text == self._original["text"]:
            return None
        return {
            "text": text,
            "priority": self.priority,
            "dueDate": self.due_date or None,
            "category": self.category or None,
            "tags": parse_tags(self.tags),
        }


__all__ = [
    "EditSession",
    "FILTERS",
    "PRIORITY_LABELS",
    "SORTS",
    "TaskForm",
    "ViewState",
    "join_tags",
    "parse_tags",
]
