from __future__ import annotations

import datetime as _dt
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PRIORITY_LOW = 0
PRIORITY_MEDIUM = 1
PRIORITY_HIGH = 2
PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)

BATCH_ACTIONS = ("complete", "uncomplete", "delete", "archive", "unarchive")
BATCH_FILTERS = ("active", "completed")

UPDATABLE_FIELDS = (
    "text",
    "completed",
    "priority",
    "due_date",
    "category",
    "tags",
    "archived",
)


# ----------------------------
# Normalizers shared by the request models
# ----------------------------
def _encodable(value: str) -> str:
    # Lone surrogates are valid JSON escapes but cannot be stored or sent back
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("strings must be valid UTF-8") from None
    return value


def normalize_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("text is required")
    return _encodable(value.strip())


def normalize_priority(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("priority must be 0, 1 or 2")
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError("priority must be 0, 1 or 2") from None
    if parsed not in PRIORITIES:
        raise ValueError("priority must be 0, 1 or 2")
    return parsed


def normalize_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = _encodable(str(value).strip())
    return text or None


def normalize_tags(value: Any) -> list[str]:
    if not isinstance(value, list | tuple):
        return []
    tags: list[str] = []
    for item in value:
        if item is None:
            continue
        tag = _encodable(str(item).strip())
        if tag:
            tags.append(tag)
    return tags


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Task(_CamelModel):
    """A single to-do record.

    JSON uses camelCase names (``dueDate``, ``createdAt``); Python code uses the
    snake_case attributes.
    """

    id: int
    text: str
    completed: bool = False
    priority: int = PRIORITY_MEDIUM
    due_date: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    archived: bool = False
    created_at: _dt.datetime = Field(default_factory=lambda: _dt.datetime.now(_dt.UTC))

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TaskCreate(_CamelModel):
    text: str | None = Field(default=None, validate_default=True)
    priority: int = PRIORITY_MEDIUM
    due_date: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return normalize_text(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> int:
        if v is None:
            return PRIORITY_MEDIUM
        return normalize_priority(v)

    @field_validator("due_date", "category", mode="before")
    @classmethod
    def _optional_str(cls, v: Any) -> str | None:
        return normalize_optional_str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str]:
        return normalize_tags(v)


class TaskUpdate(_CamelModel):
    """Partial update: only fields present in the request body are applied.

    Explicit nulls are meaningful: ``dueDate``/``category`` clear the value,
    ``tags`` becomes empty and ``completed``/``archived`` become false.
    """

    text: str | None = None
    completed: bool | None = None
    priority: int | None = None
    due_date: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    archived: bool | None = None

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return normalize_text(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> int:
        return normalize_priority(v)

    @field_validator("completed", "archived", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("due_date", "category", mode="before")
    @classmethod
    def _optional_str(cls, v: Any) -> str | None:
        return normalize_optional_str(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> list[str]:
        return normalize_tags(v)

    def changes(self) -> dict[str, Any]:
        """Return only the supplied fields, keyed by attribute name."""
        supplied = self.model_fields_set
        return {name: getattr(self, name) for name in UPDATABLE_FIELDS if name in supplied}


class BatchRequest(_CamelModel):
    action: str | None = Field(default=None, validate_default=True)
    ids: list[int] | None = None
    filter: str | None = None

    @field_validator("action", mode="before")
    @classmethod
    def _action(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("action is required")
        if v not in BATCH_ACTIONS:
            raise ValueError(f"invalid action: {v}")
        return str(v)

    @field_validator("filter", mode="before")
    @classmethod
    def _filter(cls, v: Any) -> str | None:
        if v is None or v == "" or v == "all":
            return None
        if v not in BATCH_FILTERS:
            raise ValueError(f"invalid filter: {v}")
        return str(v)


class Stats(_CamelModel):
    total: int = 0
    completed: int = 0
    active: int = 0
    high_priority: int = 0
    archived: int = 0

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "BATCH_ACTIONS",
    "BATCH_FILTERS",
    "BatchRequest",
    "PRIORITIES",
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_MEDIUM",
    "Stats",
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "UPDATABLE_FIELDS",
    "normalize_optional_str",
    "normalize_priority",
    "normalize_tags",
    "normalize_text",
]
