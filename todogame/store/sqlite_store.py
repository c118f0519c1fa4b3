from __future__ import annotations

import datetime as _dt
import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from todogame.errors import StoreError
from todogame.models.task import Stats, Task, TaskCreate
from todogame.observability import get_json_logger

from .interface import TodoStore
from .query import TaskQuery, batch_changes, search_matches

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS todos (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    text        TEXT NOT NULL,
    completed   INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL
);
"""

# Columns added after the first release; applied additively at startup.
MIGRATIONS: tuple[tuple[str, str], ...] = (
    ("priority", "INTEGER NOT NULL DEFAULT 1"),
    ("due_date", "TEXT"),
    ("category", "TEXT"),
    ("tags", "TEXT NOT NULL DEFAULT '[]'"),
    ("archived", "INTEGER NOT NULL DEFAULT 0"),
)

_COLUMNS = {
    "text": "text",
    "completed": "completed",
    "priority": "priority",
    "due_date": "due_date",
    "category": "category",
    "tags": "tags",
    "archived": "archived",
}

_ORDER_BY = {
    "priority": "priority DESC, created_at DESC, id DESC",
    "dueDate": "due_date IS NULL, due_date ASC, created_at DESC, id DESC",
    "text": "text ASC, created_at DESC, id DESC",
}
_DEFAULT_ORDER = "created_at DESC, id DESC"

# SQLite integers are signed 64-bit; a value outside that range matches no row
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _storable(value: int) -> bool:
    return _INT64_MIN <= value <= _INT64_MAX


def _iso_now() -> str:
    return _dt.datetime.now(_dt.UTC).isoformat(timespec="microseconds")


def _contains_ci(haystack: str | None, needle: str | None) -> int:
    if needle is None:
        return 0
    return 1 if search_matches(needle, haystack) else 0


def _encode_value(name: str, value: Any) -> Any:
    if name == "tags":
        return json.dumps(list(value or []), ensure_ascii=False)
    if name in ("completed", "archived"):
        return 1 if value else 0
    return value


def _decode_tags(raw: Any) -> list[str]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return [str(x) for x in data] if isinstance(data, list) else []


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=int(row["id"]),
        text=str(row["text"]),
        completed=bool(row["completed"]),
        priority=int(row["priority"] if row["priority"] is not None else 1),
        due_date=row["due_date"] or None,
        category=row["category"] or None,
        tags=_decode_tags(row["tags"]),
        archived=bool(row["archived"] or 0),
        created_at=_dt.datetime.fromisoformat(str(row["created_at"]).replace("Z", "+00:00")),
    )


class SqliteTodoStore(TodoStore):
    """Single-table SQLite task store.

    Opens one connection per operation, committing on success. Filtering is
    pushed down to SQL; the case-insensitive search uses a registered Python
    function so it agrees with the other backends on non-ASCII text.
    """

    backend = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._logger = get_json_logger("todogame.store")
        self.init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            if self._db_path.parent and not self._db_path.parent.exists():
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path)
        except (sqlite3.Error, OSError) as exc:
            raise StoreError(str(exc)) from exc
        conn.row_factory = sqlite3.Row
        conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        try:
            yield conn
            conn.commit()
        except (sqlite3.Error, OverflowError) as exc:
            conn.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            existing = {str(r["name"]) for r in conn.execute("PRAGMA table_info(todos)")}
            for name, definition in MIGRATIONS:
                if name in existing:
                    continue
                conn.execute(f"ALTER TABLE todos ADD COLUMN {name} {definition}")
                self._logger.info(
                    "column added",
                    extra={
                        "event": "store_migration",
                        "backend": self.backend,
                        "attributes": {"column": name},
                    },
                )

    def _fetch(self, conn: sqlite3.Connection, task_id: int) -> Task | None:
        row = conn.execute("SELECT * FROM todos WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None

    def list_tasks(self, query: TaskQuery) -> list[Task]:
        if query.priority is not None and not _storable(query.priority):
            return []
        sql = "SELECT * FROM todos WHERE archived = ?"
        params: list[Any] = [1 if query.archived_value else 0]
        completed = query.completed_value
        if completed is not None:
            sql += " AND completed = ?"
            params.append(1 if completed else 0)
        if query.category:
            sql += " AND category = ?"
            params.append(query.category)
        if query.priority is not None:
            sql += " AND priority = ?"
            params.append(query.priority)
        if query.search:
            sql += " AND (contains_ci(text, ?) OR contains_ci(category, ?))"
            params.extend([query.search, query.search])
        sql += " ORDER BY " + _ORDER_BY.get(query.sort or "", _DEFAULT_ORDER)
        with self._connect() as conn:
            return [_row_to_task(r) for r in conn.execute(sql, params).fetchall()]

    def get_task(self, task_id: int) -> Task | None:
        if not _storable(task_id):
            return None
        with self._connect() as conn:
            return self._fetch(conn, task_id)

    def create_task(self, data: TaskCreate) -> Task:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO todos (text, completed, priority, due_date, category, tags,
                                   archived, created_at)
                VALUES (?, 0, ?, ?, ?, ?, 0, ?)
                """,
                (
                    data.text,
                    data.priority,
                    data.due_date,
                    data.category,
                    _encode_value("tags", data.tags),
                    _iso_now(),
                ),
            )
            task = self._fetch(conn, int(cur.lastrowid or 0))
        if task is None:  # pragma: no cover - insert just succeeded
            raise StoreError("created task could not be read back")
        return task

    def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None:
        if not _storable(task_id):
            return None
        assignments: list[str] = []
        params: list[Any] = []
        for name, value in changes.items():
            column = _COLUMNS.get(name)
            if column is None:
                continue
            assignments.append(f"{column} = ?")
            params.append(_encode_value(name, value))
        with self._connect() as conn:
            if assignments:
                cur = conn.execute(
                    f"UPDATE todos SET {', '.join(assignments)} WHERE id = ?",
                    (*params, task_id),
                )
                if cur.rowcount == 0:
                    return None
            return self._fetch(conn, task_id)

    def delete_task(self, task_id: int) -> bool:
        if not _storable(task_id):
            return False
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM todos WHERE id = ?", (task_id,))
            return cur.rowcount > 0

    def stats(self) -> Stats:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                  SUM(CASE WHEN archived = 0 THEN 1 ELSE 0 END) AS total,
                  SUM(CASE WHEN archived = 0 AND completed = 1 THEN 1 ELSE 0 END) AS completed,
                  SUM(CASE WHEN archived = 0 AND completed = 0 THEN 1 ELSE 0 END) AS active,
                  SUM(CASE WHEN archived = 0 AND priority = 2 THEN 1 ELSE 0 END) AS high,
                  SUM(CASE WHEN archived = 1 THEN 1 ELSE 0 END) AS archived
                FROM todos
                """
            ).fetchone()
        return Stats(
            total=int(row["total"] or 0),
            completed=int(row["completed"] or 0),
            active=int(row["active"] or 0),
            high_priority=int(row["high"] or 0),
            archived=int(row["archived"] or 0),
        )

    def categories(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT category FROM todos
                WHERE archived = 0 AND category IS NOT NULL AND category != ''
                ORDER BY {_DEFAULT_ORDER}
                """
            ).fetchall()
        seen: dict[str, None] = {}
        for r in rows:
            seen.setdefault(str(r["category"]), None)
        return list(seen)

    def apply_batch(
        self, action: str, ids: list[int] | None = None, filter: str | None = None
    ) -> int:
        changes = batch_changes(action)
        where = "archived = ?"
        params: list[Any] = [1 if action == "unarchive" else 0]
        if ids:
            ids = [int(i) for i in ids if _storable(int(i))]
            if not ids:
                return 0
            where += " AND id IN (" + ",".join("?" for _ in ids) + ")"
            params.extend(int(i) for i in ids)
        elif filter == "active":
            where += " AND completed = 0"
        elif filter == "completed":
            where += " AND completed = 1"
        with self._connect() as conn:
            if changes is None:
                cur = conn.execute(f"DELETE FROM todos WHERE {where}", params)
            else:
                sets = ", ".join(f"{_COLUMNS[name]} = ?" for name in changes)
                values = [_encode_value(name, v) for name, v in changes.items()]
                cur = conn.execute(f"UPDATE todos SET {sets} WHERE {where}", (*values, *params))
            return int(cur.rowcount)

    def close(self) -> None:
        return None


__all__ = ["SqliteTodoStore", "SCHEMA_SQL", "MIGRATIONS"]
