from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar, cast

import redis

from todogame.errors import StoreError
from todogame.models.task import Stats, Task, TaskCreate

from .interface import TodoStore
from .query import (
    TaskQuery,
    batch_changes,
    compute_stats,
    distinct_categories,
    select_batch_targets,
)

T = TypeVar("T")


class RedisTodoStore(TodoStore):
    """Redis-backed task store.

    Data structures:
    - Hash per task: key `{prefix}:task:{id}` with field `json`
    - Set of live ids: key `{prefix}:ids`
    - Counter for monotonically increasing ids: key `{prefix}:next_id`

    Filtering and ordering run in Python through TaskQuery.
    """

    backend = "redis"

    def __init__(self, *, url: str, key_prefix: str = "todo", client: Any | None = None) -> None:
        self._redis: redis.Redis = client if client is not None else redis.Redis.from_url(url)
        self._prefix = key_prefix.rstrip(":")

    # key helpers
    def _task_key(self, task_id: int) -> str:
        return f"{self._prefix}:task:{task_id}"

    def _ids_key(self) -> str:
        return f"{self._prefix}:ids"

    def _counter_key(self) -> str:
        return f"{self._prefix}:next_id"

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except redis.exceptions.RedisError as exc:
            raise StoreError(str(exc)) from exc

    def _call(self, fn: Callable[[], T]) -> T:
        with self._guard():
            return fn()

    @staticmethod
    def _decode(raw: Any) -> Task | None:
        if raw is None:
            return None
        text = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
        return Task.model_validate(json.loads(text))

    def _save(self, pipe: Any, task: Task) -> None:
        payload = json.dumps(task.model_dump(mode="json"), separators=(",", ":"))
        pipe.hset(self._task_key(task.id), mapping={"json": payload})

    def _load_all(self) -> list[Task]:
        ids_raw = cast(set[bytes], self._redis.smembers(self._ids_key()))
        if not ids_raw:
            return []
        task_ids = sorted(int(b) for b in ids_raw)
        p = self._redis.pipeline()
        for tid in task_ids:
            p.hget(self._task_key(tid), "json")
        result: list[Task] = []
        for raw in p.execute():
            task = self._decode(raw)
            if task is not None:
                result.append(task)
        return result

    def list_tasks(self, query: TaskQuery) -> list[Task]:
        return query.apply(self._call(self._load_all))

    def get_task(self, task_id: int) -> Task | None:
        return self._decode(self._call(lambda: self._redis.hget(self._task_key(task_id), "json")))

    def create_task(self, data: TaskCreate) -> Task:
        with self._guard():
            new_id = int(cast(int, self._redis.incr(self._counter_key())))
            task = Task(
                id=new_id,
                text=data.text or "",
                priority=data.priority,
                due_date=data.due_date,
                category=data.category,
                tags=list(data.tags),
            )
            p = self._redis.pipeline()
            self._save(p, task)
            p.sadd(self._ids_key(), str(task.id))
            p.execute()
        return task

    def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None:
        with self._guard():
            current = self.get_task(task_id)
            if current is None:
                return None
            for name, value in changes.items():
                setattr(current, name, value)
            p = self._redis.pipeline()
            self._save(p, current)
            p.execute()
        return current

    def delete_task(self, task_id: int) -> bool:
        with self._guard():
            p = self._redis.pipeline()
            p.delete(self._task_key(task_id))
            p.srem(self._ids_key(), str(task_id))
            res = p.execute()
        return bool(sum(int(x) for x in res))

    def stats(self) -> Stats:
        return compute_stats(self._call(self._load_all))

    def categories(self) -> list[str]:
        return distinct_categories(self._call(self._load_all))

    def apply_batch(
        self, action: str, ids: list[int] | None = None, filter: str | None = None
    ) -> int:
        changes = batch_changes(action)
        with self._guard():
            targets = select_batch_targets(self._load_all(), action, ids, filter)
            if not targets:
                return 0
            p = self._redis.pipeline()
            for t in targets:
                if changes is None:
                    p.delete(self._task_key(t.id))
                    p.srem(self._ids_key(), str(t.id))
                    continue
                for name, value in changes.items():
                    setattr(t, name, value)
                self._save(p, t)
            p.execute()
        return len(targets)

    def close(self) -> None:
        with self._guard():
            self._redis.close()


__all__ = ["RedisTodoStore"]
