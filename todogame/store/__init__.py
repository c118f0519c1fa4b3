from __future__ import annotations

from todogame.config import ServiceConfig

from .interface import TodoStore
from .memory import InMemoryTodoStore
from .query import TaskQuery


def build_store(cfg: ServiceConfig) -> TodoStore:
    """Create the backend named by ``cfg.store_backend``."""
    if cfg.store_backend == "sqlite":
        from .sqlite_store import SqliteTodoStore

        return SqliteTodoStore(cfg.db_path)
    if cfg.store_backend == "redis":
        # Defer import so memory/sqlite deployments never touch redis
        from .redis_store import RedisTodoStore

        return RedisTodoStore(url=cfg.redis_url, key_prefix=cfg.key_prefix)
    return InMemoryTodoStore()


__all__ = ["InMemoryTodoStore", "TaskQuery", "TodoStore", "build_store"]
