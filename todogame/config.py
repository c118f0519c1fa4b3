from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

STORE_BACKENDS = ("memory", "sqlite", "redis")


@dataclass(slots=True)
class ServiceConfig:
    store_backend: str
    db_path: str
    redis_url: str
    key_prefix: str
    host: str
    port: int
    api_prefix: str


def _read_backend(raw: str | None) -> str:
    value = (raw or "").strip().lower() or "memory"
    if value not in STORE_BACKENDS:
        raise ValueError(f"TODO_STORE must be one of {', '.join(STORE_BACKENDS)}; got {raw!r}")
    return value


def _read_port(raw: str | None, default: int = 8000) -> int:
    try:
        return int((raw or "").strip()) if (raw or "").strip() else default
    except Exception:
        return default


def _read_prefix(raw: str | None) -> str:
    value = (raw or "").strip().rstrip("/")
    if value and not value.startswith("/"):
        value = "/" + value
    return value


def load_config(env: dict[str, str] | None = None) -> ServiceConfig:
    e: dict[str, Any] = dict(os.environ)
    if env:
        e.update(env)
    return ServiceConfig(
        store_backend=_read_backend(e.get("TODO_STORE")),
        db_path=e.get("TODO_DB_PATH") or "todos.db",
        redis_url=e.get("REDIS_URL") or "redis://localhost:6379/0",
        key_prefix=(e.get("TODO_STORE_PREFIX") or "todo").rstrip(":"),
        host=e.get("GATEWAY_HOST") or "0.0.0.0",
        port=_read_port(e.get("GATEWAY_PORT")),
        api_prefix=_read_prefix(e.get("TODO_API_PREFIX")),
    )


__all__ = ["STORE_BACKENDS", "ServiceConfig", "load_config"]
