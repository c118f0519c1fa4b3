from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from todogame.observability import reset_metrics

# ROOT is defined for reference; imports resolve through the installed package
ROOT = Path(__file__).resolve().parents[1]


def _wait_until(timeout_s: float, pause_s: float, check: Callable[[], bool]) -> bool:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        if check():
            return True
        time.sleep(pause_s)
    return False


def _redis_ping(url: str) -> bool:
    try:
        import redis

        r = redis.Redis.from_url(url, socket_connect_timeout=0.5)
        return bool(r.ping())
    except Exception:
        return False


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Provide a reachable Redis URL or skip.

    Priority:
    1) REDIS_URL env if reachable
    2) localhost:6379 if reachable
    """
    env_url = os.getenv("REDIS_URL")
    if env_url and _wait_until(3.0, 0.2, lambda: _redis_ping(env_url)):
        return env_url

    local_url = "redis://localhost:6379/0"
    if _redis_ping(local_url):
        return local_url

    pytest.skip("Redis not available; set REDIS_URL or start local Redis")


@pytest.fixture()
def unique_prefix() -> str:
    # millisecond prefix to avoid collisions
    return f"test:{int(time.time() * 1000)}"


@pytest.fixture(autouse=True)
def _fresh_metrics() -> Generator[None, None, None]:
    reset_metrics()
    yield
    reset_metrics()
