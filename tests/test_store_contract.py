from __future__ import annotations

import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from todogame.models.task import TaskCreate
from todogame.store import InMemoryTodoStore, TaskQuery, TodoStore


def _new(text: str, **kwargs: Any) -> TaskCreate:
    return TaskCreate.model_validate({"text": text, **kwargs})


@pytest.fixture(params=["memory", "sqlite", "redis"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Generator[TodoStore, None, None]:
    backend = request.param
    if backend == "memory":
        s: TodoStore = InMemoryTodoStore()
    elif backend == "sqlite":
        from todogame.store.sqlite_store import SqliteTodoStore

        s = SqliteTodoStore(tmp_path / "todos.db")
    else:
        import redis

        from todogame.store.redis_store import RedisTodoStore

        url = request.getfixturevalue("redis_url")
        prefix = f"testtodo:{uuid.uuid4()}"
        s = RedisTodoStore(url=url, key_prefix=prefix)
        client = redis.Redis.from_url(url)
        yield s
        keys = list(client.scan_iter(match=f"{prefix}:*"))
        if keys:
            client.delete(*keys)
        s.close()
        return
    yield s
    s.close()


def test_create_assigns_increasing_ids_and_defaults(store: TodoStore) -> None:
    a = store.create_task(_new("first"))
    b = store.create_task(_new("second"))
    assert b.id > a.id
    assert a.completed is False
    assert a.priority == 1
    assert a.archived is False
    assert a.tags == []
    fetched = store.get_task(a.id)
    assert fetched is not None
    assert fetched.id == a.id
    assert fetched.text == "first"


def test_create_keeps_optional_fields(store: TodoStore) -> None:
    t = store.create_task(
        _new("pay rent", priority=2, dueDate="2024-07-01", category="home", tags=["money"])
    )
    fetched = store.get_task(t.id)
    assert fetched is not None
    assert fetched.priority == 2
    assert fetched.due_date == "2024-07-01"
    assert fetched.category == "home"
    assert fetched.tags == ["money"]


def test_ids_are_stable_across_reads(store: TodoStore) -> None:
    created = [store.create_task(_new(f"t{i}")).id for i in range(3)]
    first = [t.id for t in store.list_tasks(TaskQuery())]
    second = [t.id for t in store.list_tasks(TaskQuery())]
    assert first == second == list(reversed(created))


def test_unknown_ids(store: TodoStore) -> None:
    assert store.get_task(999) is None
    assert store.update_task(999, {"completed": True}) is None
    assert store.delete_task(999) is False


def test_partial_update_changes_only_supplied_fields(store: TodoStore) -> None:
    t = store.create_task(_new("write report", priority=2, category="work", tags=["q3"]))
    updated = store.update_task(t.id, {"completed": True})
    assert updated is not None
    assert updated.completed is True
    assert updated.text == "write report"
    assert updated.priority == 2
    assert updated.category == "work"
    assert updated.tags == ["q3"]
    assert updated.created_at == t.created_at

    cleared = store.update_task(t.id, {"category": None, "tags": []})
    assert cleared is not None
    assert cleared.category is None
    assert cleared.tags == []
    assert cleared.completed is True


def test_archived_filtering(store: TodoStore) -> None:
    keep = store.create_task(_new("keep"))
    hide = store.create_task(_new("hide"))
    store.update_task(hide.id, {"archived": True})

    assert [t.id for t in store.list_tasks(TaskQuery())] == [keep.id]
    assert [t.id for t in store.list_tasks(TaskQuery(archived=False))] == [keep.id]
    assert [t.id for t in store.list_tasks(TaskQuery(archived=True))] == [hide.id]


def test_list_filters_and_sorts(store: TodoStore) -> None:
    low = store.create_task(_new("Alpha groceries", priority=0, category="Home"))
    high = store.create_task(_new("beta", priority=2, dueDate="2024-02-01"))
    mid = store.create_task(_new("gamma", dueDate="2024-01-15"))
    store.update_task(mid.id, {"completed": True})

    by_prio = store.list_tasks(TaskQuery(sort="priority"))
    assert [t.id for t in by_prio] == [high.id, mid.id, low.id]

    by_due = store.list_tasks(TaskQuery(sort="dueDate"))
    assert [t.id for t in by_due] == [mid.id, high.id, low.id]

    by_text = store.list_tasks(TaskQuery(sort="text"))
    assert [t.text for t in by_text] == ["Alpha groceries", "beta", "gamma"]

    assert [t.id for t in store.list_tasks(TaskQuery(filter="completed"))] == [mid.id]
    assert [t.id for t in store.list_tasks(TaskQuery(filter="active"))] == [high.id, low.id]
    assert [t.id for t in store.list_tasks(TaskQuery(priority=2))] == [high.id]
    assert [t.id for t in store.list_tasks(TaskQuery(category="Home"))] == [low.id]
    assert [t.id for t in store.list_tasks(TaskQuery(search="GROC"))] == [low.id]
    assert [t.id for t in store.list_tasks(TaskQuery(search="home"))] == [low.id]


def test_delete_removes_permanently(store: TodoStore) -> None:
    t = store.create_task(_new("gone"))
    assert store.delete_task(t.id) is True
    assert store.get_task(t.id) is None
    assert store.delete_task(t.id) is False


def test_stats_and_categories(store: TodoStore) -> None:
    a = store.create_task(_new("a", priority=2, category="work"))
    store.create_task(_new("b", category="home"))
    c = store.create_task(_new("c", category="attic"))
    store.update_task(a.id, {"completed": True})
    store.update_task(c.id, {"archived": True})

    stats = store.stats()
    assert stats.total == 2
    assert stats.completed == 1
    assert stats.active == 1
    assert stats.high_priority == 1
    assert stats.archived == 1
    assert store.categories() == ["home", "work"]


def test_batch_delete_completed_removes_exactly_those(store: TodoStore) -> None:
    done = store.create_task(_new("done"))
    open_ = store.create_task(_new("open"))
    archived_done = store.create_task(_new("archived done"))
    store.update_task(done.id, {"completed": True})
    store.update_task(archived_done.id, {"completed": True, "archived": True})

    assert store.apply_batch("delete", filter="completed") == 1
    assert store.get_task(done.id) is None
    assert store.get_task(open_.id) is not None
    assert store.get_task(archived_done.id) is not None


def test_batch_by_ids_and_unarchive(store: TodoStore) -> None:
    a = store.create_task(_new("a"))
    b = store.create_task(_new("b"))
    c = store.create_task(_new("c"))

    assert store.apply_batch("complete", ids=[a.id, c.id]) == 2
    assert {t.id for t in store.list_tasks(TaskQuery(filter="completed"))} == {a.id, c.id}

    assert store.apply_batch("archive") == 3
    assert store.list_tasks(TaskQuery()) == []
    assert store.apply_batch("unarchive", filter="active") == 1
    assert [t.id for t in store.list_tasks(TaskQuery())] == [b.id]
    assert store.apply_batch("uncomplete", ids=[a.id]) == 0


def test_ids_beyond_64_bits_match_nothing(store: TodoStore) -> None:
    huge = 10**20
    kept = store.create_task(_new("keep"))

    assert store.get_task(huge) is None
    assert store.update_task(huge, {"completed": True}) is None
    assert store.delete_task(huge) is False
    assert store.apply_batch("delete", ids=[huge]) == 0
    assert store.apply_batch("complete", ids=[huge, kept.id]) == 1
    assert store.list_tasks(TaskQuery(priority=huge)) == []
    assert [t.id for t in store.list_tasks(TaskQuery())] == [kept.id]
