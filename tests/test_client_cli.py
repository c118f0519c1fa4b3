from __future__ import annotations

import io

import pytest
from fastapi.testclient import TestClient

from todogame.client.api import TodoApiClient
from todogame.client.app import TodoApp
from todogame.client.cli import ClientRepl, parse_args
from todogame.gateway.app import create_app
from todogame.store import InMemoryTodoStore


@pytest.fixture()
def shell() -> ClientRepl:
    api = TodoApiClient(client=TestClient(create_app(InMemoryTodoStore())))
    app = TodoApp(api, delete_delay=0)
    app.refresh()
    return ClientRepl(app, io.StringIO())


def _output(shell: ClientRepl) -> str:
    return shell._out.getvalue()  # type: ignore[attr-defined]


def test_add_with_options_and_list(shell: ClientRepl) -> None:
    assert shell.handle('add "pay rent" -p 2 -d 2024-07-01 -c home -t bills,monthly')
    [task] = shell.app.tasks
    assert task["text"] == "pay rent"
    assert task["priority"] == 2
    assert task["dueDate"] == "2024-07-01"
    assert task["category"] == "home"
    assert task["tags"] == ["bills", "monthly"]
    assert "pay rent" in _output(shell)


def test_done_archive_and_remove(shell: ClientRepl) -> None:
    shell.handle("add first")
    shell.handle("add second")
    first, second = sorted(int(t["id"]) for t in shell.app.tasks)

    shell.handle(f"done {first}")
    assert shell.app.find(first)["completed"] is True  # type: ignore[index]

    shell.handle(f"archive {second}")
    shell.handle("list")
    assert [int(t["id"]) for t in shell.app.tasks] == [first]

    shell.handle(f"rm {first}")
    assert shell.app.tasks == []
    assert "~~" in _output(shell)


def test_batch_commands(shell: ClientRepl) -> None:
    shell.handle("add a")
    shell.handle("add b")
    shell.handle("complete-all")
    assert shell.app.completed_count == 2
    shell.handle("archive-done")
    assert shell.app.tasks == []
    shell.handle("archived")
    assert len(shell.app.tasks) == 2


def test_inline_edit_flow(shell: ClientRepl) -> None:
    shell.handle("add draft")
    tid = int(shell.app.tasks[0]["id"])
    shell.handle(f"edit {tid}")
    assert shell.app.editing is not None
    shell.handle("text final text")
    shell.handle("prio 2")
    shell.handle("tags x, y")
    shell.handle("save")
    task = shell.app.find(tid)
    assert task is not None
    assert task["text"] == "final text"
    assert task["priority"] == 2
    assert task["tags"] == ["x", "y"]
    assert shell.app.editing is None


def test_view_commands(shell: ClientRepl) -> None:
    shell.handle("add alpha")
    shell.handle("filter completed")
    assert shell.app.view.filter == "completed"
    assert shell.app.tasks == []
    shell.handle("filter all")
    shell.handle("sort text")
    assert shell.app.view.sort == "text"
    shell.handle("search alp")
    assert [t["text"] for t in shell.app.tasks] == ["alpha"]


def test_bad_input_reports_errors(shell: ClientRepl) -> None:
    assert shell.handle("done abc")
    assert shell.handle("frobnicate")
    assert shell.handle("sort sideways")
    assert shell.handle("add x -p 7")
    out = _output(shell)
    assert "error: expected a task id" in out
    assert "unknown command 'frobnicate'" in out
    assert "sort must be one of" in out
    assert shell.app.tasks == []


def test_quit_and_game_hook(shell: ClientRepl) -> None:
    played: list[bool] = []
    shell._play_game = lambda: played.append(True)
    shell.handle("game")
    assert played == [True]
    assert shell.handle("quit") is False


def test_parse_args_reads_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TODOGAME_BASE_URL", "http://todo.local:9000/api")
    monkeypatch.setenv("TODOGAME_CLIENT_TIMEOUT", "2.5")
    args = parse_args([])
    assert args.base_url == "http://todo.local:9000/api"
    assert args.timeout == 2.5
    assert parse_args(["--base-url", "http://x"]).base_url == "http://x"
