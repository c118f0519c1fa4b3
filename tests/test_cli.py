from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import uvicorn

from todogame import cli


class _FakeServer:
    instances: list[_FakeServer] = []

    def __init__(self, config: uvicorn.Config) -> None:
        self.config = config
        self.ran = False
        _FakeServer.instances.append(self)

    def run(self) -> None:
        self.ran = True


def test_serve_builds_app_from_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(uvicorn, "Server", _FakeServer)
    monkeypatch.setenv("TODO_API_PREFIX", "/api")
    db = tmp_path / "serve.db"

    with pytest.raises(SystemExit) as exit_info:
        cli.main(["serve", "--store", "sqlite", "--db-path", str(db), "--port", "9123"])

    assert exit_info.value.code == 0
    server = _FakeServer.instances[-1]
    assert server.ran is True
    assert server.config.port == 9123
    assert db.exists()
    paths = {getattr(r, "path", "") for r in server.config.app.routes}
    assert "/api/todos" in paths
    assert "/health" in paths


def test_client_passes_arguments_through(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[Any] = []
    monkeypatch.setattr("todogame.client.cli.main", lambda argv=None: seen.append(argv))
    cli.main(["client", "--base-url", "http://x:1"])
    assert seen == [["--base-url", "http://x:1"]]


def test_game_command(monkeypatch: pytest.MonkeyPatch, capsys: Any) -> None:
    monkeypatch.setattr("todogame.game.cli.run_game", lambda: 7)
    with pytest.raises(SystemExit):
        cli.main(["game"])
    assert "final score: 7" in capsys.readouterr().out


def test_no_command_prints_help(capsys: Any) -> None:
    cli.main([])
    assert "serve" in capsys.readouterr().out
