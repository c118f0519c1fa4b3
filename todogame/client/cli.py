from __future__ import annotations

import argparse
import os
import shlex
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import TextIO

from .api import TodoApiClient
from .app import TodoApp
from .render import render_app

HELP = """\
list                         refresh and show tasks
filter all|active|completed  completion filter
sort date|priority|dueDate|text
search [text]                search text and category (empty clears)
category [name]              category filter (empty clears)
priority [0|1|2]             priority filter (empty clears)
archived                     toggle archived view
add TEXT [-p N] [-d DATE] [-c CATEGORY] [-t tag1,tag2]
done ID                      toggle completion
archive ID                   toggle archived
rm ID                        delete
edit ID                      inline edit: text|prio|due|cat|tags VALUE, then save or cancel
complete-all | clear-done | archive-done
game                         play the minigame
help | quit"""

EDIT_FIELDS = {
    "text": "text",
    "prio": "priority",
    "due": "due_date",
    "cat": "category",
    "tags": "tags",
}


@dataclass
class ClientConfig:
    base_url: str
    timeout: float = 10.0
    delete_delay: float = 0.3


class _ArgumentError(ValueError):
    pass


class _LineParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise _ArgumentError(message)


def _add_parser() -> _LineParser:
    p = _LineParser(prog="add", add_help=False)
    p.add_argument("text", nargs="+")
    p.add_argument("-p", "--priority", type=int, choices=[0, 1, 2], default=1)
    p.add_argument("-d", "--due", default="")
    p.add_argument("-c", "--category", default="")
    p.add_argument("-t", "--tags", default="")
    return p


class ClientRepl:
    """Line-oriented front end over TodoApp."""

    def __init__(
        self,
        app: TodoApp,
        out: TextIO | None = None,
        *,
        play_game: Callable[[], object] | None = None,
    ) -> None:
        self.app = app
        self._out = out or sys.stdout
        self._play_game = play_game
        # Redraw while a row shows its deleting transition
        app.on_change = self.show

    def _println(self, text: str = "") -> None:
        self._out.write(text + "\n")
        self._out.flush()

    def show(self) -> None:
        self._println(render_app(self.app))

    @staticmethod
    def _task_id(args: list[str]) -> int:
        if len(args) != 1 or not args[0].isdigit():
            raise _ArgumentError("expected a task id")
        return int(args[0])

    def _handle_edit(self, cmd: str, rest: str) -> bool:
        session = self.app.editing
        if session is None:
            return False
        if cmd == "save":
            self.app.save_edit()
        elif cmd == "cancel":
            self.app.cancel_edit()
        elif cmd in EDIT_FIELDS:
            name = EDIT_FIELDS[cmd]
            if name == "priority":
                if rest.strip() not in ("0", "1", "2"):
                    raise _ArgumentError("priority must be 0, 1 or 2")
                session.priority = int(rest.strip())
            else:
                setattr(session, name, rest)
        else:
            return False
        self.show()
        return True

    def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the user quits."""
        stripped = line.strip()
        if not stripped:
            return True
        cmd, _, rest = stripped.partition(" ")
        cmd = cmd.lower()
        if cmd in {"quit", "exit", "/quit"}:
            return False
        try:
            if self._handle_edit(cmd, rest):
                return True
            self._dispatch(cmd, rest)
        except ValueError as exc:
            self._println(f"error: {exc}")
        return True

    def _dispatch(self, cmd: str, rest: str) -> None:
        app = self.app
        args = shlex.split(rest) if rest else []
        if cmd == "help":
            self._println(HELP)
            return
        if cmd == "game":
            if self._play_game is not None:
                self._play_game()
            self.show()
            return
        if cmd in {"list", "ls"}:
            app.refresh()
        elif cmd == "filter":
            app.set_filter(args[0] if args else "all")
        elif cmd == "sort":
            app.set_sort(args[0] if args else "date")
        elif cmd == "search":
            app.set_search(rest.strip())
        elif cmd == "category":
            app.set_category(rest.strip())
        elif cmd == "priority":
            app.set_priority(args[0] if args else "")
        elif cmd == "archived":
            app.toggle_archived()
        elif cmd == "add":
            ns = _add_parser().parse_args(args)
            app.form.text = " ".join(ns.text)
            app.form.priority = ns.priority
            app.form.due_date = ns.due
            app.form.category = ns.category
            app.form.tags = ns.tags
            app.add_task()
        elif cmd == "done":
            app.toggle_task(self._task_id(args))
        elif cmd == "archive":
            app.toggle_archive(self._task_id(args))
        elif cmd == "rm":
            app.delete_task(self._task_id(args))
        elif cmd == "edit":
            if app.begin_edit(self._task_id(args)) is None:
                raise _ArgumentError("no such task in the current view")
        elif cmd == "complete-all":
            app.batch("complete", "active")
        elif cmd == "clear-done":
            app.batch("delete", "completed")
        elif cmd == "archive-done":
            app.batch("archive", "completed")
        else:
            raise _ArgumentError(f"unknown command {cmd!r}; try help")
        self.show()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser("todogame client")
    p.add_argument(
        "--base-url",
        default=os.getenv("TODOGAME_BASE_URL", "http://localhost:8000"),
        help="API base URL including any prefix (e.g., http://localhost:8000/api)",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=float(os.getenv("TODOGAME_CLIENT_TIMEOUT", "10")),
        help="HTTP timeout in seconds (default 10)",
    )
    return p.parse_args(argv)


def repl(cfg: ClientConfig, stdin: TextIO | None = None, out: TextIO | None = None) -> None:
    from todogame.game.cli import run_game

    api = TodoApiClient(cfg.base_url, timeout=cfg.timeout)
    app = TodoApp(api, delete_delay=cfg.delete_delay)
    shell = ClientRepl(app, out, play_game=lambda: run_game(stdin, out))
    app.refresh()
    shell.show()
    shell._println("Type 'help' for commands.")
    try:
        for line in stdin or sys.stdin:
            if not shell.handle(line.rstrip("\n")):
                break
    finally:
        api.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    repl(ClientConfig(base_url=str(args.base_url), timeout=float(args.timeout)))


if __name__ == "__main__":
    main()
