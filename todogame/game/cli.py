from __future__ import annotations

import sys
import threading
from typing import TextIO

from .engine import MiniGame
from .render import render_frame
from .scheduler import TickScheduler

CLEAR = "\x1b[H\x1b[2J"


class GameScreen:
    """Terminal overlay for the minigame.

    Frames are drawn from the scheduler thread; input lines come from the
    caller's thread. Enter jumps (or starts), ``q`` closes the overlay.
    """

    def __init__(self, out: TextIO | None = None, *, clear: bool = True) -> None:
        self._out = out or sys.stdout
        self._clear = clear
        self._print_lock = threading.Lock()
        self.game = MiniGame()
        self.scheduler = TickScheduler(self.game, on_frame=self.draw)

    def draw(self, game: MiniGame) -> None:
        with self._print_lock:
            if self._clear:
                self._out.write(CLEAR)
            self._out.write(render_frame(game) + "\n")
            self._out.flush()

    def handle(self, line: str) -> bool:
        """Apply one input line. Returns False once the overlay is closed."""
        cmd = line.strip().lower()
        if cmd in {"q", "quit", "exit"}:
            self.close()
            return False
        if self.game.state == "playing":
            self.game.jump()
            return True
        # ready or gameover: any other input (re)starts a run
        self.game.start()
        self.scheduler.start()
        return True

    def close(self) -> None:
        self.game.close()
        self.scheduler.stop()
        self.draw(self.game)


def run_game(stdin: TextIO | None = None, out: TextIO | None = None) -> int:
    screen = GameScreen(out)
    screen.draw(screen.game)
    try:
        for line in stdin or sys.stdin:
            if not screen.handle(line):
                break
    finally:
        if not screen.game.closed:
            screen.close()
    return screen.game.score


__all__ = ["GameScreen", "run_game"]
