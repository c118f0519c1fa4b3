from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .engine import MiniGame


class TickScheduler:
    """Single fixed-tick driver for a MiniGame.

    ``advance`` converts elapsed wall time into a whole number of ticks, so
    tests can drive the game deterministically. ``start`` runs the same loop
    on a background thread in real time; it ends on ``stop``, on close, or as
    soon as the game leaves the playing state.
    """

    def __init__(
        self,
        game: MiniGame,
        *,
        on_frame: Callable[[MiniGame], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._game = game
        self._on_frame = on_frame
        self._clock = clock
        self._pending_ms = 0.0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _active(self) -> bool:
        return self._game.state == "playing" and not self._game.closed

    def advance(self, elapsed_ms: float) -> int:
        """Run every whole tick that fits in the accumulated time."""
        if not self._active():
            self._pending_ms = 0.0
            return 0
        self._pending_ms += max(0.0, elapsed_ms)
        ran = 0
        while self._pending_ms >= self._game.tick_ms and self._active():
            self._pending_ms -= self._game.tick_ms
            self._game.tick()
            ran += 1
        if ran and self._on_frame is not None:
            with self._game.lock:
                self._on_frame(self._game)
        if not self._active():
            self._pending_ms = 0.0
        return ran

    def run_ticks(self, n: int) -> int:
        return self.advance(n * self._game.tick_ms)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._pending_ms = 0.0
        self._thread = threading.Thread(target=self._run, name="minigame-ticks", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _run(self) -> None:
        interval_s = self._game.tick_ms / 1000.0
        last = self._clock()
        while not self._stop.is_set() and self._active():
            self._stop.wait(interval_s)
            now = self._clock()
            self.advance((now - last) * 1000.0)
            last = now


__all__ = ["TickScheduler"]
