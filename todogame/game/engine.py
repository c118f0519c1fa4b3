from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

GameState = Literal["ready", "playing", "gameover"]

GRAVITY = 0.6
JUMP_POWER = -12.0
SPAWN_INTERVAL_MS = 2000.0
TICK_MS = 1000.0 / 60.0

FIELD_WIDTH = 800.0
PLAYER_X = 100.0
PLAYER_WIDTH = 40.0
OBSTACLE_WIDTH = 30.0
OBSTACLE_CULL_X = -50.0

# The hitbox is shrunk on both sides and only counts near the ground
HITBOX_MARGIN = 10.0
GROUND_TOLERANCE = -5.0
PASS_OFFSET = 20.0

INITIAL_SPEED = 3.0
MAX_SPEED = 8.0
SPEED_STEP = 0.5
SPEED_EVERY = 10


@dataclass(slots=True)
class Obstacle:
    id: int
    x: float = FIELD_WIDTH
    passed: bool = False


class MiniGame:
    """Side-scrolling obstacle-avoidance game advanced by fixed ticks.

    ``y`` is the player's height offset: 0 on the ground, negative in the air.
    Game time only moves through ``tick``, so a run is fully deterministic.
    Controls and ``tick`` serialize on ``lock``, so input from another thread
    lands between ticks instead of inside one.
    ``on_event`` receives "start", "jump", "score" and "crash".
    """

    def __init__(
        self,
        *,
        tick_ms: float = TICK_MS,
        on_event: Callable[[str], None] | None = None,
    ) -> None:
        self.tick_ms = tick_ms
        self._on_event = on_event
        self.lock = threading.RLock()
        self.state: GameState = "ready"
        self.closed = False
        self._reset()

    def _reset(self) -> None:
        self.score = 0
        self.y = 0.0
        self.velocity = 0.0
        self.jumping = False
        self.speed = INITIAL_SPEED
        self.obstacles: list[Obstacle] = []
        self.ticks = 0
        self._spawn_elapsed = 0.0
        self._next_obstacle_id = 1
        self._last_speed_update = 0

    def _emit(self, event: str) -> None:
        if self._on_event is not None:
            self._on_event(event)

    # ----------------------------
    # Controls
    # ----------------------------
    def start(self) -> None:
        with self.lock:
            self._reset()
            self.closed = False
            self.state = "playing"
            self._emit("start")

    def jump(self) -> bool:
        with self.lock:
            if self.state != "playing" or self.jumping or self.y < 0:
                return False
            self.velocity = JUMP_POWER
            self.jumping = True
            self._emit("jump")
            return True

    def close(self) -> None:
        """Leave the overlay; an unfinished run goes back to ready."""
        with self.lock:
            if self.state == "playing":
                self.state = "ready"
            self.closed = True

    def spawn(self, x: float = FIELD_WIDTH) -> Obstacle:
        obstacle = Obstacle(id=self._next_obstacle_id, x=x)
        self._next_obstacle_id += 1
        self.obstacles.append(obstacle)
        return obstacle

    # ----------------------------
    # Simulation
    # ----------------------------
    def _step_physics(self) -> None:
        new_y = self.y + self.velocity
        new_velocity = self.velocity + GRAVITY
        if new_y >= 0:
            new_y = 0.0
            new_velocity = 0.0
            self.jumping = False
        self.y = new_y
        self.velocity = new_velocity

    def _step_spawn(self) -> None:
        self._spawn_elapsed += self.tick_ms
        while self._spawn_elapsed >= SPAWN_INTERVAL_MS:
            self._spawn_elapsed -= SPAWN_INTERVAL_MS
            self.spawn()

    def _collides(self, obstacle: Obstacle) -> bool:
        overlaps = (
            obstacle.x + OBSTACLE_WIDTH > PLAYER_X + HITBOX_MARGIN
            and obstacle.x < PLAYER_X + PLAYER_WIDTH - HITBOX_MARGIN
        )
        return overlaps and self.y >= GROUND_TOLERANCE

    def _step_obstacles(self) -> None:
        kept: list[Obstacle] = []
        for obstacle in self.obstacles:
            obstacle.x -= self.speed
            if self._collides(obstacle):
                self.state = "gameover"
                self._emit("crash")
                continue
            if not obstacle.passed and obstacle.x < PLAYER_X - PASS_OFFSET:
                obstacle.passed = True
                self.score += 1
                self._emit("score")
            if obstacle.x > OBSTACLE_CULL_X:
                kept.append(obstacle)
        self.obstacles = kept

    def _step_speed(self) -> None:
        if self.score > self._last_speed_update and self.score % SPEED_EVERY == 0:
            self.speed = min(self.speed + SPEED_STEP, MAX_SPEED)
            self._last_speed_update = self.score

    def tick(self) -> None:
        """Advance the game by one fixed step; a no-op unless playing."""
        with self.lock:
            if self.state != "playing":
                return
            self.ticks += 1
            self._step_physics()
            self._step_spawn()
            self._step_obstacles()
            if self.state == "playing":
                self._step_speed()

    def rating(self) -> str:
        if self.score < 5:
            return "KEEP PRACTICING!"
        if self.score < 15:
            return "GOOD JOB!"
        if self.score < 30:
            return "GREAT!"
        return "AMAZING!"


__all__ = [
    "FIELD_WIDTH",
    "GRAVITY",
    "GameState",
    "JUMP_POWER",
    "MiniGame",
    "Obstacle",
    "PLAYER_WIDTH",
    "PLAYER_X",
    "SPAWN_INTERVAL_MS",
    "TICK_MS",
]
