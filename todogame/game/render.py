from __future__ import annotations

from .engine import FIELD_WIDTH, PLAYER_X, MiniGame

ROW_HEIGHT_PX = 20.0


def render_frame(game: MiniGame, *, width: int = 80, height: int = 8) -> str:
    """ASCII rendering of the current game screen."""
    if game.state == "ready":
        return "\n".join(
            [
                "MINI GAME",
                "HOW TO PLAY",
                "PRESS ENTER TO JUMP",
                "AVOID OBSTACLES",
                "GET HIGH SCORE!",
            ]
        )
    if game.state == "gameover":
        return "\n".join(["GAME OVER", f"FINAL SCORE: {game.score}", game.rating()])

    scale = width / FIELD_WIDTH
    rows = [[" "] * width for _ in range(height)]
    ground_row = height - 1
    for obstacle in game.obstacles:
        col = int(obstacle.x * scale)
        if 0 <= col < width:
            rows[ground_row][col] = "#"
    level = min(ground_row, int(round(-game.y / ROW_HEIGHT_PX)))
    player_col = int(PLAYER_X * scale)
    rows[ground_row - level][player_col] = "@"
    lines = [f"SCORE: {game.score}"]
    lines.extend("".join(r).rstrip() for r in rows)
    lines.append("=" * width)
    return "\n".join(lines)


__all__ = ["render_frame"]
