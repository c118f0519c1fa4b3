from __future__ import annotations

import argparse
import os
import sys

from todogame.config import STORE_BACKENDS, load_config


def serve(args: argparse.Namespace) -> int:
    """Run the API server with the configured store backend."""
    import uvicorn

    from todogame.gateway.app import create_app
    from todogame.store import build_store

    cfg = load_config()
    # Command-line flags win over environment
    if args.store:
        cfg.store_backend = args.store
    if args.db_path:
        cfg.db_path = args.db_path
    if args.redis_url:
        cfg.redis_url = args.redis_url
    if args.host:
        cfg.host = args.host
    if args.port is not None:
        cfg.port = args.port

    app = create_app(build_store(cfg), api_prefix=cfg.api_prefix)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=cfg.host,
            port=cfg.port,
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
        )
    )
    server.run()
    return 0


def launch_client(argv: list[str] | None = None) -> None:
    # Defer import to keep the server command free of client modules
    from todogame.client.cli import main as client_main

    client_main(argv)


def play(_: argparse.Namespace) -> int:
    from todogame.game.cli import run_game

    score = run_game()
    sys.stdout.write(f"final score: {score}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("todogame")
    sub = parser.add_subparsers(dest="cmd")

    p_serve = sub.add_parser("serve", help="Run the REST API server")
    p_serve.add_argument("--store", choices=list(STORE_BACKENDS))
    p_serve.add_argument("--db-path")
    p_serve.add_argument("--redis-url")
    p_serve.add_argument("--host")
    p_serve.add_argument("--port", type=int)

    sub.add_parser("client", help="Launch the interactive client (extra args pass through)")
    sub.add_parser("game", help="Play the minigame in the terminal")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args, extra = parser.parse_known_args(argv)
    cmd = str(getattr(args, "cmd", "") or "")

    if cmd == "serve":
        if extra:
            parser.error(f"unrecognized arguments: {' '.join(extra)}")
        raise SystemExit(serve(args))

    if cmd == "client":
        launch_client(extra)
        return

    if cmd == "game":
        raise SystemExit(play(args))

    parser.print_help()


if __name__ == "__main__":
    main()
