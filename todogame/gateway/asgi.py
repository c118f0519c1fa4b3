from __future__ import annotations

from todogame.config import load_config
from todogame.store import build_store

from .app import create_app

_cfg = load_config()
app = create_app(build_store(_cfg), api_prefix=_cfg.api_prefix)
