from __future__ import annotations

import logging
import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from limefarm.api.errors import install_error_handlers
from limefarm.api.routes_public import public_router
from limefarm.api.structured_logging import RequestLogMiddleware
from limefarm.runtime.config import load_farm_config
from limefarm.runtime.farm_logging import log_event
from limefarm.runtime.sqlite_db import SqliteDB, SqliteFarmStore
from limefarm.testing.devchain import LocalDevChain

log = logging.getLogger("limefarm.api")


def build_runtime() -> LocalDevChain:
    """Build the dev chain the API serves.

    Tests monkeypatch `limefarm.api.app.build_runtime` to hand in an
    in-memory chain instead of the SQLite-backed one.
    """
    cfg = load_farm_config()
    store = SqliteFarmStore(db=SqliteDB(path=cfg.db_path))
    chain = LocalDevChain(cfg, store=store)
    log_event(log, "api_runtime_ready", db_path=cfg.db_path, mode=cfg.mode, pools=chain.engine.total_pools())
    return chain


def _parse_cors_origins() -> List[str]:
    """Parse LIMEFARM_CORS_ORIGINS. Unset means CORS disabled; "*" is refused in prod."""
    raw = os.environ.get("LIMEFARM_CORS_ORIGINS", "").strip()
    mode = os.environ.get("LIMEFARM_MODE", "prod").strip().lower()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in LIMEFARM_CORS_ORIGINS."
            )
        return ["*"]

    return origins


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): attach app.state.chain via build_runtime()
      - False: no chain attached; routes answer 500 not_ready (health stays up)
    """
    mode = os.environ.get("LIMEFARM_MODE", "prod").strip().lower()

    if mode == "prod":
        app = FastAPI(title="LimeFarm API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="LimeFarm API")

    app.state.chain = build_runtime() if boot_runtime else None

    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "X-Actor"],
        )

    install_error_handlers(app)
    app.include_router(public_router)

    return app
