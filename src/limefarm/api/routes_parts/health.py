from __future__ import annotations

from fastapi import APIRouter, Request

from limefarm.api.routes_parts.common import _chain

router = APIRouter()


@router.get("/health")
def v1_health(request: Request):
    chain = getattr(request.app.state, "chain", None)
    if chain is None:
        return {"ok": True, "ready": False}
    return {
        "ok": True,
        "ready": True,
        "mode": chain.cfg.mode,
        "block": chain.block,
        "timestamp": chain.timestamp,
        "total_pools": chain.engine.total_pools(),
    }


@router.get("/harvest-window")
def v1_harvest_window(request: Request):
    chain = _chain(request)
    desc = chain.engine.harvest_policy.describe(chain.timestamp)
    return {"ok": True, **desc}
