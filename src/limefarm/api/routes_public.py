# src/limefarm/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from limefarm.api.routes_parts.chain import router as chain_router
from limefarm.api.routes_parts.health import router as health_router
from limefarm.api.routes_parts.metrics import router as metrics_router
from limefarm.api.routes_parts.pools import router as pools_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(pools_router, prefix="/v1", tags=["pools"])
public_router.include_router(chain_router, prefix="/v1", tags=["chain"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
