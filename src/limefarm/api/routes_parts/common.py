from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from limefarm.api.errors import ApiError
from limefarm.ledger.constants import TOKEN_DECIMALS
from limefarm.ledger.fixed_point import tokens

Json = Dict[str, Any]


def _chain(request: Request):
    chain = getattr(request.app.state, "chain", None)
    if chain is None:
        raise ApiError.internal("not_ready", "dev chain not attached to app.state", {})
    return chain


def _actor(request: Request) -> str:
    actor = (request.headers.get("x-actor") or "").strip()
    if not actor:
        raise ApiError.bad_request("missing_actor", "X-Actor header is required", {})
    return actor


def _parse_amount(raw: str, decimals: int, *, field: str = "amount") -> int:
    """Decimal string -> raw units. Sign and zero checks stay with the engine."""
    try:
        return tokens(str(raw).strip(), decimals)
    except (TypeError, ValueError) as e:
        raise ApiError.bad_request("bad_amount", str(e), {"field": field, "value": raw})


def _pool_decimals(request: Request, pool_id: int) -> int:
    # Unknown pools fall through to the engine, which raises UnknownPool (404).
    decimals = _chain(request).engine.stake_decimals(pool_id)
    return decimals if decimals is not None else TOKEN_DECIMALS
