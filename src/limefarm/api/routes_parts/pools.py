from __future__ import annotations

from fastapi import APIRouter, Request

from limefarm.api.routes_parts.common import _actor, _chain, _parse_amount, _pool_decimals
from limefarm.api.schemas import AmountRequest, CreatePoolRequest
from limefarm.ledger.constants import TOKEN_DECIMALS

router = APIRouter()


@router.get("/pools")
def v1_pools(request: Request):
    engine = _chain(request).engine
    return {"ok": True, "total_pools": engine.total_pools(), "pools": engine.list_pools()}


@router.post("/pools")
def v1_pool_create(body: CreatePoolRequest, request: Request):
    chain = _chain(request)
    actor = _actor(request)
    rate = _parse_amount(body.reward_rate, TOKEN_DECIMALS, field="reward_rate")
    pool_id = chain.create_pool(body.stake_token, rate, body.tax_free, sender=actor, stake_decimals=body.stake_decimals)
    return {"ok": True, "pool": chain.engine.pool_info(pool_id)}


@router.get("/pools/{pool_id}")
def v1_pool_get(pool_id: int, request: Request):
    return {"ok": True, "pool": _chain(request).engine.pool_info(pool_id)}


@router.get("/pools/{pool_id}/positions/{actor}")
def v1_position_get(pool_id: int, actor: str, request: Request):
    return {"ok": True, "position": _chain(request).engine.position_info(pool_id, actor)}


@router.post("/pools/{pool_id}/deposit")
def v1_deposit(pool_id: int, body: AmountRequest, request: Request):
    chain = _chain(request)
    actor = _actor(request)
    amount = _parse_amount(body.amount, _pool_decimals(request, pool_id))
    receipt = chain.deposit(pool_id, amount, sender=actor)
    return {"ok": True, "receipt": receipt}


@router.post("/pools/{pool_id}/withdraw")
def v1_withdraw(pool_id: int, body: AmountRequest, request: Request):
    chain = _chain(request)
    actor = _actor(request)
    amount = _parse_amount(body.amount, _pool_decimals(request, pool_id))
    receipt = chain.withdraw(pool_id, amount, sender=actor)
    return {"ok": True, "receipt": receipt}


@router.post("/pools/{pool_id}/checkpoint")
def v1_checkpoint(pool_id: int, request: Request):
    chain = _chain(request)
    receipt = chain.checkpoint(pool_id, sender=_actor(request))
    return {"ok": True, "receipt": receipt}


@router.post("/pools/{pool_id}/harvest")
def v1_harvest(pool_id: int, request: Request):
    chain = _chain(request)
    receipt = chain.harvest(pool_id, sender=_actor(request))
    return {"ok": True, "receipt": receipt}
