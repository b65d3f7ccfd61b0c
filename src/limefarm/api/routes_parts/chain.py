from __future__ import annotations

from fastapi import APIRouter, Request

from limefarm.api.errors import ApiError
from limefarm.api.routes_parts.common import _chain, _parse_amount
from limefarm.api.schemas import AdvanceTimeRequest, FundRequest, MineRequest
from limefarm.ledger.constants import TOKEN_DECIMALS

router = APIRouter()


def _require_dev(request: Request):
    chain = _chain(request)
    if chain.cfg.mode == "prod":
        raise ApiError.forbidden("dev_only", "chain control is disabled in prod mode", {"mode": chain.cfg.mode})
    return chain


@router.get("/chain")
def v1_chain(request: Request):
    chain = _chain(request)
    return {
        "ok": True,
        "block": chain.block,
        "timestamp": chain.timestamp,
        "harvesting": chain.engine.is_harvesting_period(),
        "time_until_harvest": chain.engine.time_until_harvest(),
    }


@router.post("/chain/mine")
def v1_chain_mine(body: MineRequest, request: Request):
    chain = _require_dev(request)
    return {"ok": True, "block": chain.mine(body.blocks)}


@router.post("/chain/advance-time")
def v1_chain_advance_time(body: AdvanceTimeRequest, request: Request):
    chain = _require_dev(request)
    if body.mine:
        chain.advance_time_and_block(body.seconds)
    else:
        chain.advance_time(body.seconds)
    return {"ok": True, "block": chain.block, "timestamp": chain.timestamp}


@router.post("/chain/fund")
def v1_chain_fund(body: FundRequest, request: Request):
    chain = _require_dev(request)
    amount = _parse_amount(body.amount, TOKEN_DECIMALS)
    if amount <= 0:
        raise ApiError.bad_request("bad_amount", "amount must be positive", {"amount": body.amount})
    chain.fund(body.account, body.token, amount)
    return {"ok": True, "account": body.account, "token": body.token, "balance": chain.balance_of(body.account, body.token)}


@router.get("/chain/balances/{account}/{token}")
def v1_chain_balance(account: str, token: str, request: Request):
    chain = _chain(request)
    return {"ok": True, "account": account, "token": token, "balance": chain.balance_of(account, token)}
