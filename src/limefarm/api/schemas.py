from __future__ import annotations

"""Pydantic request schemas for the farm API.

Amounts travel as decimal strings ("99.1") and are converted to raw token
units with the pool's decimals.
"""

from pydantic import BaseModel, Field


class CreatePoolRequest(BaseModel):
    stake_token: str = Field(..., min_length=1, description="Identifier of the staked asset, e.g. BUSD-LIME-LP")
    reward_rate: str = Field(..., description="Reward tokens per block, decimal string")
    tax_free: bool = Field(default=False, description="Skip deposit/withdrawal tax")
    stake_decimals: int = Field(default=18, ge=0, le=36)


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Token amount as a decimal string")


class MineRequest(BaseModel):
    blocks: int = Field(default=1, ge=1, le=1_000_000)


class AdvanceTimeRequest(BaseModel):
    seconds: int = Field(..., ge=0)
    mine: bool = Field(default=False, description="Mine one block after moving time")


class FundRequest(BaseModel):
    account: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    amount: str = Field(..., description="Token amount as a decimal string")

    model_config = {"extra": "forbid"}
