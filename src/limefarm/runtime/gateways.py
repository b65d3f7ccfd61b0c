"""
LimeFarm: external collaborators of the staking engine.

Block height, wall time, balance movement and admin capability all reach the
engine through these interfaces. The deterministic in-memory backend lives in
limefarm.runtime.gateways_memory.

This module is pure structure: no balances here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Protocol, runtime_checkable

Json = Dict[str, Any]


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

DIRECTION_IN = "in"  # account -> farm custody
DIRECTION_OUT = "out"  # farm custody -> account
DIRECTION_MINT = "mint"  # newly minted reward token -> account

DIRECTIONS = (DIRECTION_IN, DIRECTION_OUT, DIRECTION_MINT)


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    One balance movement requested by the engine.

    A batch of transfers is always settled as a unit.
    """
    account: str
    token: str
    amount: int
    direction: str

    def __post_init__(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}; got: {self.direction!r}")
        if int(self.amount) < 0:
            raise ValueError(f"transfer amount must be >= 0; got: {self.amount}")

    def to_json(self) -> Json:
        return {
            "account": self.account,
            "token": self.token,
            "amount": int(self.amount),
            "direction": self.direction,
        }


# ---------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------

@runtime_checkable
class Clock(Protocol):
    """
    Block and time source. Both values are monotonically non-decreasing;
    the engine never advances them itself.
    """

    def current_block(self) -> int: ...
    def current_timestamp(self) -> int: ...


@runtime_checkable
class TransferGateway(Protocol):
    """
    Moves balances for deposits, withdrawals, tax payouts and harvests.

    settle() must be all-or-nothing and raise InsufficientExternalBalance or
    TransferRejected without moving anything when any leg fails.
    """

    def settle(self, transfers: Iterable[Transfer]) -> None: ...


@runtime_checkable
class Authorizer(Protocol):
    def is_admin(self, actor: str) -> bool: ...
