from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class FarmError(Exception):
    """Canonical error type for rejected farm operations."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


@dataclass
class Unauthorized(FarmError):
    code: str = "unauthorized"
    reason: str = "caller_is_not_the_owner"
    details: Any | None = None


@dataclass
class UnknownPool(FarmError):
    code: str = "unknown_pool"
    reason: str = "pool_does_not_exist"
    details: Any | None = None


@dataclass
class InvalidAmount(FarmError):
    code: str = "invalid_amount"
    reason: str = "amount_must_be_greater_than_zero"
    details: Any | None = None


@dataclass
class InvalidWithdrawal(FarmError):
    code: str = "invalid_withdrawal"
    reason: str = "invalid_withdrawal_amount"
    details: Any | None = None


@dataclass
class NotHarvestingPeriod(FarmError):
    code: str = "not_harvesting_period"
    reason: str = "not_in_harvesting_period"
    details: Any | None = None


@dataclass
class InsufficientExternalBalance(FarmError):
    code: str = "insufficient_external_balance"
    reason: str = "transfer_amount_exceeds_balance"
    details: Any | None = None


@dataclass
class TransferRejected(FarmError):
    code: str = "transfer_rejected"
    reason: str = "transfer_rejected"
    details: Any | None = None


ERROR_TYPES = (
    Unauthorized,
    UnknownPool,
    InvalidAmount,
    InvalidWithdrawal,
    NotHarvestingPeriod,
    InsufficientExternalBalance,
    TransferRejected,
)
