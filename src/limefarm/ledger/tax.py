# src/limefarm/ledger/tax.py
from __future__ import annotations

from typing import Tuple

from limefarm.ledger.constants import BPS_DENOMINATOR
from limefarm.ledger.fixed_point import bps_of


def validate_rate_bps(rate_bps: int, *, field: str = "rate_bps") -> int:
    r = int(rate_bps)
    if r < 0 or r > BPS_DENOMINATOR:
        raise ValueError(f"{field} must be 0..{BPS_DENOMINATOR}; got: {rate_bps}")
    return r


def compute_tax(amount: int, tax_free: bool, rate_bps: int) -> Tuple[int, int]:
    """Split `amount` into (net, tax).

    Tax-free pools pass the amount through untouched. Otherwise the tax is
    `rate_bps` of the amount rounded down, so net + tax == amount always.
    """
    amt = int(amount)
    if amt < 0:
        raise ValueError(f"amount must be >= 0; got: {amount}")
    if tax_free:
        return amt, 0
    tax = bps_of(amt, validate_rate_bps(rate_bps))
    return amt - tax, tax
