# src/limefarm/ledger/fixed_point.py
from __future__ import annotations

"""Exact fixed-point helpers.

Amounts are plain ints holding raw token units (value * 10**decimals).
Nothing in here touches binary floating point; all division truncates toward
zero like integer division on chain.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from limefarm.ledger.constants import BPS_DENOMINATOR, TOKEN_DECIMALS

Numberish = Union[int, str, Decimal]


def tokens(value: Numberish, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human amount ("99.1", 1000, Decimal("0.5")) to raw units.

    Rejects floats, non-finite values and more fractional digits than the
    token carries.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"tokens() expects int, str or Decimal (got {type(value).__name__})")
    if isinstance(value, int):
        return int(value) * 10**int(decimals)
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"not a decimal amount: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"amount must be finite: {value!r}")

    sign, digits, exponent = d.as_tuple()
    coefficient = int("".join(str(x) for x in digits) or "0")
    shift = int(exponent) + int(decimals)
    if shift >= 0:
        raw = coefficient * 10**shift
    else:
        raw, rest = divmod(coefficient, 10**-shift)
        if rest:
            raise ValueError(f"amount {value!r} has more than {decimals} fractional digits")
    return -raw if sign else raw


def format_units(raw: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Render raw units as an exact decimal string without trailing zeros."""
    n = int(raw)
    sign = "-" if n < 0 else ""
    whole, frac = divmod(abs(n), 10**int(decimals))
    if not frac:
        return f"{sign}{whole}"
    frac_s = str(frac).rjust(int(decimals), "0").rstrip("0")
    return f"{sign}{whole}.{frac_s}"


def trunc_div(a: int, b: int) -> int:
    """Integer division truncating toward zero (Python's // floors)."""
    if int(b) == 0:
        raise ZeroDivisionError("trunc_div by zero")
    q = abs(int(a)) // abs(int(b))
    return q if (int(a) >= 0) == (int(b) > 0) else -q


def mul_div(a: int, b: int, denominator: int) -> int:
    return trunc_div(int(a) * int(b), int(denominator))


def bps_of(amount: int, bps: int) -> int:
    """Fraction of `amount` expressed in basis points, rounded down."""
    return mul_div(amount, bps, BPS_DENOMINATOR)
