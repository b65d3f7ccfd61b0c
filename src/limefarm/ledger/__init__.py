# src/limefarm/ledger/__init__.py
"""
LimeFarm ledger package

Pure bookkeeping with no I/O:
  - constants: token precision, tax and harvest window defaults
  - fixed_point: exact raw-unit conversion and truncating division
  - tax: deposit/withdrawal tax split
  - types: Pool / UserPosition / FarmState and their JSON schema
  - accrual: reward-per-share accumulator math

The engine (limefarm.runtime.engine) composes these; nothing here knows
about clocks, balances or authorization.
"""

from __future__ import annotations

__all__ = [
    "constants",
    "fixed_point",
    "tax",
    "types",
    "accrual",
]
