# src/limefarm/ledger/constants.py
from __future__ import annotations

"""Farm monetary and policy constants.

Defaults observed on the deployed farm:
- 18 token decimals
- 0.9% deposit tax, 3.5% withdrawal tax, paid to the dev account
- harvesting opens for one day at the start of every 14 day cycle
"""

# Token precision (1 token = 1e18 units)
TOKEN_DECIMALS: int = 18
ONE: int = 10**TOKEN_DECIMALS

# acc_reward_per_share scale: reward units per staked unit * ACC_PRECISION
ACC_PRECISION: int = 10**30

# Tax rates in basis points
BPS_DENOMINATOR: int = 10_000
DEFAULT_DEPOSIT_TAX_BPS: int = 90
DEFAULT_WITHDRAW_TAX_BPS: int = 350

# Harvest window
DAY_SECONDS: int = 86_400
DEFAULT_HARVEST_CYCLE_SECONDS: int = 14 * DAY_SECONDS
DEFAULT_HARVEST_WINDOW_SECONDS: int = DAY_SECONDS

# Canonical account ids
FARM_ACCOUNT_ID: str = "FARM"
DEFAULT_REWARD_TOKEN: str = "LIME"
