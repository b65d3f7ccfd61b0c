# src/limefarm/ledger/accrual.py
from __future__ import annotations

"""Reward-per-share accrual math.

Pure functions over ints so the distribution can be exercised with synthetic
block sequences, independent of the engine's storage:

  acc_reward_per_share += elapsed * reward_rate * ACC_PRECISION // total_staked
  entitlement           = staked * acc_reward_per_share // ACC_PRECISION - reward_debt

Rewards for blocks during which nothing is staked are not distributed to
anyone (last_reward_block still advances).
"""

from typing import Tuple

from limefarm.ledger.constants import ACC_PRECISION
from limefarm.ledger.types import Pool, UserPosition


def accrue(
    acc_reward_per_share: int,
    last_reward_block: int,
    current_block: int,
    reward_rate: int,
    total_staked: int,
) -> Tuple[int, int]:
    """Return (acc_reward_per_share, last_reward_block) as of current_block."""
    acc = int(acc_reward_per_share)
    last = int(last_reward_block)
    now = int(current_block)
    if now <= last:
        return acc, last

    staked = int(total_staked)
    if staked > 0:
        reward = (now - last) * int(reward_rate)
        acc += (reward * ACC_PRECISION) // staked
    return acc, now


def checkpoint_pool(pool: Pool, current_block: int) -> bool:
    """Bring pool.acc_reward_per_share up to current_block.

    Idempotent for a given block; returns True when the pool changed.
    """
    acc, last = accrue(
        pool.acc_reward_per_share,
        pool.last_reward_block,
        current_block,
        pool.reward_rate,
        pool.total_staked,
    )
    changed = (acc, last) != (pool.acc_reward_per_share, pool.last_reward_block)
    pool.acc_reward_per_share = acc
    pool.last_reward_block = last
    return changed


def reward_debt_for(staked_amount: int, acc_reward_per_share: int) -> int:
    return (int(staked_amount) * int(acc_reward_per_share)) // ACC_PRECISION


def pending_reward(staked_amount: int, acc_reward_per_share: int, reward_debt: int) -> int:
    owed = reward_debt_for(staked_amount, acc_reward_per_share) - int(reward_debt)
    return max(owed, 0)


def entitlement(pool: Pool, position: UserPosition) -> int:
    """Unsettled reward for a position, in reward-token raw units."""
    return pending_reward(position.staked_amount, pool.acc_reward_per_share, position.reward_debt)


def settle(pool: Pool, position: UserPosition) -> int:
    """Move the position's entitlement into pending_harvest.

    The pool must already be checkpointed. Returns the amount settled.
    """
    owed = entitlement(pool, position)
    position.pending_harvest += owed
    position.reward_debt = reward_debt_for(position.staked_amount, pool.acc_reward_per_share)
    return owed


def projected_entitlement(pool: Pool, position: UserPosition, current_block: int) -> int:
    """Entitlement as of current_block without mutating the pool."""
    acc, _ = accrue(
        pool.acc_reward_per_share,
        pool.last_reward_block,
        current_block,
        pool.reward_rate,
        pool.total_staked,
    )
    return pending_reward(position.staked_amount, acc, position.reward_debt)
