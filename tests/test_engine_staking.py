from __future__ import annotations

import pytest

from limefarm.ledger.fixed_point import tokens
from limefarm.runtime.errors import (
    InsufficientExternalBalance,
    InvalidAmount,
    InvalidWithdrawal,
    Unauthorized,
    UnknownPool,
)

INVESTOR = "investor"
OTHER = "other_investor"


def test_only_owner_creates_pools(chain) -> None:
    with pytest.raises(Unauthorized) as ei:
        chain.create_pool("T1", tokens(1), False, sender=INVESTOR)
    assert ei.value.code == "unauthorized"
    assert chain.engine.total_pools() == 0


def test_creates_pools_with_sequential_ids(chain) -> None:
    assert chain.engine.total_pools() == 0
    ids = [chain.create_pool(t, tokens(1), False) for t in ("T1", "T2", "T3")]
    assert ids == [0, 1, 2]
    assert chain.engine.total_pools() == 3

    pool = chain.engine.state.get_pool(1)
    assert pool.stake_token == "T2"
    assert pool.total_staked == 0
    assert pool.acc_reward_per_share == 0
    # each creation mines its own block
    assert chain.engine.state.get_pool(2).last_reward_block == chain.block
    assert pool.last_reward_block == chain.block - 1


def test_deposits_are_taxed_and_routed_to_beneficiary(chain) -> None:
    chain.fund(INVESTOR, "T1", tokens(100))
    chain.fund(INVESTOR, "T2", tokens(1000))
    chain.fund(OTHER, "T2", tokens(1000))

    chain.create_pool("T1", tokens(1), False)
    chain.create_pool("T2", tokens(1), False)

    chain.deposit(0, tokens(100), sender=INVESTOR)
    chain.deposit(1, tokens(600), sender=INVESTOR)
    chain.deposit(1, tokens(400), sender=INVESTOR)
    chain.deposit(1, tokens(1000), sender=OTHER)

    assert chain.balance_of(INVESTOR, "T1") == 0
    assert chain.balance_of(INVESTOR, "T2") == 0
    assert chain.balance_of(OTHER, "T2") == 0

    assert chain.engine.pool_size(1) == tokens(1982)
    assert chain.engine.user_stake(0, INVESTOR) == tokens("99.1")
    assert chain.engine.user_stake(1, INVESTOR) == tokens(991)

    assert chain.balance_of(chain.beneficiary, "T1") == tokens("0.9")
    assert chain.balance_of(chain.beneficiary, "T2") == tokens(18)


def test_deposit_receipt(chain) -> None:
    chain.fund(INVESTOR, "T1", tokens(1000))
    chain.create_pool("T1", tokens(1), False)

    r = chain.deposit(0, tokens(1000), sender=INVESTOR)
    assert r["applied"] == "DEPOSIT"
    assert r["amount"] == tokens(1000)
    assert r["net"] == tokens(991)
    assert r["tax"] == tokens(9)
    assert r["staked_amount"] == tokens(991)
    assert r["pool_size"] == tokens(991)
    assert r["block"] == chain.block


def test_withdrawals_are_taxed(chain) -> None:
    chain.create_pool("T1", tokens(1), False)
    chain.fund(INVESTOR, "T1", tokens(1000))
    chain.fund(OTHER, "T1", tokens(200))

    chain.deposit(0, tokens(1000), sender=INVESTOR)
    chain.deposit(0, tokens(200), sender=OTHER)

    r = chain.withdraw(0, tokens(100), sender=INVESTOR)
    assert r["applied"] == "WITHDRAW"
    assert r["net"] == tokens("96.5")
    assert r["tax"] == tokens("3.5")

    assert chain.balance_of(INVESTOR, "T1") == tokens("96.5")
    assert chain.engine.user_stake(0, INVESTOR) == tokens(891)
    assert chain.balance_of(chain.beneficiary, "T1") == tokens("14.3")
    assert chain.engine.pool_size(0) == tokens("1089.2")


def test_tax_free_round_trip_returns_everything(chain) -> None:
    chain.create_pool("T1", tokens(100), True)
    chain.fund(INVESTOR, "T1", tokens(1000))

    chain.deposit(0, tokens(1000), sender=INVESTOR)
    assert chain.engine.user_stake(0, INVESTOR) == tokens(1000)

    chain.withdraw(0, tokens(1000), sender=INVESTOR)
    assert chain.balance_of(INVESTOR, "T1") == tokens(1000)
    assert chain.balance_of(chain.beneficiary, "T1") == 0


def test_same_block_round_trip_pays_both_taxes(chain) -> None:
    chain.create_pool("T1", tokens(1), False)
    chain.fund(INVESTOR, "T1", tokens(1000))
    engine = chain.engine

    # Engine called directly so both legs land in one block.
    engine.deposit(0, tokens(1000), actor=INVESTOR)
    staked = engine.user_stake(0, INVESTOR)
    r = engine.withdraw(0, staked, actor=INVESTOR)

    assert r["settled_reward"] == 0
    assert staked == tokens(991)
    assert chain.balance_of(INVESTOR, "T1") == tokens(991) - tokens("34.685")
    assert chain.balance_of(chain.beneficiary, "T1") == tokens(9) + tokens("34.685")


def test_invalid_deposits(chain) -> None:
    chain.create_pool("T1", tokens(1), False)
    chain.create_pool("T2", tokens(1), False)

    with pytest.raises(InsufficientExternalBalance):
        chain.deposit(0, tokens(10), sender=INVESTOR)

    chain.fund(INVESTOR, "T1", tokens(100))

    with pytest.raises(InvalidAmount) as ei:
        chain.deposit(0, 0, sender=INVESTOR)
    assert ei.value.reason == "amount_must_be_greater_than_zero"

    with pytest.raises(InvalidAmount):
        chain.deposit(0, -5, sender=INVESTOR)

    with pytest.raises(UnknownPool):
        chain.deposit(10, tokens(100), sender=INVESTOR)

    assert chain.balance_of(INVESTOR, "T1") == tokens(100)
    assert chain.engine.pool_size(0) == 0


def test_dust_deposit_can_be_withdrawn(chain) -> None:
    chain.create_pool("T1", tokens(1), False)
    chain.fund(INVESTOR, "T1", tokens(100))

    chain.deposit(0, 1, sender=INVESTOR)
    assert chain.engine.user_stake(0, INVESTOR) == 1
    chain.withdraw(0, 1, sender=INVESTOR)
    assert chain.engine.user_stake(0, INVESTOR) == 0
    assert chain.balance_of(INVESTOR, "T1") == tokens(100)


def test_invalid_withdrawals(chain) -> None:
    chain.create_pool("T1", tokens(1), False)
    chain.fund(INVESTOR, "T1", tokens(1000))

    with pytest.raises(InvalidWithdrawal) as ei:
        chain.withdraw(0, tokens(10), sender=INVESTOR)
    assert ei.value.reason == "invalid_withdrawal_amount"

    with pytest.raises(UnknownPool):
        chain.withdraw(5, tokens(10), sender=INVESTOR)

    chain.deposit(0, tokens(1000), sender=INVESTOR)
    chain.withdraw(0, tokens(500), sender=INVESTOR)
    assert chain.engine.user_stake(0, INVESTOR) == tokens(491)

    with pytest.raises(InvalidWithdrawal):
        chain.withdraw(0, tokens(500), sender=INVESTOR)
    with pytest.raises(InvalidWithdrawal):
        chain.withdraw(0, 0, sender=INVESTOR)
    with pytest.raises(InvalidWithdrawal):
        chain.withdraw(0, tokens(10), sender=OTHER)


def test_read_accessors_reject_unknown_pools(chain) -> None:
    with pytest.raises(UnknownPool):
        chain.engine.pool_size(0)
    with pytest.raises(UnknownPool):
        chain.engine.user_stake(0, INVESTOR)
    with pytest.raises(UnknownPool):
        chain.engine.available_harvest(0, INVESTOR)


def test_user_stake_of_stranger_is_zero(chain) -> None:
    chain.create_pool("T1", tokens(1), False)
    assert chain.engine.user_stake(0, "nobody") == 0
    assert chain.engine.available_harvest(0, "nobody") == 0


def test_stake_decimals_accessor(chain) -> None:
    chain.create_pool("USD6", tokens(1), True, stake_decimals=6)
    assert chain.engine.stake_decimals(0) == 6
    assert chain.engine.stake_decimals(1) is None
    assert chain.engine.stake_decimals(True) is None
