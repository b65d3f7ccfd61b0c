from __future__ import annotations

import pytest

from limefarm.ledger.fixed_point import tokens
from limefarm.ledger.tax import compute_tax, validate_rate_bps


def test_tax_free_passes_amount_through() -> None:
    assert compute_tax(tokens(1000), True, 90) == (tokens(1000), 0)


def test_deposit_rate_splits_991_and_9() -> None:
    assert compute_tax(tokens(1000), False, 90) == (tokens(991), tokens(9))
    assert compute_tax(tokens(100), False, 90) == (tokens("99.1"), tokens("0.9"))


def test_withdraw_rate_splits_965_per_thousand() -> None:
    assert compute_tax(tokens(100), False, 350) == (tokens("96.5"), tokens("3.5"))


def test_net_plus_tax_is_always_amount() -> None:
    for amount in (1, 7, 111, 10**18 + 3, tokens("240.55")):
        net, tax = compute_tax(amount, False, 90)
        assert net + tax == amount
        assert tax >= 0


def test_dust_amount_pays_no_tax() -> None:
    assert compute_tax(1, False, 350) == (1, 0)


def test_rejects_negative_amount_and_bad_rates() -> None:
    with pytest.raises(ValueError):
        compute_tax(-1, False, 90)
    with pytest.raises(ValueError):
        validate_rate_bps(10_001)
    with pytest.raises(ValueError):
        validate_rate_bps(-1, field="deposit_tax_bps")
    assert validate_rate_bps(10_000) == 10_000
