"""
Unit Tests for Distribution Policy

Guards, cap pro-ration and burn split
"""

import pytest
from decimal import Decimal

from presale_bot.core.distribution import BurnMode
from presale_bot.services.policy import (
    REASON_ABOVE_MAXIMUM,
    REASON_BELOW_MINIMUM,
    REASON_BURN_CONSUMES_PAYOUT,
    REASON_CAP_EXHAUSTED,
    REASON_ZERO_PAYOUT,
    apply_distribution_policy,
    remaining_cap,
)

ONE = Decimal("1")


# ============================================================================
# Guards
# ============================================================================

@pytest.mark.unit
def test_below_minimum_rejected(make_config):
    config = make_config(min_deposit=Decimal("0.05"))
    decision = apply_distribution_policy(Decimal("0.01"), 700_000, 0, config)

    assert decision.eligible is False
    assert decision.reason == REASON_BELOW_MINIMUM
    assert decision.buyer_amount == 0
    assert decision.burn_amount == 0


@pytest.mark.unit
def test_minimum_is_inclusive(make_config):
    config = make_config(min_deposit=Decimal("0.05"))
    assert apply_distribution_policy(Decimal("0.05"), 3_500_000, 0, config).eligible is True


@pytest.mark.unit
def test_above_maximum_rejected(make_config):
    config = make_config(max_deposit=Decimal("5"))
    decision = apply_distribution_policy(Decimal("5.5"), 385_000_000, 0, config)

    assert decision.eligible is False
    assert decision.reason == REASON_ABOVE_MAXIMUM


@pytest.mark.unit
def test_zero_max_means_no_maximum(config):
    assert apply_distribution_policy(Decimal("1000"), 10**10, 0, config).eligible is True


@pytest.mark.unit
def test_zero_raw_amount_rejected(config):
    decision = apply_distribution_policy(ONE, 0, 0, config)
    assert decision.eligible is False
    assert decision.reason == REASON_ZERO_PAYOUT


@pytest.mark.unit
def test_guard_checked_before_cap(make_config):
    """An out-of-range deposit is a guard rejection even when the cap is full"""
    config = make_config(min_deposit=Decimal("0.05"), cap=100)
    decision = apply_distribution_policy(Decimal("0.01"), 50, 100, config)
    assert decision.reason == REASON_BELOW_MINIMUM
    assert decision.cap_exhausted is False


# ============================================================================
# Cap
# ============================================================================

@pytest.mark.unit
def test_cap_clamps_to_remaining(make_config):
    """cap 10M, 8M distributed, raw 5M -> buyer gets exactly 2M"""
    config = make_config(cap=10_000_000)
    decision = apply_distribution_policy(ONE, 5_000_000, 8_000_000, config)

    assert decision.eligible is True
    assert decision.buyer_amount == 2_000_000
    assert decision.capped is True
    assert remaining_cap(config, 8_000_000 + decision.buyer_amount) == 0


@pytest.mark.unit
def test_cap_exhausted(make_config):
    config = make_config(cap=10_000_000)
    decision = apply_distribution_policy(ONE, 5_000_000, 10_000_000, config)

    assert decision.eligible is False
    assert decision.cap_exhausted is True
    assert decision.reason == REASON_CAP_EXHAUSTED


@pytest.mark.unit
def test_overshot_total_counts_as_exhausted(make_config):
    """remaining is max(0, cap - total)"""
    config = make_config(cap=10)
    assert remaining_cap(config, 15) == 0
    assert apply_distribution_policy(ONE, 1, 15, config).cap_exhausted is True


@pytest.mark.unit
def test_uncapped(config):
    assert remaining_cap(config, 10**12) is None
    decision = apply_distribution_policy(ONE, 10**9, 10**12, config)
    assert decision.buyer_amount == 10**9
    assert decision.capped is False


@pytest.mark.unit
def test_cap_monotonic_over_sequence(make_config):
    """Cumulative buyer total never exceeds the cap and lands exactly on it"""
    config = make_config(cap=12_345_678)
    total = 0
    for raw in [5_000_000, 3_000_000, 4_000_000, 1_000_000, 700_000]:
        decision = apply_distribution_policy(ONE, raw, total, config)
        if not decision.eligible:
            assert decision.cap_exhausted
            break
        total += decision.buyer_amount
        assert total <= config.cap

    assert total == config.cap


# ============================================================================
# Burn split
# ============================================================================

@pytest.mark.unit
def test_take_mode_splits_amount(make_config):
    """take 500 bps of 1,000,000 -> burn 50,000, buyer 950,000"""
    config = make_config(burn_mode=BurnMode.TAKE, burn_rate_bps=500)
    decision = apply_distribution_policy(ONE, 1_000_000, 0, config)

    assert decision.burn_amount == 50_000
    assert decision.buyer_amount == 950_000
    assert decision.buyer_amount + decision.burn_amount == 1_000_000


@pytest.mark.unit
@pytest.mark.parametrize("raw", [1, 3, 999, 123_457, 10_000_001])
def test_take_mode_conserves_amount(make_config, raw):
    config = make_config(burn_mode=BurnMode.TAKE, burn_rate_bps=333)
    decision = apply_distribution_policy(ONE, raw, 0, config)
    assert decision.buyer_amount + decision.burn_amount == raw


@pytest.mark.unit
def test_take_mode_applies_after_cap(make_config):
    """Burn is taken from the capped amount"""
    config = make_config(cap=10_000_000, burn_mode=BurnMode.TAKE, burn_rate_bps=1000)
    decision = apply_distribution_policy(ONE, 5_000_000, 8_000_000, config)

    assert decision.buyer_amount + decision.burn_amount == 2_000_000
    assert decision.burn_amount == 200_000


@pytest.mark.unit
def test_take_mode_full_burn_rejected(make_config):
    config = make_config(burn_mode=BurnMode.TAKE, burn_rate_bps=10_000)
    decision = apply_distribution_policy(ONE, 1_000, 0, config)

    assert decision.eligible is False
    assert decision.reason == REASON_BURN_CONSUMES_PAYOUT


@pytest.mark.unit
def test_extra_mode_burns_on_top(make_config):
    config = make_config(burn_mode=BurnMode.EXTRA, burn_rate_bps=500)
    decision = apply_distribution_policy(ONE, 1_000_000, 0, config)

    assert decision.buyer_amount == 1_000_000
    assert decision.burn_amount == 50_000


@pytest.mark.unit
def test_extra_mode_burn_floors(make_config):
    config = make_config(burn_mode=BurnMode.EXTRA, burn_rate_bps=250)
    decision = apply_distribution_policy(ONE, 39, 0, config)
    assert decision.burn_amount == 0  # floor(39 * 250 / 10000)
    assert decision.buyer_amount == 39


@pytest.mark.unit
def test_extra_mode_burn_does_not_count_toward_cap(make_config):
    """Only the buyer amount fills the cap"""
    config = make_config(cap=1_000_000, burn_mode=BurnMode.EXTRA, burn_rate_bps=5000)
    decision = apply_distribution_policy(ONE, 1_000_000, 0, config)

    assert decision.buyer_amount == 1_000_000
    assert decision.burn_amount == 500_000
    assert decision.capped is False


@pytest.mark.unit
def test_off_mode_never_burns(config):
    decision = apply_distribution_policy(ONE, 1_000_000, 0, config)
    assert decision.burn_amount == 0
    assert decision.buyer_amount == 1_000_000
