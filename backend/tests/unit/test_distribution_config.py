"""
Unit Tests for Distribution Configuration

Parsing of tiers / allocation / burn mode, startup validation and
keypair loading.
"""

import json
import pytest
from decimal import Decimal
from types import SimpleNamespace

from solders.keypair import Keypair

from presale_bot.chain.client import load_keypair
from presale_bot.core.distribution import (
    AllocationSlice,
    BurnMode,
    Tier,
    build_distribution_config,
    parse_allocation,
    parse_burn_mode,
    parse_tiers,
)
from presale_bot.core.exceptions import ConfigurationError

TREASURY = str(Keypair().pubkey())
MINT = str(Keypair().pubkey())
DISTRIBUTOR = str(Keypair().pubkey())


def make_settings(**overrides):
    """Stand-in for Settings with valid defaults"""
    values = dict(
        TREASURY_WALLET=TREASURY,
        TOKEN_MINT=MINT,
        TOKEN_DECIMALS=6,
        TOKEN_SYMBOL="BUZZ",
        TOKENS_PER_SOL=Decimal("70000000"),
        PRICE_TIERS="0.10:5000000,0.25:15000000,0.50:35000000",
        MIN_DEPOSIT_SOL=Decimal("0"),
        MAX_DEPOSIT_SOL=Decimal("0"),
        DISTRIBUTION_CAP=0,
        GOAL_SOL=Decimal("0"),
        BURN_MODE="off",
        BURN_RATE_BPS=0,
        LIQUIDITY_RESERVE_BPS=0,
        LIQUIDITY_ADDED_SOL=Decimal("0"),
        TOKEN_TOTAL_SUPPLY=0,
        TOKEN_ALLOCATION="",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


# ============================================================================
# Tiers
# ============================================================================

@pytest.mark.unit
def test_parse_tiers_keeps_order():
    tiers = parse_tiers("0.50:35000000, 0.10:5_000_000")

    assert tiers == (
        Tier(price=Decimal("0.50"), payout=35_000_000),
        Tier(price=Decimal("0.10"), payout=5_000_000),
    )


@pytest.mark.unit
def test_parse_tiers_empty():
    assert parse_tiers("") == ()
    assert parse_tiers(" , ") == ()


@pytest.mark.unit
@pytest.mark.parametrize("raw", [
    "0.10",
    "abc:5000000",
    "0.10:lots",
    "0:5000000",
    "0.10:0",
    "-1:5",
])
def test_parse_tiers_rejects_malformed(raw):
    with pytest.raises(ConfigurationError):
        parse_tiers(raw)


# ============================================================================
# Allocation and burn mode
# ============================================================================

@pytest.mark.unit
def test_parse_allocation():
    slices = parse_allocation("presale:40, liquidity:30,team:10")

    assert slices == (
        AllocationSlice(name="presale", percent=Decimal("40")),
        AllocationSlice(name="liquidity", percent=Decimal("30")),
        AllocationSlice(name="team", percent=Decimal("10")),
    )


@pytest.mark.unit
@pytest.mark.parametrize("raw", [
    "presale:60,team:50",
    "presale",
    ":10",
    "team:-5",
    "team:some",
])
def test_parse_allocation_rejects_invalid(raw):
    with pytest.raises(ConfigurationError):
        parse_allocation(raw)


@pytest.mark.unit
def test_parse_burn_mode():
    assert parse_burn_mode("off") is BurnMode.OFF
    assert parse_burn_mode(" TAKE ") is BurnMode.TAKE
    assert parse_burn_mode("extra") is BurnMode.EXTRA

    with pytest.raises(ConfigurationError, match="BURN_MODE"):
        parse_burn_mode("sometimes")


# ============================================================================
# Startup validation
# ============================================================================

@pytest.mark.unit
def test_build_distribution_config_defaults():
    config = build_distribution_config(make_settings(), DISTRIBUTOR)

    assert config.treasury == TREASURY
    assert config.distributor == DISTRIBUTOR
    assert config.mint == MINT
    assert len(config.tiers) == 3
    assert config.burn_mode is BurnMode.OFF
    assert config.is_capped is False


@pytest.mark.unit
def test_build_distribution_config_full():
    settings = make_settings(
        DISTRIBUTION_CAP=100_000_000,
        BURN_MODE="take",
        BURN_RATE_BPS=500,
        MIN_DEPOSIT_SOL=Decimal("0.05"),
        MAX_DEPOSIT_SOL=Decimal("5"),
        TOKEN_ALLOCATION="presale:50,liquidity:50",
    )
    config = build_distribution_config(settings, DISTRIBUTOR)

    assert config.is_capped is True
    assert config.burn_mode is BurnMode.TAKE
    assert config.burn_rate_bps == 500
    assert config.max_deposit == Decimal("5")
    assert [s.name for s in config.allocation] == ["presale", "liquidity"]


@pytest.mark.unit
def test_config_is_immutable():
    config = build_distribution_config(make_settings(), DISTRIBUTOR)
    with pytest.raises(AttributeError):
        config.cap = 5


@pytest.mark.unit
@pytest.mark.parametrize("overrides, message", [
    ({"TREASURY_WALLET": "not-a-wallet"}, "TREASURY_WALLET"),
    ({"TOKEN_MINT": ""}, "TOKEN_MINT"),
    ({"BURN_RATE_BPS": 10_001}, "BURN_RATE_BPS"),
    ({"BURN_MODE": "take", "BURN_RATE_BPS": 0}, "BURN_RATE_BPS"),
    ({"LIQUIDITY_RESERVE_BPS": -1}, "LIQUIDITY_RESERVE_BPS"),
    ({"TOKEN_DECIMALS": -1}, "TOKEN_DECIMALS"),
    ({"DISTRIBUTION_CAP": -5}, "DISTRIBUTION_CAP"),
    ({"MIN_DEPOSIT_SOL": Decimal("1"), "MAX_DEPOSIT_SOL": Decimal("0.5")}, "MAX_DEPOSIT_SOL"),
])
def test_build_distribution_config_rejects(overrides, message):
    with pytest.raises(ConfigurationError, match=message):
        build_distribution_config(make_settings(**overrides), DISTRIBUTOR)


# ============================================================================
# Keypair
# ============================================================================

@pytest.mark.unit
def test_load_keypair_from_json_array():
    keypair = Keypair()
    loaded = load_keypair(json.dumps(list(bytes(keypair))))
    assert loaded.pubkey() == keypair.pubkey()


@pytest.mark.unit
@pytest.mark.parametrize("raw", [
    "",
    "not json",
    "[1, 2, 3]",
    json.dumps([300] * 64),
    json.dumps({"secret": [0] * 64}),
])
def test_load_keypair_rejects_malformed(raw):
    with pytest.raises(ConfigurationError, match="DISTRIBUTOR_PRIVATE_KEY"):
        load_keypair(raw)
