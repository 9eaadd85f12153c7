"""
Distribution Configuration

Immutable view of the presale parameters (pricing tiers, guards, cap,
burn split, reporting figures). Built once at startup from Settings and
passed explicitly into the pricing resolver, policy, poller and stats.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

from solders.pubkey import Pubkey

from presale_bot.core.exceptions import ConfigurationError

# Tier prices match when within this distance of the deposit (in SOL)
TIER_TOLERANCE = Decimal("1e-9")

BPS_DENOMINATOR = 10_000


class BurnMode(str, Enum):
    """How burns are sized relative to a payout"""
    OFF = "off"
    TAKE = "take"  # burn a fraction of the payout, buyer receives the rest
    EXTRA = "extra"  # buyer receives the full payout, burn a fraction on top


@dataclass(frozen=True)
class Tier:
    """Flat-rate price point: depositing `price` SOL pays exactly `payout` tokens"""
    price: Decimal
    payout: int


@dataclass(frozen=True)
class AllocationSlice:
    """Named share of the token supply, in percent"""
    name: str
    percent: Decimal


@dataclass(frozen=True)
class DistributionConfig:
    treasury: str
    distributor: str
    mint: str
    decimals: int
    symbol: str
    rate_per_unit: Decimal
    tiers: tuple[Tier, ...] = ()
    min_deposit: Decimal = Decimal("0")
    max_deposit: Decimal = Decimal("0")  # 0 = no maximum
    cap: int = 0  # 0 = uncapped
    goal: Decimal = Decimal("0")
    burn_mode: BurnMode = BurnMode.OFF
    burn_rate_bps: int = 0
    liquidity_reserve_bps: int = 0
    liquidity_added: Decimal = Decimal("0")
    total_supply: int = 0
    allocation: tuple[AllocationSlice, ...] = field(default_factory=tuple)

    @property
    def is_capped(self) -> bool:
        return self.cap > 0


def validate_address(value: str, name: str) -> str:
    """Check that `value` is a base58 Solana public key, returning it normalized"""
    try:
        return str(Pubkey.from_string(value.strip()))
    except ValueError as e:
        raise ConfigurationError(f"{name} is not a valid Solana address: {value!r}") from e


def parse_tiers(raw: str) -> tuple[Tier, ...]:
    """
    Parse "price:payout" pairs separated by commas

    Order is preserved: the resolver checks tiers in the listed order and the
    first match wins.

    Examples:
        >>> parse_tiers("0.10:5000000,0.25:15000000")
        (Tier(price=Decimal('0.10'), payout=5000000), Tier(price=Decimal('0.25'), payout=15000000))
    """
    tiers = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        price_str, sep, payout_str = chunk.partition(":")
        if not sep:
            raise ConfigurationError(f"Tier {chunk!r} must look like 'price:payout'")
        try:
            price = Decimal(price_str.strip())
            payout = int(payout_str.strip().replace("_", ""))
        except (InvalidOperation, ValueError) as e:
            raise ConfigurationError(f"Tier {chunk!r} is not numeric") from e
        if price <= 0 or payout <= 0:
            raise ConfigurationError(f"Tier {chunk!r} must have a positive price and payout")
        tiers.append(Tier(price=price, payout=payout))
    return tuple(tiers)


def parse_allocation(raw: str) -> tuple[AllocationSlice, ...]:
    """Parse "name:percent" pairs; percentages may not exceed 100 in total"""
    slices = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, sep, percent_str = chunk.partition(":")
        if not sep or not name.strip():
            raise ConfigurationError(f"Allocation {chunk!r} must look like 'name:percent'")
        try:
            percent = Decimal(percent_str.strip())
        except InvalidOperation as e:
            raise ConfigurationError(f"Allocation {chunk!r} is not numeric") from e
        if percent < 0:
            raise ConfigurationError(f"Allocation {chunk!r} is negative")
        slices.append(AllocationSlice(name=name.strip(), percent=percent))

    if sum((s.percent for s in slices), Decimal("0")) > 100:
        raise ConfigurationError("Token allocation exceeds 100%")
    return tuple(slices)


def parse_burn_mode(raw: str) -> BurnMode:
    try:
        return BurnMode(raw.strip().lower())
    except ValueError as e:
        raise ConfigurationError(
            f"BURN_MODE must be one of {[m.value for m in BurnMode]}, got {raw!r}"
        ) from e


def build_distribution_config(settings, distributor: str) -> DistributionConfig:
    """
    Build the immutable distribution config from Settings

    Args:
        settings: presale_bot.core.config.Settings instance
        distributor: Distributor public key (derived from the loaded keypair)

    Raises:
        ConfigurationError: On any malformed or inconsistent value
    """
    burn_mode = parse_burn_mode(settings.BURN_MODE)
    burn_rate_bps = settings.BURN_RATE_BPS

    if not 0 <= burn_rate_bps <= BPS_DENOMINATOR:
        raise ConfigurationError("BURN_RATE_BPS must be between 0 and 10000")
    if burn_mode is not BurnMode.OFF and burn_rate_bps == 0:
        raise ConfigurationError(f"BURN_MODE={burn_mode.value} requires a positive BURN_RATE_BPS")
    if not 0 <= settings.LIQUIDITY_RESERVE_BPS <= BPS_DENOMINATOR:
        raise ConfigurationError("LIQUIDITY_RESERVE_BPS must be between 0 and 10000")
    if settings.TOKEN_DECIMALS < 0:
        raise ConfigurationError("TOKEN_DECIMALS must not be negative")
    if settings.TOKENS_PER_SOL < 0:
        raise ConfigurationError("TOKENS_PER_SOL must not be negative")
    if settings.DISTRIBUTION_CAP < 0:
        raise ConfigurationError("DISTRIBUTION_CAP must not be negative")
    if settings.MAX_DEPOSIT_SOL and settings.MAX_DEPOSIT_SOL < settings.MIN_DEPOSIT_SOL:
        raise ConfigurationError("MAX_DEPOSIT_SOL is below MIN_DEPOSIT_SOL")

    return DistributionConfig(
        treasury=validate_address(settings.TREASURY_WALLET, "TREASURY_WALLET"),
        distributor=validate_address(distributor, "distributor"),
        mint=validate_address(settings.TOKEN_MINT, "TOKEN_MINT"),
        decimals=settings.TOKEN_DECIMALS,
        symbol=settings.TOKEN_SYMBOL,
        rate_per_unit=settings.TOKENS_PER_SOL,
        tiers=parse_tiers(settings.PRICE_TIERS),
        min_deposit=settings.MIN_DEPOSIT_SOL,
        max_deposit=settings.MAX_DEPOSIT_SOL,
        cap=settings.DISTRIBUTION_CAP,
        goal=settings.GOAL_SOL,
        burn_mode=burn_mode,
        burn_rate_bps=burn_rate_bps,
        liquidity_reserve_bps=settings.LIQUIDITY_RESERVE_BPS,
        liquidity_added=settings.LIQUIDITY_ADDED_SOL,
        total_supply=settings.TOKEN_TOTAL_SUPPLY,
        allocation=parse_allocation(settings.TOKEN_ALLOCATION),
    )
