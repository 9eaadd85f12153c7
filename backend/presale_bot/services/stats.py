"""
Stats Aggregator

Read-only figures for the /stats endpoint, computed from one ledger
snapshot so totals, cap remaining and liquidity always agree.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from presale_bot.core.distribution import BPS_DENOMINATOR, DistributionConfig
from presale_bot.core.logging_config import get_logger
from presale_bot.services.ledger import LedgerSnapshot, LedgerStore
from presale_bot.services.policy import remaining_cap

logger = get_logger(__name__)


@dataclass
class AllocationFigure:
    name: str
    percent: Decimal
    tokens: int


@dataclass
class PresaleStats:
    total_base_raised: Decimal
    total_token_sold: int
    total_burned: int
    purchase_count: int
    cap: int | None
    cap_remaining: int | None
    goal: Decimal | None
    goal_progress_pct: Decimal | None
    burn_mode: str
    burn_rate_bps: int
    liquidity_reserved_base: Decimal
    liquidity_added_base: Decimal
    allocation: list[AllocationFigure] = field(default_factory=list)
    degraded: bool = False


def compute_stats(snapshot: LedgerSnapshot, config: DistributionConfig, degraded: bool = False) -> PresaleStats:
    """
    Derive presale stats from a ledger snapshot

    - cap_remaining: None when uncapped
    - goal_progress_pct: percent of GOAL_SOL raised, None without a goal
    - liquidity_reserved_base: LIQUIDITY_RESERVE_BPS share of SOL raised
    """
    goal = config.goal if config.goal > 0 else None
    progress = None
    if goal is not None:
        progress = (snapshot.total_base / goal * 100).quantize(Decimal("0.01"))

    reserved = (
        snapshot.total_base * config.liquidity_reserve_bps / BPS_DENOMINATOR
    ).quantize(Decimal("0.000000001"))

    allocation = [
        AllocationFigure(
            name=slice_.name,
            percent=slice_.percent,
            tokens=int(config.total_supply * slice_.percent / 100),
        )
        for slice_ in config.allocation
    ]

    return PresaleStats(
        total_base_raised=snapshot.total_base,
        total_token_sold=snapshot.total_tokens,
        total_burned=snapshot.total_burned,
        purchase_count=snapshot.purchase_count,
        cap=config.cap if config.is_capped else None,
        cap_remaining=remaining_cap(config, snapshot.total_tokens),
        goal=goal,
        goal_progress_pct=progress,
        burn_mode=config.burn_mode.value,
        burn_rate_bps=config.burn_rate_bps,
        liquidity_reserved_base=reserved,
        liquidity_added_base=config.liquidity_added,
        allocation=allocation,
        degraded=degraded,
    )


def load_stats(ledger: LedgerStore, config: DistributionConfig) -> PresaleStats:
    """
    Stats for the query surface

    A store failure degrades to zero totals (flagged `degraded`) instead of
    failing the request.
    """
    try:
        snapshot = ledger.snapshot()
    except Exception as e:
        logger.error("Ledger snapshot failed, serving empty stats: %s", e)
        return compute_stats(LedgerSnapshot.empty(), config, degraded=True)
    return compute_stats(snapshot, config)
