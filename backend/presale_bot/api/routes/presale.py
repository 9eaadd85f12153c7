"""
Presale Routes

Read-only endpoints for the presale widget: config, stats, recent purchases
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from typing import List, Optional

from presale_bot.api.deps import get_distribution_config, get_ledger
from presale_bot.core.distribution import DistributionConfig
from presale_bot.core.logging_config import get_logger
from presale_bot.core.rate_limit import limiter
from presale_bot.services.ledger import LedgerStore
from presale_bot.services.stats import load_stats

logger = get_logger(__name__)
router = APIRouter(tags=["presale"])

MAX_RECENT = 25


class TierResponse(BaseModel):
    price: float  # SOL
    payout: int  # whole tokens


class ConfigResponse(BaseModel):
    """Distribution parameters (no ledger access)"""
    treasury: str
    distributor: str
    mint: str
    decimals: int
    symbol: str
    tiers: List[TierResponse]
    tokens_per_sol: float
    min_deposit: float
    max_deposit: Optional[float]
    cap: Optional[int]
    burn_mode: str
    burn_rate_bps: int


class AllocationResponse(BaseModel):
    name: str
    percent: float
    tokens: int


class StatsResponse(BaseModel):
    total_base_raised: float
    total_token_sold: int
    total_burned: int
    purchase_count: int
    cap: Optional[int]
    cap_remaining: Optional[int]
    goal: Optional[float]
    goal_progress_pct: Optional[float]
    burn_mode: str
    burn_rate_bps: int
    liquidity_reserved_base: float
    liquidity_added_base: float
    allocation: List[AllocationResponse]
    degraded: bool


class PurchaseResponse(BaseModel):
    """Single fulfilled deposit"""
    signature: str
    sender: str
    amount_sol: float
    tokens: int
    recorded_at: Optional[str]


@router.get("/config", response_model=ConfigResponse)
@limiter.limit("60/minute")
def get_config(
    request: Request,
    config: DistributionConfig = Depends(get_distribution_config),
) -> ConfigResponse:
    """Static distribution parameters"""
    return ConfigResponse(
        treasury=config.treasury,
        distributor=config.distributor,
        mint=config.mint,
        decimals=config.decimals,
        symbol=config.symbol,
        tiers=[TierResponse(price=float(t.price), payout=t.payout) for t in config.tiers],
        tokens_per_sol=float(config.rate_per_unit),
        min_deposit=float(config.min_deposit),
        max_deposit=float(config.max_deposit) if config.max_deposit > 0 else None,
        cap=config.cap if config.is_capped else None,
        burn_mode=config.burn_mode.value,
        burn_rate_bps=config.burn_rate_bps,
    )


@router.get("/stats", response_model=StatsResponse)
@limiter.limit("120/minute")
def get_stats(
    request: Request,
    ledger: LedgerStore = Depends(get_ledger),
    config: DistributionConfig = Depends(get_distribution_config),
) -> StatsResponse:
    """
    Presale progress

    Totals come from one ledger snapshot. On store failure the totals are
    zero and `degraded` is true.
    """
    stats = load_stats(ledger, config)

    return StatsResponse(
        total_base_raised=float(stats.total_base_raised),
        total_token_sold=stats.total_token_sold,
        total_burned=stats.total_burned,
        purchase_count=stats.purchase_count,
        cap=stats.cap,
        cap_remaining=stats.cap_remaining,
        goal=float(stats.goal) if stats.goal is not None else None,
        goal_progress_pct=float(stats.goal_progress_pct) if stats.goal_progress_pct is not None else None,
        burn_mode=stats.burn_mode,
        burn_rate_bps=stats.burn_rate_bps,
        liquidity_reserved_base=float(stats.liquidity_reserved_base),
        liquidity_added_base=float(stats.liquidity_added_base),
        allocation=[
            AllocationResponse(name=a.name, percent=float(a.percent), tokens=a.tokens)
            for a in stats.allocation
        ],
        degraded=stats.degraded,
    )


@router.get("/recent", response_model=List[PurchaseResponse])
@limiter.limit("120/minute")
def get_recent(
    request: Request,
    limit: int = MAX_RECENT,
    ledger: LedgerStore = Depends(get_ledger),
) -> List[PurchaseResponse]:
    """
    Most recent purchases, newest first

    Query params:
        - limit: 1..25 (out-of-range values fall back to 25)

    Returns an empty list if the ledger cannot be read.
    """
    if limit < 1 or limit > MAX_RECENT:
        limit = MAX_RECENT

    try:
        entries = ledger.recent_purchases(limit)
    except Exception as e:
        logger.error("Failed to read recent purchases: %s", e)
        return []

    return [
        PurchaseResponse(
            signature=e.signature,
            sender=e.sender,
            amount_sol=round(float(e.base_amount), 9),
            tokens=e.token_amount,
            recorded_at=e.recorded_at.isoformat() if e.recorded_at else None,
        )
        for e in entries
    ]
