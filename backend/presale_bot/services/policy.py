"""
Distribution Policy

Turns a raw token amount into the final (buyer, burn) split.

Rules, applied in order:
1. Guards - deposits outside [MIN_DEPOSIT_SOL, MAX_DEPOSIT_SOL] are rejected
2. Cap - buyer-side tokens never exceed DISTRIBUTION_CAP; the deposit that
   would cross it is clamped to land exactly on the cap
3. Burn split
   - take:  burn = floor(capped * bps / 10000), buyer = capped - burn
   - extra: buyer = capped, burn = floor(buyer * bps / 10000) on top
   - off:   no burn

Only buyer_amount counts toward the cap. In extra mode the burn comes out
of the distributor's holdings in addition to the payout.

Example (take, 500 bps, raw 1,000,000):
- burn:  50,000
- buyer: 950,000  (buyer + burn == capped raw amount)
"""

from dataclasses import dataclass
from decimal import Decimal

from presale_bot.core.distribution import BPS_DENOMINATOR, BurnMode, DistributionConfig

# Reasons a deposit is rejected (mirrors SkippedDeposit.reason)
REASON_BELOW_MINIMUM = "below_minimum"
REASON_ABOVE_MAXIMUM = "above_maximum"
REASON_ZERO_PAYOUT = "zero_payout"
REASON_BURN_CONSUMES_PAYOUT = "burn_consumes_payout"
REASON_CAP_EXHAUSTED = "cap_exhausted"


@dataclass(frozen=True)
class PolicyDecision:
    buyer_amount: int
    burn_amount: int
    eligible: bool
    reason: str | None = None
    capped: bool = False  # buyer amount was clamped to the remaining cap

    @property
    def cap_exhausted(self) -> bool:
        return self.reason == REASON_CAP_EXHAUSTED

    @classmethod
    def reject(cls, reason: str) -> "PolicyDecision":
        return cls(buyer_amount=0, burn_amount=0, eligible=False, reason=reason)


def remaining_cap(config: DistributionConfig, distributed_total: int) -> int | None:
    """Tokens left under the cap, or None when uncapped"""
    if not config.is_capped:
        return None
    return max(0, config.cap - distributed_total)


def bps_of(amount: int, bps: int) -> int:
    """floor(amount * bps / 10000) in integer arithmetic"""
    return amount * bps // BPS_DENOMINATOR


def apply_distribution_policy(
    base_amount: Decimal,
    raw_amount: int,
    distributed_total: int,
    config: DistributionConfig,
) -> PolicyDecision:
    """
    Decide what a deposit pays out

    Args:
        base_amount: SOL received
        raw_amount: Whole tokens from the pricing resolver
        distributed_total: Cumulative buyer-side tokens already recorded
        config: Distribution config

    Returns:
        PolicyDecision with the final buyer and burn amounts
    """
    if base_amount < config.min_deposit:
        return PolicyDecision.reject(REASON_BELOW_MINIMUM)
    if config.max_deposit > 0 and base_amount > config.max_deposit:
        return PolicyDecision.reject(REASON_ABOVE_MAXIMUM)
    if raw_amount <= 0:
        return PolicyDecision.reject(REASON_ZERO_PAYOUT)

    amount = raw_amount
    capped = False
    remaining = remaining_cap(config, distributed_total)
    if remaining is not None:
        if remaining == 0:
            return PolicyDecision.reject(REASON_CAP_EXHAUSTED)
        if amount > remaining:
            amount = remaining
            capped = True

    if config.burn_mode is BurnMode.TAKE:
        burn = bps_of(amount, config.burn_rate_bps)
        buyer = amount - burn
        if buyer <= 0:
            return PolicyDecision.reject(REASON_BURN_CONSUMES_PAYOUT)
        return PolicyDecision(buyer_amount=buyer, burn_amount=burn, eligible=True, capped=capped)

    if config.burn_mode is BurnMode.EXTRA:
        burn = bps_of(amount, config.burn_rate_bps)
        return PolicyDecision(buyer_amount=amount, burn_amount=burn, eligible=True, capped=capped)

    return PolicyDecision(buyer_amount=amount, burn_amount=0, eligible=True, capped=capped)
