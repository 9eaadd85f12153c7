"""
Pricing Resolver

Maps a SOL deposit to a whole-token payout:
- exact tier prices pay their flat tier amount
- anything else pays floor(amount * TOKENS_PER_SOL)

Example with tiers {0.10 -> 5,000,000; 0.25 -> 15,000,000} and 70M/SOL:
- 0.10 SOL  -> 5,000,000 (tier, not 7,000,000)
- 0.12 SOL  -> 8,400,000 (linear)
"""

import math
from decimal import Decimal

from presale_bot.core.distribution import DistributionConfig, Tier, TIER_TOLERANCE


def match_tier(base_amount: Decimal, tiers: tuple[Tier, ...]) -> Tier | None:
    """Return the first tier whose price is within tolerance of `base_amount`"""
    for tier in tiers:
        if abs(tier.price - base_amount) < TIER_TOLERANCE:
            return tier
    return None


def resolve_token_amount(base_amount: Decimal, config: DistributionConfig) -> int:
    """
    Whole tokens owed for `base_amount` SOL

    Returns:
        int: Payout in whole tokens, 0 when the deposit earns nothing
             (callers treat 0 as not eligible)
    """
    if base_amount <= 0:
        return 0

    tier = match_tier(base_amount, config.tiers)
    if tier is not None:
        return tier.payout

    tokens = math.floor(base_amount * config.rate_per_unit)
    return tokens if tokens > 0 else 0
