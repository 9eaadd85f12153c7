"""
Wallet Routes

Live on-chain balances of the treasury and the distributor
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from presale_bot.api.deps import get_chain_client, get_distribution_config
from presale_bot.chain.client import ChainClient, ChainClientError
from presale_bot.core.distribution import DistributionConfig
from presale_bot.core.exceptions import ChainUnavailableException
from presale_bot.core.logging_config import get_logger
from presale_bot.core.rate_limit import limiter

logger = get_logger(__name__)
router = APIRouter(tags=["wallets"])


class BalancesResponse(BaseModel):
    treasury: str
    treasury_sol: float
    distributor: str
    distributor_sol: float
    distributor_tokens: float
    symbol: str


@router.get("/balances", response_model=BalancesResponse)
@limiter.limit("30/minute")
async def get_balances(
    request: Request,
    client: ChainClient = Depends(get_chain_client),
    config: DistributionConfig = Depends(get_distribution_config),
) -> BalancesResponse:
    """
    Treasury SOL, distributor SOL (fees/rent) and distributor token holdings

    Straight from the RPC node, no ledger involvement.

    Raises:
        ChainUnavailableException(503): If the RPC node cannot be reached
    """
    try:
        treasury_sol = await client.get_sol_balance(config.treasury)
        distributor_sol = await client.get_sol_balance(config.distributor)
        distributor_tokens = await client.get_token_balance(config.distributor)
    except ChainClientError as e:
        logger.warning("Balance lookup failed: %s", e)
        raise ChainUnavailableException(str(e))

    return BalancesResponse(
        treasury=config.treasury,
        treasury_sol=float(treasury_sol),
        distributor=config.distributor,
        distributor_sol=float(distributor_sol),
        distributor_tokens=float(distributor_tokens),
        symbol=config.symbol,
    )
