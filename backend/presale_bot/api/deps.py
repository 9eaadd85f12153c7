"""
API Dependencies

FastAPI dependencies exposing the components built at startup.
Tests swap them with app.dependency_overrides.
"""

from fastapi import Request

from presale_bot.chain.client import ChainClient
from presale_bot.chain.poller import DepositPoller
from presale_bot.core.distribution import DistributionConfig
from presale_bot.services.ledger import LedgerStore


def get_ledger(request: Request) -> LedgerStore:
    """Ledger store selected at startup (durable or in-memory)"""
    return request.app.state.ledger


def get_distribution_config(request: Request) -> DistributionConfig:
    return request.app.state.distribution_config


def get_chain_client(request: Request) -> ChainClient:
    return request.app.state.chain_client


def get_poller(request: Request) -> DepositPoller | None:
    """Poller instance, None when POLLER_ENABLED is off"""
    return getattr(request.app.state, "poller", None)
