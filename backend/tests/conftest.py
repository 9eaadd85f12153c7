"""
Pytest Configuration and Fixtures

Shared test fixtures for the presale distributor
"""

import json
import os
from dataclasses import replace
from decimal import Decimal

from solders.keypair import Keypair

# Settings are read at import time, so the environment must be ready first
DISTRIBUTOR_KEYPAIR = Keypair()
TREASURY = str(Keypair().pubkey())
MINT = str(Keypair().pubkey())
DISTRIBUTOR = str(DISTRIBUTOR_KEYPAIR.pubkey())

os.environ["TREASURY_WALLET"] = TREASURY
os.environ["TOKEN_MINT"] = MINT
os.environ["DISTRIBUTOR_PRIVATE_KEY"] = json.dumps(list(bytes(DISTRIBUTOR_KEYPAIR)))
os.environ["DATABASE_URL"] = ""
os.environ["POLLER_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient

from presale_bot.chain.client import (
    ChainClient,
    ChainClientError,
    NativeTransfer,
    ParsedTransaction,
    SignatureInfo,
)
from presale_bot.core.distribution import DistributionConfig, Tier
from presale_bot.db.session import create_db_engine, create_session_factory, drop_db, init_db
from presale_bot.services.ledger import MemoryLedgerStore, SqlLedgerStore

LAMPORTS = 1_000_000_000

DEFAULT_TIERS = (
    Tier(price=Decimal("0.10"), payout=5_000_000),
    Tier(price=Decimal("0.25"), payout=15_000_000),
    Tier(price=Decimal("0.50"), payout=35_000_000),
)


class FakeChainClient(ChainClient):
    """
    In-memory chain

    Signatures are kept newest first, like getSignaturesForAddress.
    Set fail_* flags to simulate RPC failures.
    """

    def __init__(self):
        self.signatures: list[SignatureInfo] = []
        self.transactions: dict[str, ParsedTransaction] = {}
        self.transfers: list[tuple[str, int]] = []
        self.burns: list[int] = []
        self.fetches: list[str] = []
        self.sol_balances: dict[str, Decimal] = {}
        self.token_balances: dict[str, Decimal] = {}
        self.fail_list = False
        self.fail_fetch = False
        self.fail_transfer = False
        self.fail_burn = False
        self.fail_balances = False
        self._slot = 100

    def add_deposit(
        self,
        signature: str,
        sender: str,
        sol: str | Decimal,
        destination: str = TREASURY,
        success: bool = True,
    ) -> ParsedTransaction:
        """Append a new (newest) transaction with one SOL transfer"""
        self._slot += 1
        lamports = int(Decimal(str(sol)) * LAMPORTS)
        tx = ParsedTransaction(
            signature=signature,
            slot=self._slot,
            block_time=1_700_000_000 + self._slot,
            success=success,
            transfers=[NativeTransfer(source=sender, destination=destination, lamports=lamports)],
        )
        self.transactions[signature] = tx
        self.signatures.insert(0, SignatureInfo(signature=signature, slot=self._slot, failed=not success))
        return tx

    async def get_signatures_for_address(self, address: str, limit: int) -> list[SignatureInfo]:
        if self.fail_list:
            raise ChainClientError("list failed")
        return list(self.signatures[:limit])

    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        self.fetches.append(signature)
        if self.fail_fetch:
            raise ChainClientError("fetch failed")
        return self.transactions.get(signature)

    async def transfer_tokens(self, recipient: str, amount: int) -> str:
        if self.fail_transfer:
            raise ChainClientError("transfer failed")
        self.transfers.append((recipient, amount))
        return f"payout-{len(self.transfers)}"

    async def burn_tokens(self, amount: int) -> str:
        if self.fail_burn:
            raise ChainClientError("burn failed")
        self.burns.append(amount)
        return f"burn-{len(self.burns)}"

    async def get_sol_balance(self, address: str) -> Decimal:
        if self.fail_balances:
            raise ChainClientError("balance failed")
        return self.sol_balances.get(address, Decimal("0"))

    async def get_token_balance(self, owner: str) -> Decimal:
        if self.fail_balances:
            raise ChainClientError("balance failed")
        return self.token_balances.get(owner, Decimal("0"))


@pytest.fixture
def fake_chain():
    return FakeChainClient()


@pytest.fixture
def make_config():
    """
    Factory for DistributionConfig with test wallets

    Usage:
        config = make_config(cap=10_000_000, burn_mode=BurnMode.TAKE, burn_rate_bps=500)
    """
    base = DistributionConfig(
        treasury=TREASURY,
        distributor=DISTRIBUTOR,
        mint=MINT,
        decimals=6,
        symbol="BUZZ",
        rate_per_unit=Decimal("70000000"),
        tiers=DEFAULT_TIERS,
    )

    def _make(**overrides):
        return replace(base, **overrides)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def memory_ledger():
    return MemoryLedgerStore(recent_limit=25)


@pytest.fixture
def sql_ledger(tmp_path):
    """SQLite-backed ledger in a per-test file"""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield SqlLedgerStore(create_session_factory(engine))
    drop_db(engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def ledger(request):
    """Runs the test once per ledger backend"""
    return request.getfixturevalue(f"{request.param}_ledger")


@pytest.fixture
def test_client(memory_ledger, fake_chain, config):
    """
    FastAPI test client with the engine components overridden

    Tests seed state through the memory_ledger / fake_chain fixtures,
    which are the same instances the app sees.
    """
    from presale_bot.main import app
    from presale_bot.api.deps import get_chain_client, get_distribution_config, get_ledger

    app.dependency_overrides[get_ledger] = lambda: memory_ledger
    app.dependency_overrides[get_chain_client] = lambda: fake_chain
    app.dependency_overrides[get_distribution_config] = lambda: config

    # Disable rate limiting for tests
    app.state.limiter.enabled = False

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
