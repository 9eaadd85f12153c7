"""
Presale Distributor - FastAPI Application

Watches the treasury for SOL deposits, pays out the presale token and
exposes read-only progress endpoints for the presale page.
"""

from fastapi import FastAPI, Depends, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime, timezone
from typing import Dict, Any
from contextlib import asynccontextmanager

from presale_bot.api.deps import get_ledger, get_poller
from presale_bot.api.routes import presale, wallets
from presale_bot.chain.client import SolanaRpcClient, load_keypair
from presale_bot.chain.poller import DepositPoller
from presale_bot.core.config import settings
from presale_bot.core.distribution import build_distribution_config
from presale_bot.core.exceptions import (
    APIException,
    StorageUnavailableException,
    api_exception_handler,
    http_exception_handler
)
from presale_bot.core.logging_config import setup_logging, get_logger
from presale_bot.core.rate_limit import limiter
from presale_bot.services.ledger import LedgerStore, build_ledger_store
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the distribution engine once and tear it down on shutdown

    Any ConfigurationError raised here aborts startup, so the process
    never serves with malformed wallets or keys.
    """
    setup_logging(level=settings.LOG_LEVEL, json_format=settings.use_json_logs)

    logger = get_logger()
    logger.info("Starting Presale Distributor", extra={
        "version": VERSION,
        "environment": settings.ENVIRONMENT
    })

    keypair = load_keypair(settings.DISTRIBUTOR_PRIVATE_KEY)
    config = build_distribution_config(settings, distributor=str(keypair.pubkey()))
    ledger = build_ledger_store(settings)
    client = SolanaRpcClient(keypair=keypair, mint=config.mint, decimals=config.decimals)

    app.state.distribution_config = config
    app.state.ledger = ledger
    app.state.chain_client = client
    app.state.poller = None

    if settings.POLLER_ENABLED:
        poller = DepositPoller(client, ledger, config)
        await poller.start(warm_start=settings.WARM_START)
        app.state.poller = poller
    else:
        logger.warning("Poller disabled (POLLER_ENABLED=false), serving read endpoints only")

    yield

    logger.info("Shutting down Presale Distributor")
    if app.state.poller is not None:
        await app.state.poller.stop()
    await client.close()


app = FastAPI(
    title="Presale Distributor",
    description="Automatic SPL token payouts for SOL presale deposits",
    version=VERSION,
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_exception_handler(APIException, api_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)

# SECURITY: Restrict origins in production (configured via ALLOWED_ORIGINS env var)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(presale.router)
app.include_router(wallets.router)


@app.get("/")
@limiter.limit("100/minute")
def root(request: Request) -> Dict[str, str]:
    """Service banner"""
    return {
        "message": "Presale Distributor OK",
        "version": VERSION,
        "docs": "/docs",
    }


@app.get("/health")
@limiter.limit("60/minute")
def health(
    request: Request,
    ledger: LedgerStore = Depends(get_ledger),
    poller: DepositPoller | None = Depends(get_poller),
) -> Dict[str, Any]:
    """
    Liveness check

    Always 200 while the process is up. With durable storage configured,
    "storage" reports whether the database answered.
    """
    result: Dict[str, Any] = {
        "ok": True,
        "time": datetime.now(timezone.utc).isoformat(),
        "poller_running": bool(poller and poller.running),
        "storage_backend": "sql" if ledger.durable else "memory",
    }

    if ledger.durable:
        try:
            ledger.ping()
            result["storage"] = "ok"
        except Exception as e:
            result["storage"] = f"error: {e}"

    return result


@app.get("/health/ready")
@limiter.limit("60/minute")
def health_ready(
    request: Request,
    ledger: LedgerStore = Depends(get_ledger),
) -> Dict[str, Any]:
    """
    Readiness check

    Returns:
        200: Ledger storage reachable
        503: Ledger storage unreachable
    """
    try:
        ledger.ping()
    except Exception as e:
        raise StorageUnavailableException(str(e))

    return {
        "status": "ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {"storage": "ok"},
    }


# Запуск приложения:
# uvicorn presale_bot.main:app --app-dir backend
#
# Проверка:
# curl http://localhost:8000/stats
# curl http://localhost:8000/recent
