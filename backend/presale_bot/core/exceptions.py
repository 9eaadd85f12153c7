"""
Standardized Exception Handling

Domain errors raised by the distribution engine, plus the structured
error format used by the HTTP query surface:
{
    "detail": "Human-readable message",  // Backward compat
    "error": {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "details": {...}
    }
}
"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
from presale_bot.core.logging_config import get_logger

logger = get_logger()


class PresaleError(Exception):
    """Base class for distribution engine errors"""
    pass


class ConfigurationError(PresaleError):
    """
    Invalid startup configuration

    Malformed addresses, unreadable key material, invalid tiers or burn
    settings. Raised while building the app state; the service must not
    start serving.
    """
    pass


class PayoutNotRecordedError(PresaleError):
    """
    Buyer was paid but the burn or the ledger write failed afterwards

    The deposit stays unseen, so the next cycle pays it again unless an
    operator records it first. The original failure is chained as __cause__.
    """

    def __init__(self, signature: str, payout_tx: str | None):
        self.signature = signature
        self.payout_tx = payout_tx
        super().__init__(f"Deposit {signature} paid (payout {payout_tx}) but not recorded")


class APIException(HTTPException):
    """
    Base exception for API errors with structured response

    Usage:
        raise APIException(503, "CHAIN_UNAVAILABLE", "RPC node unreachable",
                          {"reason": "timeout"})
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}

        error_detail = {
            "detail": message,
            "error": {
                "code": code,
                "message": message,
            }
        }

        if details:
            error_detail["error"]["details"] = details

        super().__init__(status_code=status_code, detail=error_detail)


class ChainUnavailableException(APIException):
    """Live chain data could not be fetched"""
    def __init__(self, reason: str):
        super().__init__(
            503,
            "CHAIN_UNAVAILABLE",
            "Unable to fetch on-chain data",
            {"reason": reason}
        )


class StorageUnavailableException(APIException):
    """Durable ledger is unreachable"""
    def __init__(self, reason: str):
        super().__init__(
            503,
            "STORAGE_UNAVAILABLE",
            "Ledger storage is unreachable",
            {"reason": reason}
        )


async def api_exception_handler(request: Request, exc: APIException):
    """
    Global exception handler for APIException

    Logs the error and returns structured JSON response
    """
    logger.warning(
        f"API Exception: {exc.code}",
        extra={
            "code": exc.code,
            "error_message": exc.message,
            "details": exc.details,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.detail
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handler for standard HTTPException to ensure consistent format
    """
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {
            "detail": str(exc.detail),
            "error": {
                "code": "HTTP_ERROR",
                "message": str(exc.detail)
            }
        }

    logger.warning(
        f"HTTP Exception: {exc.status_code}",
        extra={
            "status_code": exc.status_code,
            "detail": exc.detail,
            "path": request.url.path,
            "method": request.method
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=content
    )
