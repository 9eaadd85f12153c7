"""
Rate Limiting Configuration

Uses slowapi for rate limiting the public read endpoints
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_client_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting

    The query surface is anonymous, so clients are keyed by IP address.
    Behind a proxy the first X-Forwarded-For hop is used instead.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=["1000 per hour"],  # Global default
    storage_uri="memory://",  # Use in-memory storage (upgrade to Redis for multi-instance)
)
