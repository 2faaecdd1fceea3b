"""
Rate Limiting Service

Implements rate limiting using slowapi to protect the API from abuse
and credential stuffing.

Key Features:
=============
1. IP-based rate limiting (proxy headers honoured)
2. Configurable limits per endpoint type
3. Redis storage when enabled, so limits hold across API instances
4. Errors in the same JSON shape as every other API error

Rate Limit Tiers:
=================
- Default (reads): 100 requests/minute
- Auth (login, register, password resets): 10 requests/minute
- Write operations: 30 requests/minute

Every rate-limited endpoint must accept a ``request: Request`` argument;
slowapi reads the client address from it.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from bookshelf.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Handles common proxy headers to get the real client IP.
    Falls back to direct connection IP if no proxy headers.
    """
    # X-Forwarded-For can contain multiple IPs; first is the client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # nginx
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create and configure the rate limiter.

    Uses Redis as storage backend when rate limiting is enabled;
    otherwise the limiter is inert and needs no storage.
    """
    storage_uri = settings.redis_url if settings.rate_limit_enabled else "memory://"

    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"default: {settings.rate_limit_default}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Handler for rate limit exceeded errors.

    Returns 429 with a Retry-After header and the standard error body.
    """
    limit_detail = str(exc.detail)

    response = JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "rate_limit_exceeded",
            "detail": f"Too many requests. Please slow down. ({limit_detail})",
        },
    )

    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(
        f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}"
    )

    return response
