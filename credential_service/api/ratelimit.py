"""Rate limiting dependency for FastAPI routes.

A dependency rather than middleware so that only the credential routes
are limited; /health, /ready and /metrics must always answer.

Keys use the subject of a bearer token that verifies, otherwise the
client IP.  An unverified subject never selects the window, so minting
fresh self-signed tokens does not reset the limit.
"""

from __future__ import annotations

import logging

import jwt
from fastapi import HTTPException, Request, status
from redis.exceptions import RedisError

from credential_service.core.config import SETTINGS
from credential_service.core.metrics import RATE_LIMIT_HITS
from credential_service.db.redis import redis_pool
from credential_service.services import token_service
from credential_service.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

_rate_limiter: RateLimiter
if redis_pool is not None:
    _rate_limiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()


_DEFAULT_CONFIG = RateLimitConfig(
    max_requests=SETTINGS.rate_limit_max_requests,
    window_seconds=SETTINGS.rate_limit_window_seconds,
)


def set_rate_limiter(limiter: RateLimiter) -> None:
    """Swap the backend (tests install a fresh in-memory limiter)."""
    global _rate_limiter
    _rate_limiter = limiter


def require_rate_limit(config: RateLimitConfig = _DEFAULT_CONFIG):
    """Dependency factory: enforce a fixed-window limit on a route.

    Usage: dependencies=[Depends(require_rate_limit())]
    """

    async def _check(request: Request) -> None:
        key = _build_key(request)
        try:
            result = await _rate_limiter.check(key, config)
        except RedisError:
            logger.warning("Rate limiter unavailable, allowing key=%s", key)
            return

        if not result.allowed:
            RATE_LIMIT_HITS.labels(
                key_type="user" if key.startswith("user:") else "ip"
            ).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests from this IP, please try again later",
                headers={
                    "Retry-After": str(result.retry_after),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = token_service.decode_access_token(auth_header[7:])
        except jwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
