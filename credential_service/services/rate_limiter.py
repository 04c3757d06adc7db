"""Fixed-window rate limiting.

Each key gets a counter that lives for one window (default: 100 requests
per 15 minutes).  The first hit in a window starts the clock; once the
window expires the counter starts over.  A burst straddling a window
boundary can reach twice the limit, which is acceptable for an API whose
expensive path (a ledger write) is also gated by authentication.

Same seam as the repos: a Protocol, an in-memory backend for a single
process, and a Redis backend shared by every API instance.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """allowed, remaining quota, the limit, and seconds until the window resets."""

    allowed: bool
    remaining: int
    limit: int
    retry_after: int


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    max_requests: int = 100
    window_seconds: int = 900


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


def _result(count: int, ttl: int, config: RateLimitConfig) -> RateLimitResult:
    allowed = count <= config.max_requests
    return RateLimitResult(
        allowed=allowed,
        remaining=max(config.max_requests - count, 0),
        limit=config.max_requests,
        retry_after=0 if allowed else max(ttl, 1),
    )


class InMemoryRateLimiter:
    """Per-process windows.  With several API instances each one counts
    separately, so the effective limit multiplies; use Redis there.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (count, window_expires_at)
        self._windows: dict[str, tuple[int, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = self._clock()
        count, expires_at = self._windows.get(key, (0, 0.0))
        if now >= expires_at:
            count, expires_at = 0, now + config.window_seconds
        count += 1
        self._windows[key] = (count, expires_at)
        return _result(count, math.ceil(expires_at - now), config)

    async def reset(self, key: str) -> None:
        self._windows.pop(key, None)


class RedisRateLimiter:
    """INCR + EXPIRE in one MULTI/EXEC pipeline.

    EXPIRE is only set with NX so later hits in the same window do not
    push the reset time out.
    """

    _PREFIX = "ratelimit:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        redis_key = f"{self._PREFIX}{key}"
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(redis_key)
            pipe.expire(redis_key, config.window_seconds, nx=True)
            pipe.ttl(redis_key)
            count, _, ttl = await pipe.execute()
        # ttl is -1 if the key somehow lost its expiry; treat as a full window.
        if ttl < 0:
            await self._redis.expire(redis_key, config.window_seconds)
            ttl = config.window_seconds
        return _result(int(count), int(ttl), config)

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")
