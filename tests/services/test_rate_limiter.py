from __future__ import annotations

import asyncio

from credential_service.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
)

CONFIG = RateLimitConfig(max_requests=3, window_seconds=60)


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_requests_within_window_are_allowed_until_limit() -> None:
    limiter = InMemoryRateLimiter(clock=_FakeClock())

    results = [asyncio.run(limiter.check("ip:1", CONFIG)) for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].limit == 3


def test_rejection_reports_seconds_until_window_resets() -> None:
    clock = _FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    for _ in range(3):
        asyncio.run(limiter.check("ip:1", CONFIG))

    clock.now += 20
    result = asyncio.run(limiter.check("ip:1", CONFIG))

    assert result.allowed is False
    assert result.retry_after == 40


def test_window_expiry_starts_a_new_count() -> None:
    clock = _FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    for _ in range(4):
        asyncio.run(limiter.check("ip:1", CONFIG))

    clock.now += 60
    result = asyncio.run(limiter.check("ip:1", CONFIG))

    assert result.allowed is True
    assert result.remaining == 2


def test_keys_are_counted_independently() -> None:
    limiter = InMemoryRateLimiter(clock=_FakeClock())
    for _ in range(4):
        asyncio.run(limiter.check("user:a", CONFIG))

    assert asyncio.run(limiter.check("user:b", CONFIG)).allowed is True


def test_reset_clears_a_key() -> None:
    limiter = InMemoryRateLimiter(clock=_FakeClock())
    for _ in range(4):
        asyncio.run(limiter.check("user:a", CONFIG))

    asyncio.run(limiter.reset("user:a"))

    assert asyncio.run(limiter.check("user:a", CONFIG)).allowed is True
