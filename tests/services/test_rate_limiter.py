"""Token bucket behavior of the in-process limiter.

The Redis limiter runs the same algorithm in Lua; it is exercised
against a live Redis only, so these tests cover the in-memory one.
"""

from __future__ import annotations

import asyncio

from gradeflow.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
)

CONFIG = RateLimitConfig(capacity=3, refill_rate=0.5)


def _drain(limiter: InMemoryRateLimiter, key: str, n: int):
    async def go():
        return [await limiter.check(key, CONFIG) for _ in range(n)]

    return asyncio.run(go())


def test_in_memory_limiter_satisfies_protocol() -> None:
    assert isinstance(InMemoryRateLimiter(), RateLimiter)


def test_burst_up_to_capacity_then_reject() -> None:
    results = _drain(InMemoryRateLimiter(), "ai-eval:user:p1", 4)

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert all(r.limit == 3 for r in results)
    assert results[-1].retry_after > 0
    # one token at 0.5/s takes at most two seconds
    assert results[-1].retry_after <= 2


def test_keys_have_separate_buckets() -> None:
    limiter = InMemoryRateLimiter()
    _drain(limiter, "ai-eval:user:p1", 3)
    assert _drain(limiter, "ai-eval:user:p2", 1)[0].allowed


def test_tokens_refill_over_time() -> None:
    limiter = InMemoryRateLimiter()
    _drain(limiter, "k", 3)
    tokens, last = limiter._buckets["k"]
    # pretend the last check happened four seconds ago
    limiter._buckets["k"] = (tokens, last - 4)
    assert _drain(limiter, "k", 1)[0].allowed


def test_reset_restores_full_bucket() -> None:
    limiter = InMemoryRateLimiter()
    _drain(limiter, "k", 4)
    asyncio.run(limiter.reset("k"))
    assert [r.allowed for r in _drain(limiter, "k", 3)] == [True, True, True]


def test_default_config_allows_ten_per_minute_burst() -> None:
    config = RateLimitConfig()
    assert config.capacity == 10
    assert config.capacity * (1 / config.refill_rate) == 60
