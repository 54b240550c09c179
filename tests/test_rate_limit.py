"""
tests.test_rate_limit

Token bucket pacing with a fake clock.
"""

from __future__ import annotations

import pytest

from rolesync.services.rate_limit import AsyncTokenBucket


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_calls_are_spaced_by_the_rate() -> None:
    clock = FakeClock()
    bucket = AsyncTokenBucket(rate=2.0, clock=clock, sleep=clock.sleep)

    waits = [await bucket.acquire() for _ in range(3)]

    assert waits == [0.0, 0.5, 0.5]
    assert clock.now == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_idle_time_refills_up_to_burst_only() -> None:
    clock = FakeClock()
    bucket = AsyncTokenBucket(rate=1.0, burst=2, clock=clock, sleep=clock.sleep)
    await bucket.acquire()
    await bucket.acquire()

    clock.now += 60.0
    assert await bucket.acquire() == 0.0
    assert await bucket.acquire() == 0.0
    assert await bucket.acquire() == pytest.approx(1.0)


def test_rate_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AsyncTokenBucket(rate=0)
