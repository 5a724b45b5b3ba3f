from __future__ import annotations

import pytest

from marketdesk.infra.rate_limiter import RateLimiter, mercadolibre_rate_limiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRateLimiter:
    def test_admits_up_to_limit_without_waiting(self) -> None:
        # setup
        clock = FakeClock()
        limiter = RateLimiter(3, 60.0, clock=clock, sleep=clock.sleep)

        # act
        for _ in range(3):
            limiter.wait_for_slot()

        # assert
        assert clock.sleeps == []

    def test_blocks_until_oldest_call_leaves_window(self) -> None:
        # setup
        clock = FakeClock()
        limiter = RateLimiter(2, 10.0, clock=clock, sleep=clock.sleep)
        limiter.wait_for_slot()
        clock.now = 4.0
        limiter.wait_for_slot()

        # act
        limiter.wait_for_slot()

        # assert: waits for the call made at t=0 to age out
        assert clock.sleeps == [pytest.approx(6.01)]

    def test_old_calls_expire(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(1, 5.0, clock=clock, sleep=clock.sleep)
        limiter.wait_for_slot()

        clock.now = 6.0
        limiter.wait_for_slot()

        assert clock.sleeps == []

    def test_mercadolibre_defaults(self) -> None:
        limiter = mercadolibre_rate_limiter()

        assert limiter._max_requests == 1500
        assert limiter._window == 60.0
