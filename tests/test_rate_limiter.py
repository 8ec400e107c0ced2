from __future__ import annotations

import pytest

from grant_matcher.admission.rate_limit import RateLimiter, RateWindow, resolve_client_id


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_sixty_requests_per_minute_then_rejection() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)

    for _ in range(60):
        assert limiter.admit("ip:10.0.0.1").allowed
        clock.advance(0.5)

    decision = limiter.admit("ip:10.0.0.1")

    assert decision.allowed is False
    assert decision.retry_after_seconds == pytest.approx(30.0)


def test_window_rolls_over_after_oldest_request_ages_out() -> None:
    clock = FakeClock()
    limiter = RateLimiter((RateWindow(seconds=60.0, max_requests=2),), clock=clock)

    assert limiter.admit("c")
    clock.advance(10)
    assert limiter.admit("c")
    assert not limiter.admit("c")

    clock.advance(50.5)
    assert limiter.admit("c")
    assert not limiter.admit("c")


def test_longer_window_rejects_even_when_short_window_has_room() -> None:
    clock = FakeClock()
    limiter = RateLimiter(
        (RateWindow(seconds=1.0, max_requests=3), RateWindow(seconds=10.0, max_requests=5)),
        clock=clock,
    )

    for _ in range(3):
        assert limiter.admit("c")
    short_rejection = limiter.admit("c")
    assert not short_rejection
    assert short_rejection.retry_after_seconds == pytest.approx(1.0)

    clock.advance(1.5)
    assert limiter.admit("c")
    assert limiter.admit("c")
    long_rejection = limiter.admit("c")

    assert not long_rejection
    assert long_rejection.retry_after_seconds == pytest.approx(8.5)


def test_clients_are_limited_independently() -> None:
    limiter = RateLimiter((RateWindow(seconds=60.0, max_requests=1),), clock=FakeClock())

    assert limiter.admit("user:a")
    assert not limiter.admit("user:a")
    assert limiter.admit("user:b")


def test_idle_clients_are_collected() -> None:
    clock = FakeClock()
    limiter = RateLimiter((RateWindow(seconds=10.0, max_requests=5),), clock=clock)
    limiter.admit("idle")
    clock.advance(5)
    limiter.admit("active")

    clock.advance(6)
    removed = limiter.collect_idle()

    assert removed == 1
    assert limiter.tracked_clients() == 1
    assert limiter.admit("idle")


def test_resolve_client_id_prefers_subject_then_forwarded_ip() -> None:
    assert resolve_client_id("abc", "1.1.1.1", "2.2.2.2") == "user:abc"
    assert resolve_client_id(None, " 1.1.1.1 , 3.3.3.3", "2.2.2.2") == "ip:1.1.1.1"
    assert resolve_client_id(None, None, "2.2.2.2") == "ip:2.2.2.2"
    assert resolve_client_id() == "unknown"


def test_rate_window_validation() -> None:
    with pytest.raises(ValueError):
        RateWindow(seconds=0.0, max_requests=1)
    with pytest.raises(ValueError):
        RateLimiter(())
