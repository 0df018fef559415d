import pytest
from fastapi import HTTPException

from partilio.core.rate_limit import AuthRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_blocks_after_max_attempts():
    clock = FakeClock()
    limiter = AuthRateLimiter(max_attempts=3, window_seconds=900, clock=clock)
    for _ in range(3):
        limiter.hit("10.0.0.1")

    with pytest.raises(HTTPException) as exc:
        limiter.hit("10.0.0.1")
    assert exc.value.status_code == 429
    assert exc.value.detail["code"] == "TOO_MANY_ATTEMPTS"
    assert "15 minutes" in exc.value.detail["message"]


def test_clients_are_counted_separately():
    limiter = AuthRateLimiter(max_attempts=1, window_seconds=60, clock=FakeClock())
    limiter.hit("10.0.0.1")
    limiter.hit("10.0.0.2")
    with pytest.raises(HTTPException):
        limiter.hit("10.0.0.1")


def test_window_expiry_evicts_entries():
    clock = FakeClock()
    limiter = AuthRateLimiter(max_attempts=1, window_seconds=60, clock=clock)
    limiter.hit("10.0.0.1")
    limiter.hit("10.0.0.2")

    clock.now += 61
    limiter.hit("10.0.0.1")
    # 10.0.0.2 expired and was dropped on the last hit
    assert list(limiter._attempts) == ["10.0.0.1"]


def test_minutes_left_rounds_up():
    clock = FakeClock()
    limiter = AuthRateLimiter(max_attempts=1, window_seconds=600, clock=clock)
    limiter.hit("ip")
    clock.now += 541
    with pytest.raises(HTTPException) as exc:
        limiter.hit("ip")
    assert "1 minutes" in exc.value.detail["message"]


def test_reset_clears_all_windows():
    limiter = AuthRateLimiter(max_attempts=1, window_seconds=60, clock=FakeClock())
    limiter.hit("ip")
    limiter.reset()
    limiter.hit("ip")
