"""Tests for fixed-window throttling and the YAML policy."""

from __future__ import annotations

import pytest

from genealogy_records.core.errors import RateLimitError
from genealogy_records.web.ratelimit import (
    FixedWindowRateLimiter,
    RateLimit,
    RateLimitPolicy,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestFixedWindowRateLimiter:

    def test_allows_up_to_limit(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=3, window_seconds=60), clock)
        for _ in range(3):
            limiter.hit("ip:1")
        assert limiter.remaining("ip:1") == 0

        with pytest.raises(RateLimitError) as exc_info:
            limiter.hit("ip:1")
        assert exc_info.value.retry_after == 60
        assert exc_info.value.status_code == 429

    def test_retry_after_counts_down(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=1, window_seconds=60), clock)
        limiter.hit("ip:1")
        clock.advance(45.5)

        with pytest.raises(RateLimitError) as exc_info:
            limiter.hit("ip:1")
        assert exc_info.value.retry_after == 15

    def test_window_resets(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=1, window_seconds=60), clock)
        limiter.hit("ip:1")
        clock.advance(60)
        limiter.hit("ip:1")
        assert limiter.remaining("ip:1") == 0

    def test_keys_are_independent(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=1, window_seconds=60), clock)
        limiter.hit("ip:1")
        limiter.hit("ip:2")
        assert limiter.remaining("ip:3") == 1

    def test_rejected_hits_do_not_extend_window(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=1, window_seconds=10), clock)
        limiter.hit("k")
        for _ in range(5):
            clock.advance(1)
            with pytest.raises(RateLimitError):
                limiter.hit("k")
        clock.advance(5)
        limiter.hit("k")

    def test_reset(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=1, window_seconds=60), clock)
        limiter.hit("k")
        limiter.reset()
        limiter.hit("k")

    def test_expired_windows_are_swept(self, clock):
        limiter = FixedWindowRateLimiter(RateLimit(limit=5, window_seconds=60), clock)
        for i in range(100):
            limiter.hit(f"ip:{i}")
        assert limiter.tracked_keys() == 100

        clock.advance(61)
        limiter.hit("ip:new")
        assert limiter.tracked_keys() == 1
        assert limiter.remaining("ip:new") == 4


class TestRateLimitPolicy:

    def test_packaged_policy(self, clock):
        policy = RateLimitPolicy(clock=clock)
        assert policy.names() == [
            "forgot_password", "login", "password", "profile", "refresh", "register",
        ]
        assert policy.global_limiter.limit == RateLimit(1000, 900)
        assert policy.limiter("register").limit == RateLimit(5, 900)
        assert policy.limiter("forgot_password").limit == RateLimit(3, 3600)

    def test_unknown_policy(self, clock):
        with pytest.raises(KeyError):
            RateLimitPolicy(clock=clock).limiter("upload")

    def test_custom_file(self, tmp_path, clock):
        path = tmp_path / "limits.yaml"
        path.write_text("policies:\n  login:\n    limit: 2\n    window_seconds: 30\n")

        policy = RateLimitPolicy(path, clock=clock)
        assert policy.global_limiter is None
        login = policy.limiter("login")
        login.hit("ip:1")
        login.hit("ip:1")
        with pytest.raises(RateLimitError):
            login.hit("ip:1")

        policy.reset()
        login.hit("ip:1")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RateLimitPolicy(tmp_path / "absent.yaml")
