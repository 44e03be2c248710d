"""
Request throttling.

Limits are fixed windows counted in process memory. Counters reset on
restart and are not shared between instances; a shared backend only needs
to implement ``RateLimiter.hit``.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import yaml

from genealogy_records.core.errors import RateLimitError


@dataclass(frozen=True)
class RateLimit:
    """At most ``limit`` hits per ``window_seconds``."""
    limit: int
    window_seconds: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RateLimit:
        return cls(limit=int(data["limit"]), window_seconds=int(data["window_seconds"]))


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter(ABC):

    @abstractmethod
    def hit(self, key: str) -> None:
        """Count one request for ``key``; raise RateLimitError once over the limit."""
        pass


class FixedWindowRateLimiter(RateLimiter):
    """
    Counts hits per key in windows that start at the key's first hit.

    Expired windows are dropped at most once per window length, so keys that
    stop sending requests do not accumulate.
    """

    def __init__(self, limit: RateLimit, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = clock() + limit.window_seconds

    def hit(self, key: str) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            self._windows[key] = _Window(count=1, reset_at=now + self.limit.window_seconds)
            return

        if window.count >= self.limit.limit:
            raise RateLimitError(retry_after=max(1, math.ceil(window.reset_at - now)))
        window.count += 1

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.limit.window_seconds

    def tracked_keys(self) -> int:
        """Number of keys holding a window, expired or not."""
        return len(self._windows)

    def remaining(self, key: str) -> int:
        window = self._windows.get(key)
        if window is None or self._clock() >= window.reset_at:
            return self.limit.limit
        return max(0, self.limit.limit - window.count)

    def reset(self) -> None:
        self._windows.clear()


class RateLimitPolicy:
    """Named limits loaded from YAML, each with its own limiter."""

    def __init__(self, policy_path: Path | str | None = None, clock: Callable[[], float] = time.monotonic):
        if policy_path is None:
            policy_path = Path(__file__).parent.parent / "data" / "rate_limits.yaml"

        self._policy_path = Path(policy_path)
        self._clock = clock
        self.global_limiter: FixedWindowRateLimiter | None = None
        self._limiters: dict[str, FixedWindowRateLimiter] = {}
        self._load()

    def _load(self) -> None:
        if not self._policy_path.exists():
            raise FileNotFoundError(f"Rate limit policy not found: {self._policy_path}")

        with open(self._policy_path) as f:
            data = yaml.safe_load(f) or {}

        if data.get("global"):
            self.global_limiter = FixedWindowRateLimiter(
                RateLimit.from_dict(data["global"]), self._clock,
            )
        for name, limit_data in (data.get("policies") or {}).items():
            self._limiters[name] = FixedWindowRateLimiter(
                RateLimit.from_dict(limit_data), self._clock,
            )

    def limiter(self, name: str) -> FixedWindowRateLimiter:
        if name not in self._limiters:
            raise KeyError(f"Unknown rate limit policy: {name}")
        return self._limiters[name]

    def names(self) -> list[str]:
        return sorted(self._limiters)

    def reset(self) -> None:
        if self.global_limiter:
            self.global_limiter.reset()
        for limiter in self._limiters.values():
            limiter.reset()
