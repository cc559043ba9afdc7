"""
Token-bucket rate limiter.

- In-memory, keyed by client IP.
- A bucket holds `per_window` tokens and refills fully over `window_seconds`.
- Disabled unless RATE_LIMIT_ENABLED is set.
"""

import time
from dataclasses import dataclass
from typing import Dict, Callable


@dataclass
class RateLimitConfig:
    enabled: bool = False
    per_window: int = 100
    window_seconds: int = 900


class TokenBucket:
    def __init__(self, capacity: int, refill_rate_per_sec: float, time_fn: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self.tokens = float(self.capacity)
        self.refill_rate = max(0.0, refill_rate_per_sec)
        self.time_fn = time_fn
        self.last_refill = self.time_fn()

    def _refill(self) -> None:
        now = self.time_fn()
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def allow(self, cost: float = 1.0) -> bool:
        self._refill()
        if self.tokens >= cost:
            self.tokens -= cost
            return True
        return False

    def seconds_until_available(self, cost: float = 1.0) -> float:
        missing = cost - self.tokens
        if missing <= 0 or self.refill_rate <= 0:
            return 0.0
        return missing / self.refill_rate


class InMemoryRateLimiter:
    def __init__(self, config: RateLimitConfig, time_fn: Callable[[], float] = time.monotonic):
        self.config = config
        self.time_fn = time_fn
        self.buckets: Dict[str, TokenBucket] = {}
        self._last_prune = self.time_fn()

    def prune(self) -> int:
        """Drop buckets idle for a full window; they would be full again anyway."""
        now = self.time_fn()
        self._last_prune = now
        idle = [key for key, bucket in self.buckets.items() if now - bucket.last_refill >= self.config.window_seconds]
        for key in idle:
            del self.buckets[key]
        return len(idle)

    def bucket_for(self, key: str) -> TokenBucket:
        if key not in self.buckets:
            if self.time_fn() - self._last_prune >= self.config.window_seconds:
                self.prune()
            refill_rate = self.config.per_window / float(max(1, self.config.window_seconds))
            self.buckets[key] = TokenBucket(
                capacity=self.config.per_window,
                refill_rate_per_sec=refill_rate,
                time_fn=self.time_fn,
            )
        return self.buckets[key]

    def allow(self, key: str) -> bool:
        return self.bucket_for(key).allow()


def build_rate_limit_config(settings_obj) -> RateLimitConfig:
    per_window = getattr(settings_obj, "RATE_LIMIT_PER_WINDOW", 100)
    window_seconds = getattr(settings_obj, "RATE_LIMIT_WINDOW_SECONDS", 900)
    return RateLimitConfig(
        enabled=bool(getattr(settings_obj, "RATE_LIMIT_ENABLED", False)),
        per_window=per_window if per_window > 0 else 100,
        window_seconds=window_seconds if window_seconds > 0 else 900,
    )
