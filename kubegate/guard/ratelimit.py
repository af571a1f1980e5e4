"""Per-operation token bucket rate limiting.

Buckets refill lazily on access (no background timer):

    tokens_to_add = floor(elapsed_seconds * refill_rate)

and only advance their refill instant when at least one whole token was
added.  One bucket exists per operation name; the first acquisition for a
name fixes its capacity and rate.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable

from kubegate.errors import GuardViolation
from kubegate.models.operations import ViolationKind
from kubegate.observability.logging import get_logger
from kubegate.observability.metrics import guard_violations_total

_log = get_logger("guard.ratelimit")

DEFAULT_CAPACITY = 10
DEFAULT_REFILL_RATE = 5.0


class TokenBucket:
    __slots__ = ("capacity", "refill_rate", "tokens", "last_refill", "lock", "_now")

    def __init__(self, capacity: int, refill_rate: float, now: Callable[[], float]) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if refill_rate <= 0:
            raise ValueError(f"refill_rate must be > 0, got {refill_rate}")
        self.capacity = int(capacity)
        self.refill_rate = float(refill_rate)
        self.tokens = self.capacity
        self._now = now
        self.last_refill = now()
        self.lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self.lock:
            now = self._now()
            elapsed = max(0.0, now - self.last_refill)
            tokens_to_add = math.floor(elapsed * self.refill_rate)
            if tokens_to_add > 0:
                self.tokens = min(self.capacity, self.tokens + tokens_to_add)
                self.last_refill = now
            if self.tokens > 0:
                self.tokens -= 1
                return True
            return False


class RateLimiter:
    """Registry of token buckets keyed by operation name.

    Built once at startup and injected into every dispatcher.  Acquisitions
    for the same operation serialise on that bucket's lock; different
    operations never contend once their buckets exist.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        refill_rate: float = DEFAULT_REFILL_RATE,
        now: Callable[[], float] | None = None,
    ) -> None:
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._now = now or time.monotonic
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def _bucket_for(self, operation: str, capacity: int, refill_rate: float) -> TokenBucket:
        bucket = self._buckets.get(operation)
        if bucket is not None:
            return bucket
        with self._lock:
            bucket = self._buckets.get(operation)
            if bucket is None:
                bucket = TokenBucket(capacity, refill_rate, self._now)
                self._buckets[operation] = bucket
            return bucket

    def try_acquire(
        self,
        operation: str,
        capacity: int | None = None,
        refill_rate: float | None = None,
    ) -> bool:
        """Take one token for *operation*; return False when none is left."""
        bucket = self._bucket_for(
            operation,
            capacity if capacity is not None else self.capacity,
            refill_rate if refill_rate is not None else self.refill_rate,
        )
        return bucket.try_acquire()

    def acquire(self, operation: str) -> None:
        """Take one token or raise GuardViolation(RATE_LIMIT)."""
        if self.try_acquire(operation):
            return
        guard_violations_total.labels(operation=operation, kind=ViolationKind.RATE_LIMIT.value).inc()
        _log.warning("rate_limited", operation=operation)
        raise GuardViolation(
            ViolationKind.RATE_LIMIT,
            "Rate limit exceeded",
            hint="Slow down or try again shortly",
        )

    def available(self, operation: str) -> int | None:
        """Tokens currently held by *operation*'s bucket (None if never used)."""
        bucket = self._buckets.get(operation)
        return None if bucket is None else bucket.tokens
