"""Rate limiter utilities for threaded workloads.

This module provides a token bucket rate limiter implementation used as a
global admission gate in front of the dictionary API. Admission is
non-blocking: a caller that finds the bucket empty is rejected immediately
instead of waiting for a token.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class TokenBucketRateLimiter:
    """Token bucket rate limiter shared by all callers of one gateway.

    Tokens accumulate continuously at `refill_tokens / refill_interval_ms`
    up to `capacity`. Each admitted call spends one token; a call that finds
    less than one token is rejected and spends nothing.

    Attributes:
        _capacity: Maximum number of tokens (burst size).
        _refill_per_second: Tokens added per second of elapsed time.
        _tokens: Current token count (fractional between refills).
        _last: Monotonic timestamp of the last refill.
        _lock: Guards `_tokens` and `_last`; never held across I/O.

    Example:
        ```python
        from dict_gateway.foundation.rate_limiter import TokenBucketRateLimiter

        limiter = TokenBucketRateLimiter(capacity=100, refill_tokens=10, refill_interval_ms=1000)
        if not limiter.try_admit():
            raise ServiceBusyError("service busy")
        ```

    Note:
        The bucket starts full. The clock defaults to `time.monotonic` and can
        be replaced in tests.
    """

    def __init__(
        self,
        capacity: int,
        refill_tokens: int,
        refill_interval_ms: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize rate limiter.

        Args:
            capacity: Maximum burst size. Must be greater than 0.
            refill_tokens: Tokens added per interval. May be 0 (no refill).
            refill_interval_ms: Length of the refill interval in milliseconds.
                Must be greater than 0.
            clock: Monotonic clock returning seconds.

        Raises:
            ValueError: If any argument is out of range.
        """
        if capacity <= 0:
            raise ValueError("capacity must be greater than 0")
        if refill_tokens < 0:
            raise ValueError("refill_tokens must not be negative")
        if refill_interval_ms <= 0:
            raise ValueError("refill_interval_ms must be greater than 0")
        self._capacity = capacity
        self._refill_per_second = refill_tokens / (refill_interval_ms / 1000.0)
        self._clock = clock
        self._tokens = float(capacity)
        self._last = clock()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = now - self._last
        if elapsed > 0:
            self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_per_second)
            self._last = now

    def try_admit(self) -> bool:
        """Try to take one token without waiting.

        Returns:
            True if a token was taken, False if the bucket is empty.
        """
        now = self._clock()
        with self._lock:
            self._refill(now)
            if self._tokens < 1.0:
                return False
            self._tokens -= 1.0
            return True

    def available_tokens(self) -> float:
        """Return the current token count after applying pending refill."""
        now = self._clock()
        with self._lock:
            self._refill(now)
            return self._tokens

    def get_rate(self) -> float:
        """Get the sustained refill rate in tokens per second."""
        return self._refill_per_second

    @property
    def capacity(self) -> int:
        return self._capacity
