"""Bounded exponential backoff for dictionary API attempts, built on tenacity.

The gateway's dispatch loop asks three questions after every failed attempt:
should it try again, how long should it wait, and what tag goes into the audit
row. This module answers them.

## Pieces

### RetryPolicy
Attempt cap, first delay, growth factor and delay cap as plain data. It hands
out a tenacity `Retrying` controller; callers iterate it explicitly
(`for attempt in retrying:`) so each attempt can be audited where it happens.

### ErrorClassifier
Structural interface the loop consults: retriable or not, which audit tag,
which extra fields to log.

### HTTPErrorClassifier
Partial classifier for HTTP upstreams. Status codes 500-599 are transient;
everything else fails fast.

### create_retry_logger
Builds the `before_sleep` hook that logs a warning before each backoff.

## Usage

```python
from dict_gateway.foundation.retry import RetryPolicy

policy = RetryPolicy(max_attempts=3, initial_delay_s=1.0, multiplier=2.0, max_delay_s=10.0)
for attempt in policy.build_retrying(classifier=classifier, logger=logger):
    with attempt:
        result = dispatch(attempt.retry_state.attempt_number)
```
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import attrs
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

# =============================================================================
# Attempt Classification Tags
# =============================================================================

# Pre-dispatch rejection by the rate limiter (no network call made)
RATE_LIMITED = "RATE_LIMITED"
# Upstream returned a server error (retriable)
HTTP_5XX = "HTTP_5XX"
# Connect/read timeout or other transport I/O failure (retriable)
TIMEOUT = "TIMEOUT"


@runtime_checkable
class ErrorClassifier(Protocol):
    """What the retry loop needs to know about a failed attempt."""

    def is_retriable(self, exc: BaseException) -> bool:
        """Return True when another attempt may succeed where this one failed."""
        ...

    def classify(self, exc: BaseException) -> str:
        """Return the classification tag recorded for a failed attempt."""
        ...

    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        """Return extra structured fields for the retry warning (may be empty)."""
        ...


class HTTPErrorClassifier(ABC):
    """Classifier skeleton for upstreams spoken to over HTTP.

    Only server errors (500-599) count as transient. Client errors, redirects
    and unparseable status values fail fast. Concrete classifiers map their
    own exception types onto `is_retriable_http_status()`.
    """

    def is_retriable_http_status(self, status: str | int) -> bool:
        """Tell whether `status` is a 5xx code.

        Accepts ints or numeric strings; anything unparseable is not retriable.
        """
        try:
            code = int(status)
        except (TypeError, ValueError):
            return False
        return 500 <= code < 600

    @abstractmethod
    def is_retriable(self, exc: BaseException) -> bool:
        """Decide whether `exc` is worth another attempt."""

    def classify(self, exc: BaseException) -> str:
        """Tag an exception for the audit trail; defaults to its class name."""
        return type(exc).__name__

    @abstractmethod
    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        """Fields merged into the retry warning's `extra`."""


# =============================================================================
# Retry Logging
# =============================================================================


def create_retry_logger(
    logger: logging.Logger,
    get_error_details: Callable[[BaseException], dict[str, Any]] | None = None,
    message: str = "Operation failed, retrying",
) -> Callable[[Any], None]:
    """Build a tenacity `before_sleep` hook that logs each upcoming retry.

    The warning carries the failed attempt number, the backoff about to be
    slept (seconds, two decimals) and the exception class, plus whatever
    `get_error_details` returns for the exception.

    Args:
        logger: Destination logger.
        get_error_details: Optional per-client extractor of extra log fields.
        message: Warning message text.

    Returns:
        A callable accepting tenacity's `RetryCallState`.
    """

    def log_retry(retry_state: Any) -> None:
        if retry_state.outcome is None or not retry_state.outcome.failed:
            return

        exc = retry_state.outcome.exception()
        backoff = retry_state.next_action.sleep if retry_state.next_action else 0

        extra: dict[str, Any] = {
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(backoff, 2),
            "error_type": type(exc).__name__,
        }
        if get_error_details is not None:
            extra.update(get_error_details(exc))

        logger.warning(message, extra=extra)

    return log_retry


# =============================================================================
# RetryPolicy
# =============================================================================


def _positive(instance: Any, attribute: attrs.Attribute, value: float) -> None:
    if value <= 0:
        msg = f"{attribute.name} must be greater than 0"
        raise ValueError(msg)


@attrs.define(frozen=True, slots=True)
class RetryPolicy:
    """Bounded exponential backoff policy.

    The delay before attempt `n + 1` is
    `min(initial_delay_s * multiplier ** (n - 1), max_delay_s)`, so the
    defaults wait 1s then 2s between three attempts.

    Attributes:
        max_attempts: Total attempts including the first (default: 3).
        initial_delay_s: Delay after the first failed attempt (default: 1.0).
        multiplier: Growth factor between consecutive delays (default: 2.0).
        max_delay_s: Upper bound for any single delay (default: 10.0).
    """

    max_attempts: int = attrs.field(default=3, validator=_positive)
    initial_delay_s: float = attrs.field(default=1.0, validator=_positive)
    multiplier: float = attrs.field(default=2.0, validator=_positive)
    max_delay_s: float = attrs.field(default=10.0, validator=_positive)

    @classmethod
    def from_millis(
        cls,
        max_attempts: int = 3,
        initial_delay_ms: int = 1000,
        multiplier: float = 2.0,
        max_delay_ms: int = 10000,
    ) -> "RetryPolicy":
        """Build a policy from millisecond delays (the configuration unit)."""
        return cls(
            max_attempts=max_attempts,
            initial_delay_s=initial_delay_ms / 1000.0,
            multiplier=multiplier,
            max_delay_s=max_delay_ms / 1000.0,
        )

    def delay_after(self, attempt_number: int) -> float:
        """Return the backoff (seconds) slept after `attempt_number` fails."""
        return min(self.initial_delay_s * self.multiplier ** (attempt_number - 1), self.max_delay_s)

    def backoff_schedule(self) -> list[float]:
        """Return every delay slept between attempts, in order."""
        return [self.delay_after(n) for n in range(1, self.max_attempts)]

    def build_retrying(
        self,
        *,
        classifier: ErrorClassifier,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Retrying:
        """Create a tenacity controller that follows this policy.

        Args:
            classifier: Decides which exceptions are retried.
            logger: Logger for retry warnings (default: `dict_gateway.retry`).
            sleep: Sleep function used between attempts.

        Returns:
            A `Retrying` instance; iterate it to drive attempts. The last
            exception is re-raised once attempts are exhausted, and a
            non-retriable exception is re-raised immediately.
        """
        log_retry = create_retry_logger(
            logger or logging.getLogger("dict_gateway.retry"),
            classifier.get_error_details,
            "Dictionary API attempt failed, retrying",
        )
        return Retrying(
            sleep=sleep,
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.initial_delay_s,
                exp_base=self.multiplier,
                max=self.max_delay_s,
            ),
            retry=retry_if_exception(classifier.is_retriable),
            before_sleep=log_retry,
            reraise=True,
        )
