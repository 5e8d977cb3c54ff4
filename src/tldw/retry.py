"""Retry policy and retry decisions for generative calls.

Design goals:
- Explicit state (policy + attempt counters)
- Exponential backoff with a ceiling
- No brittle substring matching for retry decisions
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import random

import httpx

from tldw.errors import BackendError, _walk_exception_chain

# Client errors that will fail the same way on every attempt.
_NON_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({400, 401, 403, 404})


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with exponential backoff.

    With the defaults the sleep before retry ``n`` is ``2**n`` seconds,
    capped at ``max_delay_s``.
    """

    max_attempts: int = 3
    initial_delay_s: float = 2.0
    backoff_multiplier: float = 2.0
    max_delay_s: float = 60.0
    jitter: bool = False  # "full jitter" when enabled

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_attempts < 1:
            raise ValueError("RetryPolicy.max_attempts must be >= 1")
        if self.initial_delay_s < 0:
            raise ValueError("RetryPolicy.initial_delay_s must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("RetryPolicy.backoff_multiplier must be > 0")
        if self.max_delay_s < 0:
            raise ValueError("RetryPolicy.max_delay_s must be >= 0")

    def delay_for(self, retry_index: int) -> float:
        """Return the sleep before retry ``retry_index`` (1-based)."""
        base = self.initial_delay_s * (
            self.backoff_multiplier ** max(0, retry_index - 1)
        )
        base = min(self.max_delay_s, base)
        if base <= 0:
            return 0.0
        if not self.jitter:
            return base
        return random.random() * base  # noqa: S311


def retry_after_from_error(exc: BaseException) -> float | None:
    """Return a backend-supplied retry delay, if the error carries one."""
    if isinstance(exc, BackendError):
        v = exc.retry_after_s
        if isinstance(v, (int, float)) and v >= 0:
            return float(v)
    return None


def is_transient_network_error(exc: BaseException) -> bool:
    """Return True for timeouts and transport-level failures anywhere in the chain."""
    for e in _walk_exception_chain(exc):
        if isinstance(e, (TimeoutError, httpx.TimeoutException, httpx.RequestError)):
            return True
    return False


def should_retry_generate(exc: BaseException) -> bool:
    """Return True when a failed generate call should be attempted again.

    Contract:
    - Cancellation is never retried.
    - BackendError is retried unless the backend marked it non-retryable or
      it carries a client-error status that cannot succeed on retry.
    - Any other exception is retried; the attempt budget bounds the cost.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False

    if isinstance(exc, BackendError):
        if exc.retryable is False:
            return False
        return not (
            isinstance(exc.status_code, int)
            and exc.status_code in _NON_RETRYABLE_STATUS_CODES
        )

    return True
