"""Sliding-window rate throttling shared by every generative call.

One ``RateThrottler`` enforces three caps, checked in order:

- daily requests, reset at local midnight;
- requests in the trailing 60 seconds;
- tokens in the trailing 60 seconds.

The check and the slot reservation happen under one ``asyncio.Lock`` so two
concurrent callers can never pass the same check and jointly overshoot a cap.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
import logging
import time
from typing import TYPE_CHECKING

from tldw.config import RateLimits
from tldw.telemetry import TelemetryContext

if TYPE_CHECKING:
    from tldw.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

WINDOW_S = 60.0
#: Token overflow waits a whole window rather than computing exact headroom.
TOKEN_WAIT_S = 60.0


def next_local_midnight(now: float) -> float:
    """Return the epoch timestamp of the next local midnight after *now*."""
    today = datetime.fromtimestamp(now).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return (today + timedelta(days=1)).timestamp()


class RateThrottler:
    """Gate generative calls on per-minute and per-day quotas.

    Usage::

        await throttler.throttle(estimated)
        try:
            text = await backend.generate(...)
        except Exception:
            throttler.release(estimated)
            raise
        throttler.record_call(actual, reserved=estimated)

    ``throttle`` counts the request against the minute and day windows as
    soon as it returns; ``record_call`` swaps the token reservation for the
    actual usage.
    """

    def __init__(
        self,
        limits: RateLimits | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.limits = limits or RateLimits()
        self._clock = clock
        self._wall_clock = wall_clock
        self._sleep = sleep
        self._telemetry = telemetry if telemetry is not None else TelemetryContext()
        self._lock = asyncio.Lock()

        self._requests: deque[float] = deque()
        self._tokens: deque[tuple[float, int]] = deque()
        self._window_tokens = 0
        self._reserved_tokens = 0
        self._daily_requests = 0
        self._daily_reset_at = next_local_midnight(wall_clock())

    @property
    def daily_requests(self) -> int:
        return self._daily_requests

    @property
    def requests_in_window(self) -> int:
        self._prune(self._clock())
        return len(self._requests)

    @property
    def tokens_in_window(self) -> int:
        self._prune(self._clock())
        return self._window_tokens

    async def throttle(self, estimated_tokens: int) -> float:
        """Wait until one call costing *estimated_tokens* fits every cap.

        Returns the total seconds spent waiting.
        """
        waited = 0.0
        async with self._lock:
            while True:
                self._check_daily_reset()

                if self._daily_requests >= self.limits.max_daily_requests:
                    wait = max(0.0, self._daily_reset_at - self._wall_clock())
                    log.warning(
                        "Daily request limit reached; waiting %.0f minutes for reset",
                        wait / 60,
                    )
                    waited += await self._wait(wait, "daily")
                    self._reset_daily()
                    continue

                now = self._clock()
                self._prune(now)

                if len(self._requests) >= self.limits.requests_per_minute:
                    wait = max(0.0, self._requests[0] + WINDOW_S - now)
                    log.info(
                        "Request limit: %d/%d in the last minute; waiting %.1fs",
                        len(self._requests),
                        self.limits.requests_per_minute,
                        wait,
                    )
                    waited += await self._wait(wait, "requests")
                    continue

                in_flight = self._window_tokens + self._reserved_tokens
                if (
                    in_flight > 0
                    and in_flight + estimated_tokens > self.limits.tokens_per_minute
                ):
                    log.info(
                        "Token limit: ~%d/%d tokens in the last minute; waiting %.0fs",
                        in_flight,
                        self.limits.tokens_per_minute,
                        TOKEN_WAIT_S,
                    )
                    waited += await self._wait(TOKEN_WAIT_S, "tokens")
                    continue

                break

            self._requests.append(now)
            self._daily_requests += 1
            self._reserved_tokens += max(0, estimated_tokens)
        return waited

    def record_call(self, actual_tokens: int, *, reserved: int = 0) -> None:
        """Record the tokens a completed call consumed.

        *reserved* is the estimate passed to ``throttle`` and is released.
        """
        self.release(reserved)
        now = self._clock()
        self._prune(now)
        if actual_tokens > 0:
            self._tokens.append((now, actual_tokens))
            self._window_tokens += actual_tokens

    def release(self, reserved: int) -> None:
        """Drop a token reservation whose call did not complete."""
        self._reserved_tokens = max(0, self._reserved_tokens - max(0, reserved))

    async def _wait(self, seconds: float, reason: str) -> float:
        self._telemetry.metric("throttle.wait_s", seconds, reason=reason)
        if seconds > 0:
            await self._sleep(seconds)
        return seconds

    def _prune(self, now: float) -> None:
        cutoff = now - WINDOW_S
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()
        while self._tokens and self._tokens[0][0] <= cutoff:
            _, count = self._tokens.popleft()
            self._window_tokens -= count

    def _check_daily_reset(self) -> None:
        if self._wall_clock() >= self._daily_reset_at:
            log.info("Daily request quota reset")
            self._reset_daily()

    def _reset_daily(self) -> None:
        self._daily_requests = 0
        self._daily_reset_at = next_local_midnight(
            max(self._wall_clock(), self._daily_reset_at)
        )
