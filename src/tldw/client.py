"""Throttled, retrying wrapper around a generative backend."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import TYPE_CHECKING

from tldw.errors import GenerationError
from tldw.retry import RetryPolicy, retry_after_from_error, should_retry_generate
from tldw.telemetry import TelemetryContext
from tldw.throttle import RateThrottler
from tldw.tokens import estimate_tokens

if TYPE_CHECKING:
    from tldw.backends.base import GenerationOptions, GenerativeBackend
    from tldw.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class RetryingGenerativeClient:
    """Generate text with rate throttling and bounded exponential backoff.

    Every attempt passes through the shared throttler first. Attempts that
    fail are logged and retried; callers only see ``GenerationError`` once
    the policy is exhausted or the failure cannot succeed on retry.
    """

    def __init__(
        self,
        backend: GenerativeBackend,
        *,
        throttler: RateThrottler | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.backend = backend
        self.throttler = throttler or RateThrottler()
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._telemetry = telemetry if telemetry is not None else TelemetryContext()
        self.calls = 0

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """Return generated text for *prompt*.

        Raises:
            GenerationError: After the last attempt fails; the backend error is
                chained as ``__cause__``.
        """
        prompt_tokens = estimate_tokens(prompt)
        estimate = prompt_tokens + options.max_output_tokens
        last_exc: Exception | None = None
        attempt = 0

        for attempt in range(1, self.policy.max_attempts + 1):
            await self.throttler.throttle(estimate)
            self.calls += 1
            try:
                try:
                    text = await self.backend.generate(prompt, options)
                except BaseException:
                    # Includes cancellation.
                    self.throttler.release(estimate)
                    raise
            except Exception as exc:
                last_exc = exc
                self._telemetry.count(
                    "generation.attempt_failed",
                    attempt=attempt,
                    error=type(exc).__name__,
                )
                if not should_retry_generate(exc):
                    log.warning("Attempt %d failed and is not retryable: %s", attempt, exc)
                    break
                if attempt >= self.policy.max_attempts:
                    log.warning("Attempt %d/%d failed: %s", attempt, self.policy.max_attempts, exc)
                    break

                delay = self.policy.delay_for(attempt)
                retry_after = retry_after_from_error(exc)
                if retry_after is not None:
                    delay = max(delay, retry_after)
                log.warning(
                    "Attempt %d/%d failed: %s; retrying in %.1fs",
                    attempt,
                    self.policy.max_attempts,
                    exc,
                    delay,
                )
                if delay > 0:
                    await self._sleep(delay)
                continue

            self.throttler.record_call(
                prompt_tokens + estimate_tokens(text), reserved=estimate
            )
            if attempt > 1:
                log.info("Generation succeeded on attempt %d", attempt)
            return text

        raise GenerationError(
            f"Generation failed after {attempt} attempt(s): {last_exc}",
            attempts=attempt,
            hint=getattr(last_exc, "hint", None),
        ) from last_exc
