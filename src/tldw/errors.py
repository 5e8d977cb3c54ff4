"""Exception hierarchy for tldw."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterator

ValidationReason = Literal["missing", "too_short", "too_few_words", "low_quality"]


class TldwError(Exception):
    """Base exception for all tldw errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(TldwError):
    """Configuration validation or resolution failed."""


class FetchError(TldwError):
    """The transcript could not be obtained."""

    def __init__(
        self, message: str, *, hint: str | None = None, video_id: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.video_id = video_id


class ValidationError(TldwError):
    """The transcript is unusable; never retried."""

    def __init__(
        self, message: str, *, reason: ValidationReason, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.reason: ValidationReason = reason


class ChunkingError(TldwError):
    """No chunks could be produced from the transcript."""


class BackendError(TldwError):
    """A single generative backend call failed.

    Backends attach retry metadata so the retrying client can decide without
    matching on message text.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        retry_after_s: float | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_s = retry_after_s
        self.provider = provider


class RateLimitError(BackendError):
    """The backend rejected the call with HTTP 429."""


class GenerationError(TldwError):
    """Generation failed after exhausting retries.

    The last backend error is chained as ``__cause__``.
    """

    def __init__(
        self, message: str, *, attempts: int, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.attempts = attempts


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
