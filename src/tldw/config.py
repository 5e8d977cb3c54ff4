"""Configuration: frozen Config with mode-derived transcript budgets."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from typing import Any, Literal

from dotenv import load_dotenv

from tldw.backends.base import GenerationOptions
from tldw.chunking import SamplingMethod
from tldw.errors import ConfigurationError
from tldw.retry import RetryPolicy

load_dotenv()

log = logging.getLogger(__name__)

Mode = Literal["standard", "high_quality", "long_video"]

DEFAULT_MODEL = "gemini-2.0-flash"
API_KEY_ENV_VAR = "GEMINI_API_KEY"

#: Character budget per mode when ``max_transcript_length`` is not given.
MODE_MAX_LENGTH: dict[str, int] = {
    "standard": 300_000,
    "high_quality": 500_000,
    "long_video": 120_000,
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class RateLimits:
    """Quota for the generative backend, shared by every call."""

    requests_per_minute: int = 15
    tokens_per_minute: int = 1_000_000
    max_daily_requests: int = 1_500

    def __post_init__(self) -> None:
        """Reject non-positive limits."""
        for name in ("requests_per_minute", "tokens_per_minute", "max_daily_requests"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigurationError(
                    f"{name} must be a positive integer, got {value!r}",
                    hint="Rate limits come from your API plan; the defaults match the Gemini free tier.",
                )


@dataclass(frozen=True)
class Config:
    """Immutable configuration for a summarization run.

    The API key is auto-resolved from ``GEMINI_API_KEY`` and only required
    when ``use_mock`` is off.

    Example:
        config = Config(mode="long_video", sampling_method="bookend")
        config.max_transcript_length  # 120000
    """

    model: str = DEFAULT_MODEL
    #: Auto-resolved from ``GEMINI_API_KEY`` when *None*.
    api_key: str | None = None
    use_mock: bool = False
    mode: Mode = "standard"
    #: Derived from ``mode`` when *None*.
    max_transcript_length: int | None = None
    sampling_method: SamplingMethod | str = SamplingMethod.INTELLIGENT
    max_concurrent: int = 3
    min_transcript_length: int = 100
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    rate_limits: RateLimits = field(default_factory=RateLimits)
    #: Model defaults to ``model`` when left empty.
    chunk_generation: GenerationOptions = field(
        default_factory=lambda: GenerationOptions(max_output_tokens=4096)
    )
    reduce_generation: GenerationOptions = field(
        default_factory=lambda: GenerationOptions(max_output_tokens=8192)
    )
    summary_title: str = "Video Summary"

    def __post_init__(self) -> None:
        """Resolve derived fields and validate."""
        if self.mode not in MODE_MAX_LENGTH:
            raise ConfigurationError(
                f"Unknown mode: {self.mode!r}",
                hint="Supported modes: 'standard', 'high_quality', 'long_video'",
            )

        if self.max_transcript_length is None:
            object.__setattr__(
                self, "max_transcript_length", MODE_MAX_LENGTH[self.mode]
            )
        elif self.max_transcript_length < 1:
            raise ConfigurationError(
                f"max_transcript_length must be ≥ 1, got {self.max_transcript_length}",
                hint="This is the character budget before sampling kicks in.",
            )

        object.__setattr__(
            self, "sampling_method", SamplingMethod.parse(self.sampling_method)
        )

        if self.max_concurrent < 1:
            raise ConfigurationError(
                f"max_concurrent must be ≥ 1, got {self.max_concurrent}",
                hint="This bounds how many chunks are summarized in parallel.",
            )
        if self.min_transcript_length < 0:
            raise ConfigurationError(
                f"min_transcript_length must be ≥ 0, got {self.min_transcript_length}",
            )

        if not self.chunk_generation.model:
            object.__setattr__(
                self, "chunk_generation", self.chunk_generation.with_model(self.model)
            )
        if not self.reduce_generation.model:
            object.__setattr__(
                self, "reduce_generation", self.reduce_generation.with_model(self.model)
            )

        if self.api_key is None and not self.use_mock:
            object.__setattr__(self, "api_key", os.environ.get(API_KEY_ENV_VAR))

        if not self.use_mock and not self.api_key:
            raise ConfigurationError(
                "API key required for Gemini",
                hint=f"Set {API_KEY_ENV_VAR} environment variable, pass api_key=..., or use mock mode.",
            )

    @property
    def transcript_budget(self) -> int:
        """Return the resolved character budget."""
        return self.max_transcript_length or MODE_MAX_LENGTH[self.mode]

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Build a Config from ``TLDW_*`` variables; keyword arguments win."""
        merged = {**load_env_overrides(), **overrides}
        return cls(**merged)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(model={self.model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, use_mock={self.use_mock}, "
            f"mode={self.mode!r}, max_transcript_length={self.max_transcript_length}, "
            f"sampling_method={str(self.sampling_method)!r}, "
            f"max_concurrent={self.max_concurrent})"
        )

    __repr__ = __str__


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(
        f"{name} must be a boolean, got {raw!r}",
        hint="Use one of: 1, 0, true, false, yes, no.",
    )


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}",
        ) from None


def load_env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Read ``TLDW_*`` environment variables into Config keyword overrides."""
    env = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    if mode := env.get("TLDW_MODE"):
        overrides["mode"] = mode.strip().lower()
    if method := env.get("TLDW_SAMPLING_METHOD"):
        overrides["sampling_method"] = method.strip()
    if raw := env.get("TLDW_MAX_TRANSCRIPT_LENGTH"):
        overrides["max_transcript_length"] = _parse_int(
            "TLDW_MAX_TRANSCRIPT_LENGTH", raw
        )
    if raw := env.get("TLDW_MAX_CONCURRENT"):
        overrides["max_concurrent"] = _parse_int("TLDW_MAX_CONCURRENT", raw)
    if model := env.get("TLDW_MODEL"):
        overrides["model"] = model.strip()
    if (raw := env.get("TLDW_USE_MOCK")) is not None:
        overrides["use_mock"] = _parse_bool("TLDW_USE_MOCK", raw)

    if overrides:
        log.debug("Environment overrides: %s", sorted(overrides))
    return overrides
