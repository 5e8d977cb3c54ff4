"""Transcript chunking: sentence splitting, sampling strategies and packing."""

from __future__ import annotations

from enum import StrEnum
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tldw.chunking.base import ChunkingStrategy
    from tldw.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class SamplingMethod(StrEnum):
    """Closed set of chunking strategies."""

    UNIFORM = "uniform"
    BOOKEND = "bookend"
    INTELLIGENT = "intelligent"

    @classmethod
    def parse(cls, value: SamplingMethod | str) -> SamplingMethod:
        """Return the method named *value*, falling back to intelligent."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            log.warning("Unknown sampling method %r; using intelligent", value)
            return cls.INTELLIGENT


def create_strategy(
    method: SamplingMethod | str,
    *,
    telemetry: TelemetryContextProtocol | None = None,
) -> ChunkingStrategy:
    """Build the strategy for *method*."""
    from tldw.chunking.bookend import BookendSamplingStrategy
    from tldw.chunking.intelligent import IntelligentSamplingStrategy
    from tldw.chunking.uniform import UniformSamplingStrategy

    match SamplingMethod.parse(method):
        case SamplingMethod.UNIFORM:
            cls: type[ChunkingStrategy] = UniformSamplingStrategy
        case SamplingMethod.BOOKEND:
            cls = BookendSamplingStrategy
        case SamplingMethod.INTELLIGENT:
            cls = IntelligentSamplingStrategy
    return cls(telemetry=telemetry)


def chunk_transcript(
    transcript: str,
    max_length: int,
    method: SamplingMethod | str = SamplingMethod.INTELLIGENT,
) -> list[str]:
    """Chunk *transcript* with the strategy named by *method*."""
    return create_strategy(method).chunk_transcript(transcript, max_length)


__all__ = ["SamplingMethod", "chunk_transcript", "create_strategy"]
