"""Shared skeleton for chunking strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, ClassVar

from tldw.chunking.packing import SINGLE_CHUNK_MAX_SENTENCES, pack_sentences
from tldw.chunking.sentences import Sentence, indexed, split_sentences
from tldw.telemetry import TelemetryContext
from tldw.tokens import estimate_tokens

if TYPE_CHECKING:
    from tldw.chunking import SamplingMethod
    from tldw.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

#: Budget headroom kept free when computing the reduction factor.
BUDGET_MARGIN = 0.9
#: Below this reduction factor the transcript is packed without sampling.
SAMPLING_THRESHOLD = 1.5
#: Sampled sentence sequences longer than this are packed into at least three chunks.
MIN_PARALLEL_CHUNKS = 3


@dataclass(frozen=True)
class Selection:
    """Sentences kept by a strategy, in original order, plus packing hints."""

    sentences: tuple[Sentence, ...]
    target_tokens: int
    min_chunks: int | None = None
    sampled: bool = False

    @property
    def texts(self) -> list[str]:
        return [s.text for s in self.sentences]


@dataclass(frozen=True)
class Chunked:
    """Chunks produced for one transcript and how much text they cover."""

    chunks: list[str]
    sentence_count: int
    kept_count: int
    processed_length: int


def reduction_factor(total_tokens: int, max_length: int) -> float:
    """Return how many times the transcript exceeds its budget."""
    return total_tokens / (max_length * BUDGET_MARGIN)


class ChunkingStrategy(ABC):
    """Split, select and pack a transcript into chunks.

    Subclasses decide which sentences survive via ``select``; splitting,
    the single-sentence passthrough and packing are shared.
    """

    method: ClassVar[SamplingMethod]

    def __init__(self, *, telemetry: TelemetryContextProtocol | None = None) -> None:
        self.telemetry = telemetry if telemetry is not None else TelemetryContext()

    def chunk_transcript(self, transcript: str, max_length: int) -> list[str]:
        """Return ordered chunk strings for *transcript* under *max_length*."""
        return self.chunk(transcript, max_length).chunks

    def chunk(self, transcript: str, max_length: int) -> Chunked:
        """Chunk *transcript* and report how much of it was kept."""
        sentences = indexed(split_sentences(transcript))
        self.telemetry.gauge("chunking.sentences", len(sentences))
        if len(sentences) <= 1:
            log.info("Found %d sentence(s); using transcript as one chunk", len(sentences))
            self.telemetry.gauge("chunking.chunks", 1)
            return Chunked([transcript], len(sentences), len(sentences), len(transcript))

        total_tokens = estimate_tokens(transcript)
        factor = reduction_factor(total_tokens, max_length)
        self.telemetry.gauge("chunking.reduction_factor", factor)

        selection = self.select(sentences, total_tokens, max_length)
        texts = selection.texts
        chunks = pack_sentences(texts, selection.target_tokens, selection.min_chunks)
        log.info(
            "%s: kept %d of %d sentences (reduction %.2f), %d chunks",
            self.method,
            len(texts),
            len(sentences),
            factor,
            len(chunks),
        )
        self.telemetry.gauge("chunking.chunks", len(chunks), method=str(self.method))
        processed = len(transcript) if not selection.sampled else len(" ".join(texts))
        return Chunked(chunks, len(sentences), len(texts), processed)

    def plan(self, transcript: str, max_length: int) -> Selection:
        """Return the selection ``chunk_transcript`` would pack."""
        sentences = indexed(split_sentences(transcript))
        return self.select(sentences, estimate_tokens(transcript), max_length)

    @abstractmethod
    def select(
        self, sentences: list[Sentence], total_tokens: int, max_length: int
    ) -> Selection:
        """Choose the sentences to keep, in original order."""

    @staticmethod
    def keep_all(sentences: list[Sentence], target_tokens: int) -> Selection:
        return Selection(tuple(sentences), target_tokens)

    @staticmethod
    def sampled(sentences: list[Sentence], target_tokens: int) -> Selection:
        """Wrap sampled sentences, forcing parallel chunks for long samples."""
        hint = MIN_PARALLEL_CHUNKS if len(sentences) > SINGLE_CHUNK_MAX_SENTENCES else None
        return Selection(tuple(sentences), target_tokens, hint, sampled=True)
