"""Intelligent sampling: keep the highest-scoring regions of a transcript.

Sentences are scored by position, length, importance keywords, numbers and
quotations. Contiguous runs of important sentences become segments with a
little surrounding context, and the flattened segments are packed into at
least a few chunks so the map phase stays parallel.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import re

from tldw.chunking import SamplingMethod
from tldw.chunking.base import (
    MIN_PARALLEL_CHUNKS,
    SAMPLING_THRESHOLD,
    ChunkingStrategy,
    Selection,
    reduction_factor,
)
from tldw.chunking.packing import SINGLE_CHUNK_MAX_SENTENCES
from tldw.chunking.sentences import Sentence
from tldw.tokens import estimate_tokens

log = logging.getLogger(__name__)

IMPORTANT_KEYWORDS: tuple[str, ...] = (
    "summary",
    "conclusion",
    "therefore",
    "important",
    "key",
    "significant",
    "result",
    "finding",
    "main point",
    "takeaway",
    "highlight",
    "critical",
    "essential",
    "crucial",
    "finally",
    "in summary",
    "to summarize",
    "ultimately",
    "in conclusion",
    "altogether",
    "overall",
)

#: Transcripts at or under this many tokens are chunked without sampling.
SMALL_TRANSCRIPT_TOKENS = 3000
MAX_TARGET_CHUNK_TOKENS = 1500
#: Leading and trailing share of the transcript that is always kept.
EDGE_SHARE = 0.15
LEAD_IN = 3
TRAILING = 2

_DIGIT_RE = re.compile(r"\d+")
_QUOTE_RE = re.compile(r"[\"'].*[\"']")


@dataclass(frozen=True, slots=True)
class ScoredSentence(Sentence):
    score: float


def score_sentence(text: str, index: int, total: int) -> float:
    """Return the additive importance score of one sentence."""
    score = 0.0
    if index < total * 0.15:
        score += 3
    elif index > total * 0.85:
        score += 2.5
    elif total * 0.4 < index < total * 0.6:
        score += 1

    words = len(text.split())
    if 8 < words < 30:
        score += 1.5
    elif 30 <= words < 60:
        score += 1

    lowered = text.lower()
    for keyword in IMPORTANT_KEYWORDS:
        pos = lowered.find(keyword)
        if pos == -1:
            continue
        score += 3 if pos / len(lowered) < 0.3 else 2

    if _DIGIT_RE.search(text):
        score += 1.5
    if _QUOTE_RE.search(text):
        score += 1.5
    return score


def score_sentences(sentences: list[Sentence]) -> list[ScoredSentence]:
    n = len(sentences)
    return [
        ScoredSentence(s.index, s.text, score_sentence(s.text, pos, n))
        for pos, s in enumerate(sentences)
    ]


def keep_fraction(factor: float) -> float:
    return min(0.8, 2.0 / factor)


def importance_threshold(scored: list[ScoredSentence], factor: float) -> float:
    """Return the score at the cutoff of the top ``keep_fraction`` sentences.

    Keeping everything yields a threshold of 0.
    """
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)
    keep = math.ceil(len(scored) * keep_fraction(factor))
    if keep >= len(ranked):
        return 0.0
    return ranked[keep - 1].score


def extract_segments(
    scored: list[ScoredSentence], threshold: float
) -> list[list[ScoredSentence]]:
    """Group important sentences into contiguous segments with context.

    A sentence is important when it meets *threshold* or sits in the first
    or last 15% of the transcript. Each segment gets up to three lead-in
    sentences and two trailing ones; lead-in never reaches back into the
    previous segment, so indices stay strictly increasing.
    """
    n = len(scored)
    segments: list[list[ScoredSentence]] = []
    current: list[ScoredSentence] = []
    in_segment = False
    next_free = 0

    i = 0
    while i < n:
        item = scored[i]
        at_edge = i < n * EDGE_SHARE or i > n * (1 - EDGE_SHARE)
        if item.score >= threshold or at_edge:
            if not in_segment:
                current.extend(scored[max(next_free, i - LEAD_IN) : i])
                in_segment = True
            current.append(item)
            next_free = i + 1
        elif in_segment:
            tail_end = min(n, i + TRAILING)
            current.extend(scored[i:tail_end])
            segments.append(current)
            current = []
            in_segment = False
            next_free = tail_end
            i = tail_end
            continue
        i += 1

    if current:
        segments.append(current)
    return segments


def top_sentences(scored: list[ScoredSentence], factor: float) -> list[ScoredSentence]:
    """Return the top-scoring sentences in original order."""
    keep = math.ceil(len(scored) * keep_fraction(factor))
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)[:keep]
    return sorted(ranked, key=lambda s: s.index)


def target_chunk_tokens(total_tokens: int) -> int:
    """Return a chunk size that splits the transcript at least three ways."""
    ways = max(3, math.ceil(total_tokens / SMALL_TRANSCRIPT_TOKENS))
    return max(1, min(MAX_TARGET_CHUNK_TOKENS, total_tokens // ways))


def forced_min_chunks(texts: list[str], target: int) -> int | None:
    """Return the minimum chunk count used to keep the map phase parallel."""
    if len(texts) > SINGLE_CHUNK_MAX_SENTENCES:
        tokens = estimate_tokens(" ".join(texts))
        min_chunks = max(MIN_PARALLEL_CHUNKS, math.ceil(tokens / target))
        if len(texts) // min_chunks >= 3:
            return min_chunks
    if len(texts) > 5:
        return 2
    return None


class IntelligentSamplingStrategy(ChunkingStrategy):
    """Score sentences and keep the important regions."""

    method = SamplingMethod.INTELLIGENT

    def select(
        self, sentences: list[Sentence], total_tokens: int, max_length: int
    ) -> Selection:
        target = target_chunk_tokens(total_tokens)
        if total_tokens <= SMALL_TRANSCRIPT_TOKENS:
            log.debug("Small transcript (%d tokens); chunking without sampling", total_tokens)
            return self._forced(sentences, target, sampled=False)

        factor = reduction_factor(total_tokens, max_length)
        if factor < SAMPLING_THRESHOLD:
            return self._forced(sentences, target, sampled=False)

        scored = score_sentences(sentences)
        threshold = importance_threshold(scored, factor)
        self.telemetry.gauge("chunking.importance_threshold", threshold)

        segments = extract_segments(scored, threshold)
        if not segments:
            log.warning("No important segments found; keeping top-scored sentences")
            segments = [top_sentences(scored, factor)]

        flat = [s for segment in segments for s in segment]
        log.debug(
            "Threshold %.2f kept %d segments, %d of %d sentences",
            threshold,
            len(segments),
            len(flat),
            len(sentences),
        )
        return self._forced(flat, target, sampled=True)

    @staticmethod
    def _forced(sentences: list[Sentence], target: int, *, sampled: bool) -> Selection:
        hint = forced_min_chunks([s.text for s in sentences], target)
        return Selection(tuple(sentences), target, hint, sampled=sampled)
