"""Pack ordered sentences into overlapping, size-bounded chunks."""

from __future__ import annotations

from collections.abc import Sequence
import logging
import math

from tldw.tokens import estimate_tokens

log = logging.getLogger(__name__)

#: Inputs this small are never split.
SINGLE_CHUNK_MAX_SENTENCES = 10
MIN_SENTENCES_PER_CHUNK = 5
OVERLAP_RATIO = 0.15


def pack_sentences(
    sentences: Sequence[str],
    target_tokens: int,
    min_chunks: int | None = None,
) -> list[str]:
    """Join *sentences* into chunks of roughly *target_tokens* each.

    A window of ``sentences_per_chunk`` slides forward, overlapping the
    previous window by 15% so context crosses chunk boundaries. Sentences are
    never split, so a chunk may exceed the target.

    Args:
        sentences: Ordered sentences.
        target_tokens: Soft token budget per chunk.
        min_chunks: Lower bound on the number of windows, if given.
    """
    if not sentences:
        return []
    if len(sentences) <= SINGLE_CHUNK_MAX_SENTENCES:
        return [" ".join(sentences)]

    total = estimate_tokens(" ".join(sentences))
    calculated = max(1, math.ceil(total / max(1, target_tokens)))
    num_chunks = max(calculated, min_chunks) if min_chunks else calculated

    per_chunk = max(MIN_SENTENCES_PER_CHUNK, math.ceil(len(sentences) / num_chunks))
    overlap = math.ceil(per_chunk * OVERLAP_RATIO)
    step = per_chunk - overlap

    chunks: list[str] = []
    start = 0
    while True:
        end = min(start + per_chunk, len(sentences))
        chunk = " ".join(sentences[start:end])
        if chunk.strip():
            chunks.append(chunk)
        if end >= len(sentences):
            break
        start += step

    log.debug(
        "Packed %d sentences into %d chunks (%d per chunk, %d overlap)",
        len(sentences),
        len(chunks),
        per_chunk,
        overlap,
    )
    return chunks
