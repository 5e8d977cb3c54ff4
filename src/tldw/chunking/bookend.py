"""Bookend sampling: favor the opening and closing of a transcript."""

from __future__ import annotations

import math

from tldw.chunking import SamplingMethod
from tldw.chunking.base import (
    SAMPLING_THRESHOLD,
    ChunkingStrategy,
    Selection,
    reduction_factor,
)
from tldw.chunking.sentences import Sentence

BOOKEND_SHARE = 0.4


class BookendSamplingStrategy(ChunkingStrategy):
    """Keep 40% of the budget from each end and sample the middle sparsely.

    Introductions and conclusions usually carry the framing of a video, so
    they survive intact while the middle is thinned.
    """

    method = SamplingMethod.BOOKEND

    def select(
        self, sentences: list[Sentence], total_tokens: int, max_length: int
    ) -> Selection:
        factor = reduction_factor(total_tokens, max_length)
        if factor < SAMPLING_THRESHOLD:
            return self.keep_all(sentences, max_length)

        n = len(sentences)
        keep = math.floor(n / factor)
        bookend = math.floor(keep * BOOKEND_SHARE)
        middle = max(0, keep - 2 * bookend)

        kept: list[Sentence] = list(sentences[: min(bookend, n)])

        if middle > 0 and n > bookend * 2:
            start, end = bookend, n - bookend
            interval = max(1, math.floor((end - start) / middle))
            i = start
            while i < end:
                kept.append(sentences[i])
                if interval > 2 and i + 1 < end:
                    kept.append(sentences[i + 1])
                    i += 1
                i += interval

        if bookend > 0:
            kept.extend(sentences[max(0, n - bookend) :])

        # Restore chronological order by captured index; duplicates in text stay distinct.
        kept.sort(key=lambda s: s.index)
        return self.sampled(kept, max_length)
