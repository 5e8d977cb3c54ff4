"""Uniform sampling: keep every n-th sentence."""

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


class UniformSamplingStrategy(ChunkingStrategy):
    """Walk the transcript at a fixed interval derived from the reduction factor.

    When the interval is wide (more than two sentences), the sentence after
    each sample is kept too so samples read in context.
    """

    method = SamplingMethod.UNIFORM

    def select(
        self, sentences: list[Sentence], total_tokens: int, max_length: int
    ) -> Selection:
        factor = reduction_factor(total_tokens, max_length)
        if factor < SAMPLING_THRESHOLD:
            return self.keep_all(sentences, max_length)

        n = len(sentences)
        window = min(3, n // 10)
        interval = max(1, math.floor(n / (n / factor)))

        kept: list[Sentence] = []
        for i in range(0, n, interval):
            kept.append(sentences[i])
            if window > 0 and i + 1 < n and interval > 2:
                kept.append(sentences[i + 1])
        return self.sampled(kept, max_length)
