"""Token estimation heuristic shared by chunking, throttling and generation.

Counts are approximate by design: roughly four characters per token. Every
budget downstream treats them as a heuristic, never as an exact count.
"""

from __future__ import annotations

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Return ``ceil(len(text) / 4)``."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
