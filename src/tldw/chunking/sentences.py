"""Sentence splitting with fallbacks for caption-style transcripts.

Auto-generated captions often lack punctuation, so splitting degrades through
progressively cruder tiers until there are enough units to sample from.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

log = logging.getLogger(__name__)

_SENTENCE_RE = re.compile(r"[^.!?…]+[.!?…]+[\"']?(?=\s|$)")
_SIMPLE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_LINE_BREAK_RE = re.compile(r"\n+")

#: At or below this many units, try the next tier.
FALLBACK_THRESHOLD = 5
FORCED_SPLIT_CHARS = 800
MIN_SENTENCE_CHARS = 5

_SENTENCE_END = ".!?…"


@dataclass(frozen=True, slots=True)
class Sentence:
    """A sentence and its position in the transcript's sentence sequence."""

    index: int
    text: str


def force_split(text: str, target: int = FORCED_SPLIT_CHARS) -> list[str]:
    """Cut *text* into pieces of about *target* characters.

    Each cut searches back up to 20% of *target* for a sentence end followed
    by whitespace, then for any whitespace, before cutting mid-word.
    """
    pieces: list[str] = []
    search = int(target * 0.2)
    start = 0
    while start < len(text):
        end = min(start + target, len(text))
        if end < len(text):
            brk = _find_break(text, start, end, search, sentence_end=True)
            if brk == -1:
                brk = _find_break(text, start, end, search, sentence_end=False)
            if brk != -1:
                end = brk
        pieces.append(text[start:end].strip())
        start = end
    return pieces


def _find_break(text: str, start: int, end: int, search: int, *, sentence_end: bool) -> int:
    i = end
    while i >= end - search and i > start:
        ch = text[i]
        if sentence_end:
            if ch in _SENTENCE_END and (i + 1 >= len(text) or text[i + 1].isspace()):
                return i + 1
        elif ch.isspace():
            return i + 1
        i -= 1
    return -1


def split_sentences(text: str) -> list[str]:
    """Split *text* into ordered sentence strings; never raises.

    Fragments shorter than five characters are dropped.
    """
    parts = _SENTENCE_RE.findall(text)
    tier = "regex"

    if len(parts) <= FALLBACK_THRESHOLD and text.strip():
        simple = _SIMPLE_SPLIT_RE.split(text)
        if len(simple) > len(parts):
            parts, tier = simple, "simple"
        if len(parts) <= FALLBACK_THRESHOLD:
            lines = [line for line in _LINE_BREAK_RE.split(text) if line.strip()]
            if len(lines) > len(parts):
                parts, tier = lines, "lines"
        if len(parts) <= FALLBACK_THRESHOLD:
            forced = force_split(text)
            if len(forced) > len(parts):
                parts, tier = forced, "forced"

    sentences = [p.strip() for p in parts if len(p.strip()) >= MIN_SENTENCE_CHARS]
    log.debug("Split %d chars into %d sentences (%s)", len(text), len(sentences), tier)
    return sentences


def indexed(sentences: list[str]) -> list[Sentence]:
    """Pair each sentence with its position."""
    return [Sentence(i, s) for i, s in enumerate(sentences)]
