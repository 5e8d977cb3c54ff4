"""Transcript validation: reject text that cannot produce a useful summary."""

from __future__ import annotations

import re

from tldw.errors import ValidationError

MIN_WORDS = 20
MIN_ALNUM_RATIO = 0.5

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9\s]")


def alphanumeric_ratio(text: str) -> float:
    """Return the share of ASCII letters, digits and whitespace in *text*."""
    if not text:
        return 0.0
    return len(_NON_ALNUM_RE.sub("", text)) / len(text)


def validate_transcript(transcript: str | None, *, min_length: int = 100) -> str:
    """Return *transcript* unchanged or raise ``ValidationError``.

    Checks run in order: presence, length, word count, then the
    alphanumeric ratio that catches garbled caption output.
    """
    if not transcript:
        raise ValidationError("No transcript found", reason="missing")

    if len(transcript) < min_length:
        raise ValidationError(
            f"Transcript is too short ({len(transcript)} chars, minimum {min_length} required)",
            reason="too_short",
        )

    words = len(transcript.split())
    if words < MIN_WORDS:
        raise ValidationError(
            f"Transcript has too few words ({words}, minimum {MIN_WORDS} required)",
            reason="too_few_words",
        )

    ratio = alphanumeric_ratio(transcript)
    if ratio < MIN_ALNUM_RATIO:
        raise ValidationError(
            f"Transcript appears to be low quality ({round(ratio * 100)}% alphanumeric)",
            reason="low_quality",
            hint="Auto-generated captions for music or non-speech videos are often unusable.",
        )
    return transcript
