"""Deterministic Markdown post-processing of the combined summary."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import re

_HEADER_RE = re.compile(r"^#+\s.+$", re.MULTILINE)
_PARAGRAPH_RE = re.compile(r"\n{2,}")

#: Key-point paragraphs shorter than this become bullets.
BULLET_MAX_CHARS = 100


def _key_point(paragraph: str) -> str:
    stripped = paragraph.strip()
    if stripped.startswith(("-", "*")):
        return paragraph
    if len(paragraph) < BULLET_MAX_CHARS:
        return f"- {paragraph}"
    return paragraph


def add_sections(paragraphs: list[str]) -> str:
    """Lay paragraphs out as Overview, Key Points and Conclusion."""
    out = f"## Overview\n\n{paragraphs[0]}\n\n"
    middle = paragraphs[1:-1]
    if middle:
        out += "## Key Points\n\n" + "\n\n".join(_key_point(p) for p in middle) + "\n\n"
    if len(paragraphs) > 2:
        out += f"## Conclusion\n\n{paragraphs[-1]}"
    return out


def format_summary(
    summary: str,
    *,
    title: str = "Video Summary",
    now: Callable[[], datetime] = datetime.now,
) -> str:
    """Return *summary* with a title, sections if it has none, and a footer."""
    out = f"# {title}\n\n"
    if _HEADER_RE.search(summary):
        out += summary
    else:
        paragraphs = _PARAGRAPH_RE.split(summary)
        if len(paragraphs) > 3:
            out += add_sections(paragraphs)
        else:
            out += f"## Summary\n\n{summary}"
    stamp = now().strftime("%Y-%m-%d %H:%M:%S")
    return out + f"\n\n---\n*Summary generated on {stamp}*"
