"""Prompt construction and Markdown post-processing."""

from __future__ import annotations

from datetime import datetime

import pytest

from tldw.pipeline.formatting import format_summary
from tldw.pipeline.prompts import (
    chunk_prompt,
    position_indicator,
    reduce_prompt,
)

pytestmark = pytest.mark.unit

FOOTER = "\n\n---\n*Summary generated on 2026-03-01 09:30:00*"


def _now() -> datetime:
    return datetime(2026, 3, 1, 9, 30, 0)


def test_chunk_prompt_embeds_the_chunk() -> None:
    prompt = chunk_prompt("the chunk text")
    assert "TRANSCRIPT SECTION:\nthe chunk text\n" in prompt
    assert prompt.endswith("DETAILED SECTION SUMMARY:")


@pytest.mark.parametrize(
    ("index", "count", "expected"),
    [
        (0, 6, "Beginning"),
        (5, 6, "End"),
        (1, 6, "20% through"),
        (2, 6, "40% through"),
        (1, 3, "50% through"),
    ],
)
def test_position_indicator(index: int, count: int, expected: str) -> None:
    assert position_indicator(index, count) == expected


def test_reduce_prompt_tags_sections_in_order() -> None:
    prompt = reduce_prompt(["first", "middle", "last"])
    assert "3 summary sections" in prompt
    assert (
        "SECTION 1 [Beginning]:\nfirst\n\n"
        "SECTION 2 [50% through]:\nmiddle\n\n"
        "SECTION 3 [End]:\nlast\n"
    ) in prompt


def test_single_section_is_the_beginning() -> None:
    assert "SECTION 1 [Beginning]:\nonly\n" in reduce_prompt(["only"])


def test_summary_with_headers_is_kept_verbatim() -> None:
    summary = "## Topic\n\nDetails here."
    assert format_summary(summary, now=_now) == f"# Video Summary\n\n{summary}{FOOTER}"


def test_short_summary_gets_a_summary_section() -> None:
    out = format_summary("One paragraph.\n\nAnother one.", now=_now)
    assert out == (
        "# Video Summary\n\n## Summary\n\nOne paragraph.\n\nAnother one." + FOOTER
    )


def test_long_summary_is_split_into_sections() -> None:
    long_point = "A key point that runs on for quite a while " * 3
    summary = "\n\n".join(["Intro.", "Short point.", long_point, "- Already a bullet", "Wrap up."])

    out = format_summary(summary, title="Talk", now=_now)

    assert out.startswith("# Talk\n\n## Overview\n\nIntro.\n\n## Key Points\n\n")
    assert "- Short point." in out
    assert f"\n\n{long_point}\n\n" in out
    assert "- - Already a bullet" not in out
    assert "## Conclusion\n\nWrap up." + FOOTER in out
