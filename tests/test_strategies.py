"""Chunking strategies: uniform, bookend and intelligent sampling."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from tests.conftest import make_sentences, make_transcript
from tldw.chunking import SamplingMethod, chunk_transcript, create_strategy
from tldw.chunking.base import Selection, reduction_factor
from tldw.chunking.bookend import BookendSamplingStrategy
from tldw.chunking.intelligent import (
    IntelligentSamplingStrategy,
    ScoredSentence,
    extract_segments,
    forced_min_chunks,
    importance_threshold,
    score_sentence,
    target_chunk_tokens,
)
from tldw.chunking.sentences import indexed
from tldw.chunking.uniform import UniformSamplingStrategy
from tldw.telemetry import SimpleReporter, TelemetryContext

pytestmark = pytest.mark.unit


def _indices(selection: Selection) -> list[int]:
    return [s.index for s in selection.sentences]


def _scored(scores: list[float]) -> list[ScoredSentence]:
    return [ScoredSentence(i, f"s{i}", score) for i, score in enumerate(scores)]


@pytest.mark.parametrize("method", list(SamplingMethod))
def test_single_sentence_is_returned_verbatim(method: SamplingMethod) -> None:
    transcript = "just one long rambling caption line with no terminator at all"
    assert chunk_transcript(transcript, 10, method) == [transcript]


def test_create_strategy_maps_methods() -> None:
    assert isinstance(create_strategy("uniform"), UniformSamplingStrategy)
    assert isinstance(create_strategy(SamplingMethod.BOOKEND), BookendSamplingStrategy)
    assert isinstance(create_strategy("unknown"), IntelligentSamplingStrategy)


def test_reduction_factor_keeps_ten_percent_headroom() -> None:
    assert reduction_factor(3600, 1000) == pytest.approx(4.0)


# --- uniform -------------------------------------------------------------------


def test_uniform_keeps_everything_under_threshold() -> None:
    sentences = indexed(make_sentences(40))
    selection = UniformSamplingStrategy().select(sentences, 1000, 1000)
    assert _indices(selection) == list(range(40))
    assert selection.sampled is False


def test_uniform_samples_every_interval_with_context() -> None:
    """Reduction factor 4 keeps every fourth sentence plus its successor."""
    sentences = indexed(make_sentences(100))
    selection = UniformSamplingStrategy().select(sentences, 3600, 1000)

    expected = [j for i in range(0, 100, 4) for j in (i, i + 1)]
    assert _indices(selection) == expected
    assert selection.sampled is True
    assert selection.min_chunks == 3


# --- bookend -------------------------------------------------------------------


def test_bookend_keeps_both_ends_and_samples_middle() -> None:
    sentences = indexed(make_sentences(100))
    selection = BookendSamplingStrategy().select(sentences, 3600, 1000)

    middle = [10, 11, 27, 28, 44, 45, 61, 62, 78, 79]
    assert _indices(selection) == list(range(10)) + middle + list(range(90, 100))


def test_bookend_long_transcript_keeps_first_and_last_sentence() -> None:
    transcript = make_transcript(500, words=30)
    chunks = BookendSamplingStrategy().chunk_transcript(transcript, 5000)

    assert len(chunks) >= 3
    assert chunks[0].startswith("Sentence 0 ")
    assert "Sentence 499 " in chunks[-1]
    assert sum(len(c) for c in chunks) < len(transcript)


def test_bookend_orders_repeated_sentences_by_position() -> None:
    """Identical sentence texts still come back in position order, once each."""
    phrases = ["We go up now.", "Then we come down.", "And that is all."]
    sentences = indexed([phrases[i % 3] for i in range(100)])

    selection = BookendSamplingStrategy().select(sentences, 3600, 1000)

    middle = [10, 11, 27, 28, 44, 45, 61, 62, 78, 79]
    assert _indices(selection) == list(range(10)) + middle + list(range(90, 100))
    assert [s.text for s in selection.sentences] == [
        phrases[i % 3] for i in _indices(selection)
    ]


def test_bookend_plan_on_repetitive_transcript_is_strictly_increasing() -> None:
    transcript = " ".join(["Same words said again here."] * 400)
    indices = _indices(BookendSamplingStrategy().plan(transcript, 500))

    assert len(indices) == len(set(indices))
    assert all(a < b for a, b in zip(indices, indices[1:], strict=False))


# --- intelligent ---------------------------------------------------------------


def test_score_rewards_position_keywords_and_numbers() -> None:
    assert score_sentence("In summary, the key result is 42.", 0, 100) == pytest.approx(14.5)


def test_score_of_plain_middle_sentence() -> None:
    assert score_sentence("nothing much here", 50, 100) == pytest.approx(1.0)


def test_importance_threshold_cuts_at_keep_fraction() -> None:
    assert importance_threshold(_scored([5, 4, 3, 2, 1]), 4.0) == 3


def test_importance_threshold_is_zero_when_keeping_all() -> None:
    assert importance_threshold(_scored([1, 1]), 1.0) == 0.0


def test_extract_segments_adds_lead_in_and_trailing_context() -> None:
    scores = [0.0] * 20
    scores[10] = 5.0
    segments = extract_segments(_scored(scores), 5.0)

    assert [[s.index for s in seg] for seg in segments] == [
        [0, 1, 2, 3, 4],
        [7, 8, 9, 10, 11, 12],
        [15, 16, 17, 18, 19],
    ]


def test_target_chunk_tokens_splits_at_least_three_ways() -> None:
    assert target_chunk_tokens(900) == 300
    assert target_chunk_tokens(300_000) == 1500


def test_forced_min_chunks_tiers() -> None:
    assert forced_min_chunks(make_sentences(3), 100) is None
    assert forced_min_chunks(make_sentences(8), 100) == 2
    assert forced_min_chunks(make_sentences(30), 10_000) == 3


@pytest.mark.parametrize("count", [11, 20, 40, 80])
def test_small_transcripts_still_split_for_parallel_map(count: int) -> None:
    chunks = IntelligentSamplingStrategy().chunk_transcript(
        make_transcript(count), 300_000
    )
    assert len(chunks) >= 2


def test_intelligent_samples_long_transcript_and_reports_threshold() -> None:
    reporter = SimpleReporter()
    strategy = IntelligentSamplingStrategy(telemetry=TelemetryContext(reporter))
    transcript = " ".join(
        f"The key result number {i} is worth noting here today."
        if i % 10 == 0
        else "plain filler talk continues without much to say here."
        for i in range(600)
    )

    chunked = strategy.chunk(transcript, 1000)

    assert chunked.kept_count < chunked.sentence_count
    assert chunked.processed_length < len(transcript)
    assert len(chunked.chunks) >= 3
    assert len(reporter.values("chunking.importance_threshold")) == 1
    assert reporter.values("chunking.chunks") == [len(chunked.chunks)]


@given(
    count=st.integers(min_value=2, max_value=300),
    words=st.integers(min_value=3, max_value=25),
    max_length=st.integers(min_value=50, max_value=20_000),
    method=st.sampled_from(list(SamplingMethod)),
)
@settings(max_examples=60, deadline=None, derandomize=True)
def test_selected_indices_strictly_increase(
    count: int, words: int, max_length: int, method: SamplingMethod
) -> None:
    """Every strategy preserves chronological order without duplicates."""
    selection = create_strategy(method).plan(make_transcript(count, words), max_length)
    indices = _indices(selection)
    assert all(a < b for a, b in zip(indices, indices[1:], strict=False))
