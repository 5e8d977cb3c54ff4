"""Video id extraction and transcript sources."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from tldw.errors import FetchError
from tldw.sources import (
    StaticTranscriptSource,
    TranscriptSource,
    YouTubeTranscriptSource,
    extract_video_id,
)

pytestmark = pytest.mark.unit

VIDEO_ID = "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "url",
    [
        VIDEO_ID,
        f"https://www.youtube.com/watch?v={VIDEO_ID}",
        f"https://youtube.com/watch?feature=share&v={VIDEO_ID}",
        f"https://m.youtube.com/watch?v={VIDEO_ID}&t=42",
        f"youtube.com/watch?v={VIDEO_ID}",
        f"https://youtu.be/{VIDEO_ID}?si=abc",
        f"https://www.youtube.com/embed/{VIDEO_ID}",
        f"https://www.youtube.com/shorts/{VIDEO_ID}",
        f"https://www.youtube.com/live/{VIDEO_ID}",
    ],
)
def test_extract_video_id_accepts_common_forms(url: str) -> None:
    assert extract_video_id(url) == VIDEO_ID


@pytest.mark.parametrize(
    "url",
    [
        "",
        "not a url",
        "https://example.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?v=short",
        "https://www.youtube.com/channel/UC123",
    ],
)
def test_extract_video_id_rejects_other_inputs(url: str) -> None:
    assert extract_video_id(url) is None


class _FakeTranscriptApi:
    def __init__(self, snippets=None, error: Exception | None = None) -> None:
        self.snippets = snippets or []
        self.error = error
        self.requests: list[tuple[str, list[str]]] = []

    def fetch(self, video_id: str, languages: list[str]):
        self.requests.append((video_id, languages))
        if self.error is not None:
            raise self.error
        return self.snippets


@pytest.mark.asyncio
async def test_youtube_source_joins_snippets() -> None:
    api = _FakeTranscriptApi(
        [SimpleNamespace(text=" Hello there "), {"text": "general kenobi"}, SimpleNamespace(text="  ")]
    )
    source = YouTubeTranscriptSource(languages=("de", "en"), api=api)

    assert await source.fetch(VIDEO_ID) == "Hello there general kenobi"
    assert api.requests == [(VIDEO_ID, ["de", "en"])]


@pytest.mark.asyncio
async def test_youtube_source_wraps_library_errors() -> None:
    boom = RuntimeError("Subtitles are disabled for this video")
    source = YouTubeTranscriptSource(api=_FakeTranscriptApi(error=boom))

    with pytest.raises(FetchError) as exc:
        await source.fetch(VIDEO_ID)

    assert exc.value.video_id == VIDEO_ID
    assert exc.value.__cause__ is boom
    assert "Subtitles are disabled" in str(exc.value)


@pytest.mark.asyncio
async def test_youtube_source_rejects_empty_transcript() -> None:
    source = YouTubeTranscriptSource(api=_FakeTranscriptApi([]))
    with pytest.raises(FetchError, match="empty"):
        await source.fetch(VIDEO_ID)


@pytest.mark.asyncio
async def test_static_source_serves_registered_text() -> None:
    source = StaticTranscriptSource({"talk-1": "some text"})
    source.add(VIDEO_ID, "video text")

    assert isinstance(source, TranscriptSource)
    assert source.extract_identifier("talk-1") == "talk-1"
    assert source.extract_identifier(f"https://youtu.be/{VIDEO_ID}") == VIDEO_ID
    assert await source.fetch(VIDEO_ID) == "video text"
    with pytest.raises(FetchError):
        await source.fetch("missing")
