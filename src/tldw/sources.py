"""Transcript sources: where the text to summarize comes from."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
import re
from typing import Any, Protocol, runtime_checkable
from urllib.parse import parse_qs, urlparse

from tldw.errors import FetchError

log = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_PATH_ID_RE = re.compile(r"^/(?:embed|shorts|live|v)/([A-Za-z0-9_-]{11})")

DEFAULT_LANGUAGES: tuple[str, ...] = ("en", "en-US", "en-GB")


def extract_video_id(url: str) -> str | None:
    """Return the YouTube video id in *url*, or None.

    Accepts ``watch?v=``, ``/embed/``, ``/shorts/`` and ``youtu.be`` links,
    and a bare 11-character id.
    """
    candidate = url.strip()
    if _VIDEO_ID_RE.fullmatch(candidate):
        return candidate

    parsed = urlparse(candidate if "//" in candidate else f"https://{candidate}")
    host = (parsed.hostname or "").lower().removeprefix("www.").removeprefix("m.")

    if host == "youtu.be":
        vid = parsed.path.lstrip("/").split("/")[0]
        return vid if _VIDEO_ID_RE.fullmatch(vid) else None

    if host.endswith("youtube.com") or host.endswith("youtube-nocookie.com"):
        if parsed.path == "/watch":
            values = parse_qs(parsed.query).get("v", [])
            if values and _VIDEO_ID_RE.fullmatch(values[0]):
                return values[0]
            return None
        if m := _PATH_ID_RE.match(parsed.path):
            return m.group(1)
    return None


@runtime_checkable
class TranscriptSource(Protocol):
    """Fetch transcript text for a video identifier."""

    async def fetch(self, video_id: str) -> str:
        """Return the transcript text; raise ``FetchError`` when unavailable."""
        ...

    def extract_identifier(self, url: str) -> str | None:
        """Return the identifier referenced by *url*, or None."""
        ...


class YouTubeTranscriptSource:
    """Caption transcripts via ``youtube-transcript-api``.

    The library is synchronous, so fetches run in a worker thread.
    """

    def __init__(
        self,
        languages: Sequence[str] = DEFAULT_LANGUAGES,
        *,
        api: Any = None,
    ) -> None:
        self.languages = tuple(languages)
        self._api = api

    def _get_api(self) -> Any:
        if self._api is None:
            from youtube_transcript_api import YouTubeTranscriptApi

            self._api = YouTubeTranscriptApi()
        return self._api

    def extract_identifier(self, url: str) -> str | None:
        return extract_video_id(url)

    async def fetch(self, video_id: str) -> str:
        try:
            text = await asyncio.to_thread(self._fetch_sync, video_id)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(
                f"No transcript available for {video_id}: {e}",
                hint="The video may have captions disabled or be private.",
                video_id=video_id,
            ) from e
        if not text.strip():
            raise FetchError(
                f"Transcript for {video_id} is empty", video_id=video_id
            )
        log.info("Fetched transcript for %s (%d chars)", video_id, len(text))
        return text

    def _fetch_sync(self, video_id: str) -> str:
        fetched = self._get_api().fetch(video_id, languages=list(self.languages))
        return " ".join(
            _snippet_text(snippet).strip() for snippet in fetched if _snippet_text(snippet).strip()
        )


def _snippet_text(snippet: Any) -> str:
    if isinstance(snippet, Mapping):
        return str(snippet.get("text", ""))
    return str(getattr(snippet, "text", ""))


class StaticTranscriptSource:
    """In-memory transcripts keyed by identifier."""

    def __init__(self, transcripts: Mapping[str, str] | None = None) -> None:
        self.transcripts: dict[str, str] = dict(transcripts or {})

    def add(self, video_id: str, text: str) -> None:
        self.transcripts[video_id] = text

    def extract_identifier(self, url: str) -> str | None:
        if url in self.transcripts:
            return url
        return extract_video_id(url)

    async def fetch(self, video_id: str) -> str:
        try:
            return self.transcripts[video_id]
        except KeyError:
            raise FetchError(
                f"No transcript registered for {video_id!r}", video_id=video_id
            ) from None
