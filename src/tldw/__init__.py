"""tldw: rate-limited map-reduce summaries of long video transcripts.

Public API:
    - summarize(): Summarize one video or transcript
    - SummarizationPipeline: Reusable pipeline with injectable collaborators
    - Config: Configuration dataclass
"""

from __future__ import annotations

import logging

from tldw.chunking import SamplingMethod, chunk_transcript, create_strategy
from tldw.client import RetryingGenerativeClient
from tldw.config import Config, RateLimits
from tldw.errors import (
    BackendError,
    ChunkingError,
    ConfigurationError,
    FetchError,
    GenerationError,
    RateLimitError,
    TldwError,
    ValidationError,
)
from tldw.pipeline import SummarizationPipeline, SummaryResult
from tldw.retry import RetryPolicy
from tldw.sources import (
    StaticTranscriptSource,
    TranscriptSource,
    YouTubeTranscriptSource,
    extract_video_id,
)
from tldw.throttle import RateThrottler

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("tldw")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("tldw").addHandler(logging.NullHandler())


async def summarize(
    video: str | None = None,
    *,
    config: Config,
    source: TranscriptSource | None = None,
    transcript: str | None = None,
) -> SummaryResult:
    """Summarize a video by URL or id, or a transcript given as text.

    Example:
        config = Config(use_mock=True)
        result = await summarize("https://youtu.be/dQw4w9WgXcQ", config=config)
        print(result["formatted_summary"])
    """
    if source is None and transcript is None:
        source = YouTubeTranscriptSource()
    pipeline = SummarizationPipeline(config, source=source)
    return await pipeline.run(video, transcript=transcript)


__all__ = [
    "BackendError",
    "ChunkingError",
    "Config",
    "ConfigurationError",
    "FetchError",
    "GenerationError",
    "RateLimitError",
    "RateLimits",
    "RateThrottler",
    "RetryPolicy",
    "RetryingGenerativeClient",
    "SamplingMethod",
    "StaticTranscriptSource",
    "SummarizationPipeline",
    "SummaryResult",
    "TldwError",
    "TranscriptSource",
    "ValidationError",
    "YouTubeTranscriptSource",
    "chunk_transcript",
    "create_strategy",
    "extract_video_id",
    "summarize",
]
