"""Summarization pipeline: an explicit state machine over PipelineContext.

Fetch -> Validate -> Chunk -> Map -> Reduce -> Format -> Success, with any
stage failure moving to Error. Only the map stage runs work concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
import logging
import math
import time
from typing import TYPE_CHECKING

from tldw.backends import get_backend
from tldw.chunking import create_strategy
from tldw.client import RetryingGenerativeClient
from tldw.errors import ChunkingError, FetchError, TldwError
from tldw.pipeline.context import STAGE_ERROR_PREFIX, PipelineContext, Stage
from tldw.pipeline.formatting import format_summary
from tldw.pipeline.prompts import chunk_prompt, reduce_prompt
from tldw.pipeline.result import SummaryResult, build_result
from tldw.pipeline.validation import validate_transcript
from tldw.sources import extract_video_id
from tldw.telemetry import TelemetryContext
from tldw.throttle import RateThrottler

if TYPE_CHECKING:
    from tldw.backends.base import GenerativeBackend
    from tldw.config import Config
    from tldw.sources import TranscriptSource
    from tldw.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

#: Identifier used when a transcript is supplied without a video.
INLINE_VIDEO_ID = "transcript"


def map_concurrency(max_concurrent: int, chunk_count: int) -> int:
    """Return the batch width for the map stage."""
    return min(max_concurrent, max(2, math.ceil(6 / max(1, chunk_count))))


class SummarizationPipeline:
    """Run one transcript through chunking, map, reduce and formatting.

    The throttler and client may be injected so several pipelines share one
    quota; otherwise each pipeline builds its own from ``config``.
    """

    def __init__(
        self,
        config: Config,
        *,
        source: TranscriptSource | None = None,
        backend: GenerativeBackend | None = None,
        client: RetryingGenerativeClient | None = None,
        throttler: RateThrottler | None = None,
        telemetry: TelemetryContextProtocol | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.source = source
        self.telemetry = telemetry if telemetry is not None else TelemetryContext()
        self.clock = clock
        if client is None:
            client = RetryingGenerativeClient(
                backend or get_backend(config),
                throttler=throttler
                or RateThrottler(config.rate_limits, telemetry=self.telemetry),
                policy=config.retry,
                telemetry=self.telemetry,
            )
        self.client = client
        self.strategy = create_strategy(config.sampling_method, telemetry=self.telemetry)

        self._handlers: dict[Stage, Callable[[PipelineContext], Awaitable[Stage]]] = {
            Stage.FETCH: self._fetch,
            Stage.VALIDATE: self._validate,
            Stage.CHUNK: self._chunk,
            Stage.MAP: self._map,
            Stage.REDUCE: self._reduce,
            Stage.FORMAT: self._format,
        }

    async def run(
        self, video: str | None = None, *, transcript: str | None = None
    ) -> SummaryResult:
        """Summarize *video* (URL or id), or *transcript* text when given.

        Stage failures never raise; they come back as ``status="error"``.
        """
        start = time.perf_counter()
        calls_before = self.client.calls
        ctx = PipelineContext(video=video, transcript=transcript)

        stage = Stage.FETCH
        while not stage.is_terminal:
            handler = self._handlers[stage]
            try:
                with self.telemetry("pipeline.stage", stage=str(stage)):
                    next_stage = await handler(ctx)
            except TldwError as e:
                ctx.error = f"{STAGE_ERROR_PREFIX[stage]}: {e}"
                ctx.failed_stage = stage
                log.error("Stage %s failed: %s", stage, e)
                next_stage = Stage.ERROR
            log.debug("Stage %s -> %s", stage, next_stage)
            stage = next_stage

        duration = time.perf_counter() - start
        if stage is Stage.SUCCESS:
            log.info(
                "Summarized %s in %.1fs (%d chunks)",
                ctx.video_id,
                duration,
                len(ctx.chunks),
            )
        return build_result(
            ctx, duration_s=duration, n_calls=self.client.calls - calls_before
        )

    async def _fetch(self, ctx: PipelineContext) -> Stage:
        if ctx.transcript is not None:
            ctx.video_id = (
                (self._extract(ctx.video) or ctx.video) if ctx.video else INLINE_VIDEO_ID
            )
        else:
            if not ctx.video:
                raise FetchError("No video or transcript given")
            if self.source is None:
                raise FetchError(
                    "No transcript source configured",
                    hint="Pass source=YouTubeTranscriptSource() or a transcript.",
                )
            video_id = self._identify(ctx.video)
            ctx.video_id = video_id
            ctx.transcript = await self.source.fetch(video_id)
        ctx.original_length = len(ctx.transcript or "")
        log.info("Transcript for %s: %d chars", ctx.video_id, ctx.original_length)
        return Stage.VALIDATE

    def _extract(self, video: str) -> str | None:
        if self.source is not None:
            return self.source.extract_identifier(video)
        return extract_video_id(video)

    def _identify(self, video: str) -> str:
        video_id = self._extract(video)
        if video_id is None:
            raise FetchError(
                f"Could not extract a video id from {video!r}",
                hint="Pass a YouTube URL or an 11-character video id.",
            )
        return video_id

    async def _validate(self, ctx: PipelineContext) -> Stage:
        validate_transcript(
            ctx.transcript, min_length=self.config.min_transcript_length
        )
        return Stage.CHUNK

    async def _chunk(self, ctx: PipelineContext) -> Stage:
        transcript = ctx.transcript or ""
        budget = self.config.transcript_budget
        ctx.long_video_mode = len(transcript) > budget
        if ctx.long_video_mode:
            log.info(
                "Long video: %d chars exceeds budget of %d; sampling with %s",
                len(transcript),
                budget,
                self.strategy.method,
            )

        chunked = self.strategy.chunk(transcript, budget)
        chunks = [c for c in chunked.chunks if c.strip()]
        if not chunks:
            raise ChunkingError("No chunks could be produced from the transcript")
        ctx.chunks = chunks
        ctx.processed_length = chunked.processed_length
        return Stage.MAP

    async def _map(self, ctx: PipelineContext) -> Stage:
        chunks = ctx.chunks
        width = map_concurrency(self.config.max_concurrent, len(chunks))
        summaries: list[str | None] = [None] * len(chunks)
        batches = math.ceil(len(chunks) / width)
        log.info(
            "Summarizing %d chunks in %d batches of up to %d", len(chunks), batches, width
        )

        for start in range(0, len(chunks), width):
            batch = range(start, min(start + width, len(chunks)))
            self.telemetry.gauge("map.batch", len(batch), batch=start // width + 1)
            results = await asyncio.gather(
                *(self._summarize_chunk(i, chunks[i]) for i in batch),
                return_exceptions=True,
            )
            for i, item in zip(batch, results, strict=True):
                if isinstance(item, BaseException):
                    # Lowest chunk index wins, not first to fail.
                    raise item
                summaries[i] = item

        ctx.chunk_summaries = [s for s in summaries if s is not None]
        return Stage.REDUCE

    async def _summarize_chunk(self, index: int, chunk: str) -> str:
        log.debug("Summarizing chunk %d (%d chars)", index + 1, len(chunk))
        summary = await self.client.generate(
            chunk_prompt(chunk), self.config.chunk_generation
        )
        log.debug("Chunk %d summarized (%d chars)", index + 1, len(summary))
        return summary

    async def _reduce(self, ctx: PipelineContext) -> Stage:
        log.info("Combining %d chunk summaries", len(ctx.chunk_summaries))
        ctx.summary = await self.client.generate(
            reduce_prompt(ctx.chunk_summaries), self.config.reduce_generation
        )
        return Stage.FORMAT

    async def _format(self, ctx: PipelineContext) -> Stage:
        ctx.formatted_summary = format_summary(
            ctx.summary or "", title=self.config.summary_title, now=self.clock
        )
        return Stage.SUCCESS
