"""Result record returned by a pipeline run."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, TypedDict

if TYPE_CHECKING:
    from tldw.pipeline.context import PipelineContext


class SummaryResult(TypedDict):
    """Outcome of one summarization run.

    ``status`` is ``"ok"`` when every stage succeeded; otherwise ``"error"``
    with a stage-prefixed message in ``error`` and no partial summary.
    """

    status: Literal["ok", "error"]
    summary: str | None
    formatted_summary: str | None
    chunk_count: int
    error: str | None
    video_id: str | None
    #: Keys: ``duration_s``, ``original_length``, ``processed_length``,
    #: ``long_video_mode``, ``n_calls``, ``stage``.
    metrics: dict[str, Any]


def build_result(
    ctx: PipelineContext, *, duration_s: float, n_calls: int
) -> SummaryResult:
    """Build the result record from a finished context."""
    failed = ctx.error is not None
    return {
        "status": "error" if failed else "ok",
        "summary": None if failed else ctx.summary,
        "formatted_summary": None if failed else ctx.formatted_summary,
        "chunk_count": len(ctx.chunks),
        "error": ctx.error,
        "video_id": ctx.video_id,
        "metrics": {
            "duration_s": duration_s,
            "original_length": ctx.original_length,
            "processed_length": ctx.processed_length,
            "long_video_mode": ctx.long_video_mode,
            "n_calls": n_calls,
            "stage": str(ctx.failed_stage) if ctx.failed_stage else "success",
        },
    }
