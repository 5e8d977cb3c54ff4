"""Pipeline stages and the per-run context threaded through them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Stage(StrEnum):
    """States of one summarization run."""

    FETCH = "fetch"
    VALIDATE = "validate"
    CHUNK = "chunk"
    MAP = "map"
    REDUCE = "reduce"
    FORMAT = "format"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.SUCCESS, Stage.ERROR)


#: Prefix of the user-visible error message for a failure in each stage.
STAGE_ERROR_PREFIX: dict[Stage, str] = {
    Stage.FETCH: "Failed to fetch transcript",
    Stage.VALIDATE: "Transcript validation failed",
    Stage.CHUNK: "Failed to process transcript",
    Stage.MAP: "Failed to generate summary",
    Stage.REDUCE: "Failed to generate summary",
    Stage.FORMAT: "Failed to format summary",
}


@dataclass
class PipelineContext:
    """Mutable record owned by one run; discarded when the run ends."""

    video: str | None = None
    video_id: str | None = None
    transcript: str | None = None
    original_length: int = 0
    processed_length: int = 0
    long_video_mode: bool = False
    chunks: list[str] = field(default_factory=list)
    chunk_summaries: list[str] = field(default_factory=list)
    summary: str | None = None
    formatted_summary: str | None = None
    error: str | None = None
    failed_stage: Stage | None = None
