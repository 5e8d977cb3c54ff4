"""Summarization pipeline stages and orchestrator."""

from __future__ import annotations

from tldw.pipeline.context import PipelineContext, Stage
from tldw.pipeline.result import SummaryResult
from tldw.pipeline.runner import SummarizationPipeline, map_concurrency

__all__ = [
    "PipelineContext",
    "Stage",
    "SummarizationPipeline",
    "SummaryResult",
    "map_concurrency",
]
