"""Command-line entry point: summarize one video into a Markdown file."""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
from pathlib import Path
import sys
from typing import TYPE_CHECKING, Any

from tldw.chunking import SamplingMethod
from tldw.config import MODE_MAX_LENGTH, Config, load_env_overrides
from tldw.errors import ConfigurationError
from tldw.pipeline import SummarizationPipeline
from tldw.sources import YouTubeTranscriptSource
from tldw.tokens import CHARS_PER_TOKEN

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tldw.pipeline import SummaryResult

EXIT_OK = 0
EXIT_PIPELINE_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tldw",
        description="Summarize a YouTube video transcript with Gemini.",
    )
    parser.add_argument(
        "video",
        nargs="?",
        help="YouTube URL or video id (optional with --file)",
    )
    parser.add_argument(
        "--file", type=Path, default=None, help="Read the transcript from a text file"
    )
    parser.add_argument(
        "--mode",
        choices=sorted(MODE_MAX_LENGTH),
        default=None,
        help="Transcript budget preset (default: standard)",
    )
    parser.add_argument(
        "--sampling",
        choices=[m.value for m in SamplingMethod],
        default=None,
        help="Sampling strategy for long transcripts (default: intelligent)",
    )
    parser.add_argument(
        "--max-concurrent", type=int, default=None, help="Chunks summarized in parallel"
    )
    parser.add_argument("--model", default=None, help="Gemini model name")
    parser.add_argument(
        "--mock",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use the offline mock backend",
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="Where to write the summary"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    """Combine ``TLDW_*`` overrides with explicit flags; flags win."""
    overrides: dict[str, Any] = load_env_overrides()
    if args.mode is not None:
        overrides["mode"] = args.mode
    if args.sampling is not None:
        overrides["sampling_method"] = args.sampling
    if args.max_concurrent is not None:
        overrides["max_concurrent"] = args.max_concurrent
    if args.model is not None:
        overrides["model"] = args.model
    if args.mock is not None:
        overrides["use_mock"] = args.mock
    return Config(**overrides)


def print_stats(result: SummaryResult) -> None:
    metrics = result["metrics"]
    print("\n----- PROCESSING STATS -----")
    print(f"Video ID: {result['video_id']}")
    original = metrics["original_length"]
    processed = metrics["processed_length"]
    if metrics["long_video_mode"] and original:
        print(f"Original transcript: {original} characters")
        print(
            f"Processed sample: {processed} characters "
            f"({100 * processed / original:.1f}% of full transcript)"
        )
    else:
        approx = math.ceil(original / CHARS_PER_TOKEN)
        print(f"Transcript length: {original} characters (approx. {approx} tokens)")
    print(f"Chunks processed: {result['chunk_count']}")
    print(f"Model calls: {metrics['n_calls']} in {metrics['duration_s']:.1f}s")


async def _run(args: argparse.Namespace, config: Config) -> SummaryResult:
    transcript = args.file.read_text(encoding="utf-8") if args.file else None
    video = args.video or (args.file.stem if args.file else None)
    pipeline = SummarizationPipeline(config, source=YouTubeTranscriptSource())
    return await pipeline.run(video, transcript=transcript)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.video and not args.file:
        parser.error("a video URL/id or --file is required")

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        if e.hint:
            print(f"Hint: {e.hint}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print(
        f"Mode: {config.mode} ({config.transcript_budget:,} chars), "
        f"sampling: {config.sampling_method}"
    )
    try:
        result = asyncio.run(_run(args, config))
    except OSError as e:
        print(f"Could not read transcript file: {e}", file=sys.stderr)
        return EXIT_PIPELINE_ERROR

    if result["status"] != "ok":
        print(f"\n{result['error']}", file=sys.stderr)
        return EXIT_PIPELINE_ERROR

    print_stats(result)
    text = result["formatted_summary"] or result["summary"] or ""
    print("\n----- SUMMARY -----")
    print(text)

    output = args.output or Path(f"summary_{result['video_id']}.md")
    output.write_text(text, encoding="utf-8")
    print(f"\nSummary saved to: {output}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
