"""Pytest configuration and fixtures.

Provides environment isolation, marker-based API test skipping, and test
doubles for the backend, transcript source and clocks. Environment fixtures
are autouse unless noted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime
import logging
import os

import pytest

from tldw.backends.base import GenerationOptions
from tldw.config import Config
from tldw.errors import BackendError
from tldw.retry import RetryPolicy

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class FakeBackend:
    """Scriptable backend double.

    ``failures`` maps a call number (1-based) to the exception raised on that
    call; ``fail_when`` raises for prompts matching a predicate. Tracks peak
    concurrency so map-stage batching can be asserted.
    """

    failures: dict[int, BaseException] = field(default_factory=dict)
    fail_when: Callable[[str], bool] | None = None
    delay_s: float = 0.0
    calls: list[tuple[str, GenerationOptions]] = field(default_factory=list)
    in_flight: int = 0
    peak_in_flight: int = 0

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        self.calls.append((prompt, options))
        n = len(self.calls)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            # Yield so concurrently scheduled calls overlap.
            await asyncio.sleep(self.delay_s)
            if n in self.failures:
                raise self.failures[n]
            if self.fail_when is not None and self.fail_when(prompt):
                raise BackendError("scripted failure", retryable=False)
            if "SECTION SUMMARIES" in prompt:
                return "Combined summary paragraph."
            return f"summary {n}"
        finally:
            self.in_flight -= 1

    @property
    def map_calls(self) -> list[str]:
        return [p for p, _ in self.calls if "TRANSCRIPT SECTION" in p]

    @property
    def reduce_calls(self) -> list[str]:
        return [p for p, _ in self.calls if "SECTION SUMMARIES" in p]


class FakeClock:
    """Controllable monotonic and wall clocks with a recording sleep."""

    def __init__(self, start: float = 1_000.0, wall: float | None = None) -> None:
        self.now = start
        # Noon local time keeps the daily reset far away unless a test moves it.
        self.wall_now = (
            wall
            if wall is not None
            else datetime(2026, 1, 15, 12, 0, 0).timestamp()
        )
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def wall(self) -> float:
        return self.wall_now

    def advance(self, seconds: float) -> None:
        self.now += seconds
        self.wall_now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


async def no_sleep(seconds: float) -> None:
    del seconds
    await asyncio.sleep(0)


def make_sentences(count: int, words: int = 6, prefix: str = "Sentence") -> list[str]:
    """Return *count* distinct, punctuated sentences of about *words* words."""
    filler = " ".join(["word"] * max(0, words - 2))
    return [f"{prefix} {i} {filler}." for i in range(count)]


def make_transcript(count: int, words: int = 6) -> str:
    return " ".join(make_sentences(count, words))


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_config() -> Config:
    """Mock-mode configuration with no retry delays."""
    return Config(use_mock=True, retry=RetryPolicy(initial_delay_s=0.0))


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_env(request, monkeypatch):
    """Clear GEMINI_* and TLDW_* variables so tests never see real settings.

    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return
    for key in list(os.environ.keys()):
        if key.startswith(("GEMINI_", "TLDW_")):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if os.getenv("ENABLE_API_TESTS"):
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


@pytest.fixture
def gemini_api_key():
    """Return GEMINI_API_KEY or skip the test if unavailable."""
    key = os.getenv("GEMINI_API_KEY")
    if not key:
        pytest.skip("GEMINI_API_KEY not set")
    return key
