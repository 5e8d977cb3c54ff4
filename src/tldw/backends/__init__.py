"""Generative backends."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tldw.backends.base import GenerationOptions, GenerativeBackend
from tldw.backends.gemini import GeminiBackend
from tldw.backends.mock import MockBackend
from tldw.errors import ConfigurationError

if TYPE_CHECKING:
    from tldw.config import Config

__all__ = [
    "GeminiBackend",
    "GenerationOptions",
    "GenerativeBackend",
    "MockBackend",
    "get_backend",
]


def get_backend(config: Config) -> GenerativeBackend:
    """Return the backend selected by *config*."""
    if config.use_mock:
        return MockBackend()
    if not config.api_key:
        raise ConfigurationError(
            "API key required for Gemini",
            hint="Set GEMINI_API_KEY, pass api_key=..., or use mock mode.",
        )
    return GeminiBackend(config.api_key)
