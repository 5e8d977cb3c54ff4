"""Gemini backend implementation."""

from __future__ import annotations

import asyncio
from typing import Any

from tldw.backends._errors import wrap_backend_error
from tldw.backends.base import GenerationOptions
from tldw.errors import BackendError


class GeminiBackend:
    """Google Gemini API backend."""

    def __init__(self, api_key: str) -> None:
        """Create backend with an API key."""
        self.api_key = api_key
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """Generate text from the Gemini model."""
        client = self._get_client()
        from google.genai import types

        try:
            response = await client.aio.models.generate_content(
                model=options.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    max_output_tokens=options.max_output_tokens,
                    temperature=options.temperature,
                ),
            )
            text = getattr(response, "text", None) if response else None
            if not text:
                raise BackendError(
                    "Gemini returned an empty response.",
                    retryable=True,
                    provider="gemini",
                )
            return str(text)
        except (asyncio.CancelledError, BackendError):
            raise
        except Exception as e:
            raise wrap_backend_error(
                e, provider="gemini", message="Gemini generate failed"
            ) from e
