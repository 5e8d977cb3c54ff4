"""Mock backend for offline runs and tests."""

from __future__ import annotations

from tldw.backends.base import GenerationOptions


class MockBackend:
    """Deterministic backend that never touches the network.

    Echoes the tail of the prompt, which holds the transcript excerpt or the
    chunk summaries, so mock summaries stay informative.
    """

    def __init__(self, *, echo_chars: int = 200) -> None:
        """Create a backend echoing up to *echo_chars* characters."""
        self.echo_chars = echo_chars
        self.calls: list[tuple[str, GenerationOptions]] = []

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """Return a deterministic summary-shaped response."""
        self.calls.append((prompt, options))
        excerpt = " ".join(prompt.split())[-self.echo_chars :]
        return f"echo ({options.model or 'mock'}): {excerpt}"
