"""Backend protocol: the raw generate-text collaborator."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call model options."""

    model: str = ""
    max_output_tokens: int = 4096
    temperature: float = 0.2

    def with_model(self, model: str) -> GenerationOptions:
        """Return a copy bound to *model*."""
        return replace(self, model=model)


@runtime_checkable
class GenerativeBackend(Protocol):
    """Minimal backend protocol: one prompt in, text out.

    Implementations raise ``BackendError`` (or a subclass) on failure.
    """

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """Generate text for *prompt*."""
        ...
