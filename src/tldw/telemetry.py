"""Telemetry context and reporter interfaces.

Chunking, throttling and the pipeline report what they decided (chunk counts,
the importance threshold, throttle waits, batch sizes) through these hooks, so
the behavior is observable without parsing log text.

The context is a shared no-op unless reporters are supplied or
``TLDW_TELEMETRY=1`` is set.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import re
import time
from types import TracebackType
from typing import Any, Protocol, Self, TypeAlias, runtime_checkable

log = logging.getLogger(__name__)

_scope_stack_var: ContextVar[tuple[str, ...]] = ContextVar(
    "scope_stack",
    default=(),
)

# Evaluated once at import time
_TELEMETRY_ENABLED = os.getenv("TLDW_TELEMETRY") == "1"
_STRICT_SCOPES = os.getenv("TLDW_TELEMETRY_STRICT_SCOPES") == "1"

_SCOPE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(?:\.[a-z][a-z0-9_]*)*$")


@runtime_checkable
class TelemetryReporter(Protocol):
    """Duck-typed protocol for telemetry reporters."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """An immutable and stateless no-op context."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> bool | None:
        return None

    @property
    def is_enabled(self) -> bool:
        return False

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    """Telemetry context that forwards to reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(
        self, name: str, **metadata: Any
    ) -> AbstractContextManager["_EnabledTelemetryContext"]:
        return self._create_scope(name, **metadata)

    @contextmanager
    def _create_scope(
        self, name: str, **metadata: Any
    ) -> Iterator["_EnabledTelemetryContext"]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")
        if _STRICT_SCOPES and not _SCOPE_NAME_PATTERN.fullmatch(name):
            raise ValueError(
                "Invalid scope name. Use lowercase letters, digits, and underscores; "
                "segments separated by dots.",
            )

        scope_stack = _scope_stack_var.get()
        scope_path = ".".join((*scope_stack, name))
        start = time.perf_counter()
        scope_token = _scope_stack_var.set((*scope_stack, name))

        try:
            yield self
        finally:
            duration = time.perf_counter() - start
            _scope_stack_var.reset(scope_token)
            final_stack = _scope_stack_var.get()
            enhanced_metadata: dict[str, Any] = {
                "depth": len(final_stack),
                "parent_scope": ".".join(final_stack) if final_stack else None,
                **metadata,
            }
            for reporter in self.reporters:
                try:
                    reporter.record_timing(scope_path, duration, **enhanced_metadata)
                except Exception as e:
                    log.error(
                        "Telemetry reporter '%s' failed: %s",
                        type(reporter).__name__,
                        e,
                        exc_info=True,
                    )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record a metric within the current scope context."""
        scope_stack = _scope_stack_var.get()
        scope_path = ".".join((*scope_stack, name))
        enhanced_metadata: dict[str, Any] = {
            "depth": len(scope_stack),
            "parent_scope": ".".join(scope_stack) if scope_stack else None,
            **metadata,
        }
        for reporter in self.reporters:
            try:
                reporter.record_metric(scope_path, value, **enhanced_metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Record a counter metric."""
        self.metric(name, increment, metric_type="counter", **metadata)

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        """Record a gauge metric."""
        self.metric(name, value, metric_type="gauge", **metadata)

    @property
    def is_enabled(self) -> bool:
        return True


_NO_OP_SINGLETON = _NoOpTelemetryContext()

TelemetryContextProtocol: TypeAlias = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return a telemetry context.

    Behavior:
    - With explicit reporters, return an enabled context forwarding to them.
    - With ``TLDW_TELEMETRY=1`` and no reporters, install an in-memory
      ``SimpleReporter``.
    - Otherwise return the shared no-op instance.
    """
    if reporters:
        return _EnabledTelemetryContext(*reporters)
    if _TELEMETRY_ENABLED:
        return _EnabledTelemetryContext(SimpleReporter())
    return _NO_OP_SINGLETON


class SimpleReporter:
    """In-memory reporter for development and tests.

    Call ``get_report()`` for a readable summary or ``values(scope)`` to
    inspect what was recorded.
    """

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        if scope not in self.timings:
            self.timings[scope] = deque(maxlen=self.max_entries)
        self.timings[scope].append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        if scope not in self.metrics:
            self.metrics[scope] = deque(maxlen=self.max_entries)
        self.metrics[scope].append((value, metadata))

    def values(self, scope: str) -> list[Any]:
        """Return recorded metric values for a scope whose path ends with *scope*."""
        out: list[Any] = []
        for key, entries in self.metrics.items():
            if key == scope or key.endswith("." + scope):
                out.extend(value for value, _ in entries)
        return out

    def reset(self) -> None:
        """Clear all collected telemetry."""
        self.timings.clear()
        self.metrics.clear()

    def get_report(self) -> str:
        """Generate a flat telemetry report."""
        lines = ["=== Telemetry Report ==="]
        if self.timings:
            lines.append("\n--- Timings ---")
            for scope, values in sorted(self.timings.items()):
                durations = [v[0] for v in values]
                lines.append(
                    f"{scope:<40} | "
                    f"Calls: {len(durations):<4} | "
                    f"Avg: {sum(durations) / len(durations):.4f}s | "
                    f"Total: {sum(durations):.4f}s",
                )
        if self.metrics:
            lines.append("\n--- Metrics ---")
            for scope, values in sorted(self.metrics.items()):
                total = sum(v[0] for v in values if isinstance(v[0], int | float))
                lines.append(
                    f"{scope:<40} | Count: {len(values):<4} | Total: {total:,.2f}",
                )
        return "\n".join(lines)
