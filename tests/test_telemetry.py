"""Telemetry scopes, metrics and reporters."""

from __future__ import annotations

import logging

import pytest

from tldw.telemetry import SimpleReporter, TelemetryContext

pytestmark = pytest.mark.unit


class _BrokenReporter:
    def record_timing(self, scope, duration, **metadata):
        raise RuntimeError("reporter down")

    def record_metric(self, scope, value, **metadata):
        raise RuntimeError("reporter down")


def test_context_without_reporters_is_a_shared_noop() -> None:
    ctx = TelemetryContext()
    assert ctx.is_enabled is False
    assert ctx is TelemetryContext()
    with ctx("anything", key="value") as inner:
        inner.gauge("ignored", 1.0)
        inner.count("ignored")


def test_nested_scopes_build_dotted_paths() -> None:
    reporter = SimpleReporter()
    ctx = TelemetryContext(reporter)

    with ctx("pipeline"), ctx("stage", stage="map"):
        ctx.gauge("map.batch", 2)

    assert set(reporter.timings) == {"pipeline", "pipeline.stage"}
    (value, meta), = reporter.metrics["pipeline.stage.map.batch"]
    assert value == 2
    assert meta["metric_type"] == "gauge"
    assert meta["parent_scope"] == "pipeline.stage"
    (_, timing_meta), = reporter.timings["pipeline.stage"]
    assert timing_meta["stage"] == "map"
    assert timing_meta["depth"] == 1


def test_values_match_scope_suffix() -> None:
    reporter = SimpleReporter()
    ctx = TelemetryContext(reporter)
    ctx.count("generation.attempt_failed")
    with ctx("pipeline"):
        ctx.count("generation.attempt_failed", 2)

    assert reporter.values("generation.attempt_failed") == [1, 2]
    assert reporter.values("attempt_failed") == [1, 2]
    assert reporter.values("failed") == []


def test_reporter_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    ctx = TelemetryContext(_BrokenReporter())
    with caplog.at_level(logging.ERROR, logger="tldw.telemetry"):
        with ctx("scope"):
            ctx.metric("value", 1)
    assert "reporter down" in caplog.text


def test_scope_name_must_be_non_empty() -> None:
    ctx = TelemetryContext(SimpleReporter())
    with pytest.raises(ValueError):
        with ctx(""):
            pass


def test_report_lists_timings_and_metrics() -> None:
    reporter = SimpleReporter()
    ctx = TelemetryContext(reporter)
    with ctx("fetch"):
        ctx.gauge("chunking.chunks", 4)

    report = reporter.get_report()
    assert "--- Timings ---" in report
    assert "fetch.chunking.chunks" in report

    reporter.reset()
    assert reporter.metrics == {}
    assert reporter.timings == {}
