"""
Observability Layer Tests

The audit layer records; it never changes what the engine does.
"""

import pytest

from backend.contracts.events import AuditEventType
from backend.observability import ObservabilityConfig, ObservabilityEngine
from tests.integration.fixtures import drive, full_run, make_engine


class TestMetrics:

    def test_gauges_track_the_latest_fold(self):
        engine = make_engine()
        drive(engine, full_run(total_events=50))

        metrics = engine.observability.metrics
        assert metrics.get_latest("progress_fraction").value == pytest.approx(0.5)
        assert len(metrics.get_metric("overall_score")) == 50
        assert metrics.get_latest("overall_score").value == engine.snapshot.alignment.overall_score

    def test_metrics_can_be_disabled(self):
        obs = ObservabilityEngine(ObservabilityConfig(enable_metrics=False))
        obs.increment("events_consumed_total")

        assert obs.metrics is None

    def test_series_keep_only_the_newest_points(self):
        obs = ObservabilityEngine(ObservabilityConfig(max_points_per_metric=10))
        for i in range(25):
            obs.gauge("progress_fraction", i / 100)
            obs.increment("events_consumed_total")

        series = obs.metrics.get_metric("progress_fraction")
        assert len(series) == 10
        assert series[0].value == pytest.approx(0.15)
        assert obs.metrics.get_latest("progress_fraction").value == pytest.approx(0.24)
        assert len(obs.metrics.get_metric("events_consumed_total")) == 10
        assert obs.metrics.counter("events_consumed_total") == 25

    def test_long_run_holds_bounded_series(self):
        engine = make_engine(timeout_seconds=30.0)
        for event in full_run(total_events=1500):
            engine.clock.advance(1.0)
            engine.on_event(event)

        metrics = engine.observability.metrics
        assert len(metrics.get_metric("overall_score")) == 1000
        assert metrics.counter("events_consumed_total") == 1500


class TestAuditTrail:

    def test_entries_are_per_layer(self):
        engine = make_engine()
        drive(engine, full_run(total_events=100))
        obs = engine.observability

        gate_entries = obs.get_unified_log(layers=["gate"])
        assert [e.event_type for e in gate_entries] == [AuditEventType.GATE_ARMED]
        assert all(e.layer == "progress" for e in obs.get_unified_log(layers=["progress"]))

    def test_phase_changes_are_audited_in_order(self):
        engine = make_engine()
        drive(engine, full_run(total_events=100))

        changes = [
            (dict(e.metadata)["source"], dict(e.metadata)["target"])
            for e in engine.observability.get_unified_log(event_type=AuditEventType.PHASE_CHANGED)
        ]
        assert changes == [
            ("initialization", "deployment"),
            ("deployment", "harmony"),
        ]

    def test_entry_cap_per_layer(self):
        obs = ObservabilityEngine(ObservabilityConfig(max_entries_per_layer=3))
        for seq in range(5):
            obs.log_audit(AuditEventType.EVENT_FOLDED, "engine", "fold", sequence=seq)

        assert obs.count(AuditEventType.EVENT_FOLDED) == 3

    def test_unknown_layer_is_not_collected(self):
        obs = ObservabilityEngine()
        obs.log_audit(AuditEventType.EVENT_FOLDED, "renderer", "draw")

        assert obs.count(AuditEventType.EVENT_FOLDED) == 0
