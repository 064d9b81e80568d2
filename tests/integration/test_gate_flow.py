"""
Confirmation Gate Flow Tests

Complete runs through HARMONY and the confirmation gate.

INVARIANTS:
===========
- COMPLETION is reached only through a matching confirmation
- A rejected or expired window rewinds progress and re-arms later
- on_complete fires exactly once
- While armed the phase stays HARMONY; only the gate ends the window
"""

import pytest

from backend.contracts.base import ErrorCode
from backend.contracts.events import AuditEventType
from backend.contracts.state import GateResult, GateStatus, RitualPhase
from backend.contracts.temporal import LogEntryKind

from .fixtures import (
    CONFIRMATION_TEXT,
    EVENTS_TO_HARMONY,
    drive,
    drive_to_harmony,
    full_run,
    make_engine,
)


# =============================================================================
# ARMING
# =============================================================================

class TestArming:

    def test_gate_arms_on_entering_harmony(self):
        engine = make_engine()
        snapshot = drive_to_harmony(engine)

        assert snapshot.phase == RitualPhase.HARMONY
        assert snapshot.progress.fraction == pytest.approx(0.99)
        assert snapshot.gate.status == GateStatus.ARMED
        assert snapshot.gate.armings == 1
        assert snapshot.gate.expected_token == CONFIRMATION_TEXT

    def test_gate_idle_before_harmony(self):
        engine = make_engine()
        snapshot = drive(engine, full_run()[:EVENTS_TO_HARMONY - 1])

        assert snapshot.phase == RitualPhase.DEPLOYMENT
        assert snapshot.gate.status == GateStatus.IDLE
        assert snapshot.gate.armings == 0

    def test_confirmation_outside_window_has_no_effect(self):
        engine = make_engine()
        drive(engine, full_run()[:10])
        entries_before = len(engine.log)

        assert engine.submit_confirmation(CONFIRMATION_TEXT) is False
        assert engine.snapshot.phase == RitualPhase.INITIALIZATION
        assert len(engine.log) == entries_before


# =============================================================================
# CONFIRMATION
# =============================================================================

class TestConfirmation:

    def test_round_trip_completes_run(self):
        completed = []
        engine = make_engine(on_complete=completed.append)
        drive_to_harmony(engine)

        assert engine.submit_confirmation(CONFIRMATION_TEXT) is True

        snapshot = engine.snapshot
        assert snapshot.phase == RitualPhase.COMPLETION
        assert snapshot.progress.fraction == 1.0
        assert snapshot.gate.status == GateStatus.CONFIRMED
        assert snapshot.gate.result == GateResult.CONFIRMED
        assert len(completed) == 1
        assert completed[0].checks_count == 42
        assert completed[0] == snapshot.alignment

    def test_confirmation_is_case_and_whitespace_insensitive(self):
        engine = make_engine()
        drive_to_harmony(engine)

        assert engine.submit_confirmation("  i HAVE not   COMMITTED sin!  ") is True
        assert engine.snapshot.is_complete

    def test_duplicate_confirmation_does_not_refire(self):
        completed = []
        engine = make_engine(on_complete=completed.append)
        drive_to_harmony(engine)

        assert engine.submit_confirmation(CONFIRMATION_TEXT) is True
        assert engine.submit_confirmation(CONFIRMATION_TEXT) is True
        assert engine.submit_confirmation("something else") is False

        assert len(completed) == 1
        assert engine.completion_fired
        assert engine.observability.count(AuditEventType.COMPLETED) == 1

    def test_events_after_completion_are_ignored(self):
        engine = make_engine()
        events = full_run()
        drive_to_harmony(engine, events)
        engine.submit_confirmation(CONFIRMATION_TEXT)
        sequence = engine.snapshot.sequence

        snapshot = engine.on_event(events[EVENTS_TO_HARMONY])

        assert snapshot.phase == RitualPhase.COMPLETION
        assert snapshot.progress.fraction == 1.0
        assert snapshot.sequence == sequence
        assert snapshot.last_condition.code == ErrorCode.EVENT_AFTER_COMPLETION

    def test_callback_errors_propagate(self):
        def explode(alignment):
            raise RuntimeError("collaborator failed")

        engine = make_engine(on_complete=explode)
        drive_to_harmony(engine)

        with pytest.raises(RuntimeError):
            engine.submit_confirmation(CONFIRMATION_TEXT)
        assert engine.snapshot.is_complete


# =============================================================================
# REJECTION & TIMEOUT
# =============================================================================

class TestGateFailure:

    def test_rejection_rewinds_progress(self):
        engine = make_engine()
        drive_to_harmony(engine)

        assert engine.submit_confirmation("nope") is False

        snapshot = engine.snapshot
        assert snapshot.phase == RitualPhase.RECALIBRATION
        assert snapshot.progress.fraction == pytest.approx(0.49)
        assert snapshot.progress.recalibrations == 1
        assert snapshot.gate.status == GateStatus.IDLE
        assert snapshot.gate.result == GateResult.REJECTED
        assert snapshot.last_condition.code == ErrorCode.GATE_REJECTED
        assert list(engine.log.replay())[-1].kind == LogEntryKind.CONFIRMATION

    def test_checks_survive_recalibration_by_default(self):
        engine = make_engine()
        drive_to_harmony(engine)
        engine.submit_confirmation("nope")

        assert engine.snapshot.alignment.checks_count == 42

    def test_checks_cleared_when_configured(self):
        engine = make_engine(retain_checks=False)
        drive_to_harmony(engine)
        engine.submit_confirmation("nope")

        assert engine.snapshot.alignment.checks_count == 0

    def test_window_still_open_before_timeout(self):
        engine = make_engine(timeout_seconds=30.0)
        drive_to_harmony(engine)

        engine.clock.advance(29.5)
        snapshot = engine.tick()

        assert snapshot.gate.status == GateStatus.ARMED
        assert engine.gate_remaining() == pytest.approx(0.5)

    def test_timeout_via_tick(self):
        engine = make_engine(timeout_seconds=30.0)
        drive_to_harmony(engine)

        engine.clock.advance(30.0)
        snapshot = engine.tick()

        assert snapshot.phase == RitualPhase.RECALIBRATION
        assert snapshot.progress.fraction == pytest.approx(0.49)
        assert snapshot.gate.result == GateResult.TIMED_OUT
        assert snapshot.last_condition.code == ErrorCode.GATE_TIMEOUT
        assert list(engine.log.replay())[-1].kind == LogEntryKind.GATE_TIMEOUT

    def test_late_confirmation_resolves_as_timeout(self):
        engine = make_engine(timeout_seconds=30.0)
        drive_to_harmony(engine)

        engine.clock.advance(31.0)

        assert engine.submit_confirmation(CONFIRMATION_TEXT) is False
        assert engine.snapshot.gate.result == GateResult.TIMED_OUT
        assert not engine.snapshot.is_complete

    def test_timeout_is_resolved_before_next_event(self):
        engine = make_engine(timeout_seconds=30.0)
        events = full_run()
        drive_to_harmony(engine, events)

        engine.clock.advance(60.0)
        snapshot = engine.on_event(events[EVENTS_TO_HARMONY])

        # 0.49 floor + one event
        assert snapshot.progress.fraction == pytest.approx(0.50)
        assert snapshot.phase == RitualPhase.DEPLOYMENT
        assert snapshot.gate.result == GateResult.TIMED_OUT

    def test_no_timeout_when_disabled(self):
        engine = make_engine(timeout_seconds=None)
        drive_to_harmony(engine)

        engine.clock.advance(10_000.0)
        snapshot = engine.tick()

        assert snapshot.gate.status == GateStatus.ARMED
        assert engine.gate_remaining() is None

    def test_gate_rearms_after_rejection(self):
        completed = []
        engine = make_engine(on_complete=completed.append)
        events = full_run(total_events=200)
        drive_to_harmony(engine, events)
        engine.submit_confirmation("nope")

        # 0.49 -> 0.99 takes another 50 events
        snapshot = drive(engine, events[EVENTS_TO_HARMONY:EVENTS_TO_HARMONY + 50])

        assert snapshot.phase == RitualPhase.HARMONY
        assert snapshot.gate.status == GateStatus.ARMED
        assert snapshot.gate.armings == 2

        assert engine.submit_confirmation(CONFIRMATION_TEXT) is True
        assert engine.snapshot.progress.recalibrations == 1
        assert engine.snapshot.progress.events_consumed == EVENTS_TO_HARMONY + 50
        assert len(completed) == 1


# =============================================================================
# PINNED HARMONY
# =============================================================================

class TestPinnedHarmony:

    def test_phase_stays_harmony_while_armed(self):
        completed = []
        engine = make_engine(on_complete=completed.append)
        events = full_run()
        drive_to_harmony(engine, events)

        snapshot = drive(engine, events[EVENTS_TO_HARMONY:EVENTS_TO_HARMONY + 20])

        assert snapshot.phase == RitualPhase.HARMONY
        assert snapshot.progress.fraction == 1.0
        assert snapshot.progress.events_consumed == EVENTS_TO_HARMONY + 20
        assert snapshot.gate.status == GateStatus.ARMED
        assert snapshot.gate.armings == 1
        assert engine.gate_remaining() == pytest.approx(30.0)
        assert completed == []

    def test_confirmation_after_further_events_completes(self):
        engine = make_engine()
        events = full_run()
        drive_to_harmony(engine, events)
        drive(engine, events[EVENTS_TO_HARMONY:EVENTS_TO_HARMONY + 5])

        assert engine.submit_confirmation(CONFIRMATION_TEXT) is True
        assert engine.snapshot.phase == RitualPhase.COMPLETION
        assert engine.snapshot.progress.recalibrations == 0

    def test_rejection_from_full_fraction_rewinds_to_half(self):
        engine = make_engine()
        events = full_run()
        drive_to_harmony(engine, events)
        drive(engine, events[EVENTS_TO_HARMONY:EVENTS_TO_HARMONY + 3])

        assert engine.submit_confirmation("nope") is False

        snapshot = engine.snapshot
        assert snapshot.phase == RitualPhase.RECALIBRATION
        assert snapshot.progress.fraction == pytest.approx(0.5)
        assert snapshot.gate.status == GateStatus.IDLE

    def test_timeout_while_pinned_rewinds_on_next_event(self):
        engine = make_engine(timeout_seconds=30.0)
        events = full_run()
        drive_to_harmony(engine, events)
        drive(engine, events[EVENTS_TO_HARMONY:EVENTS_TO_HARMONY + 10])

        engine.clock.advance(30.0)
        snapshot = engine.on_event(events[EVENTS_TO_HARMONY + 10])

        # 1.0 - 0.5 floor + one event
        assert snapshot.progress.fraction == pytest.approx(0.51)
        assert snapshot.phase == RitualPhase.DEPLOYMENT
        assert snapshot.gate.result == GateResult.TIMED_OUT
        assert snapshot.progress.recalibrations == 1


# =============================================================================
# UNCONFIRMED COMPLETION
# =============================================================================

class TestUnconfirmedCompletion:

    def test_long_unanswered_run_never_completes(self):
        completed = []
        engine = make_engine(on_complete=completed.append, timeout_seconds=30.0)
        phases = set()
        for event in full_run(total_events=400):
            engine.clock.advance(1.0)
            phases.add(engine.on_event(event).phase)

        assert RitualPhase.COMPLETION not in phases
        assert RitualPhase.HARMONY in phases
        assert engine.snapshot.progress.recalibrations >= 2
        assert engine.snapshot.gate.armings >= 3
        assert completed == []

    def test_audit_trail_records_the_cycle(self):
        engine = make_engine(timeout_seconds=30.0)
        events = full_run()
        drive_to_harmony(engine, events)
        engine.clock.advance(30.0)
        engine.on_event(events[EVENTS_TO_HARMONY])

        obs = engine.observability
        assert obs.count(AuditEventType.EVENT_FOLDED) == 100
        assert obs.count(AuditEventType.GATE_ARMED) == 1
        assert obs.count(AuditEventType.GATE_TIMED_OUT) == 1
        assert obs.count(AuditEventType.RECALIBRATED) == 1
        assert obs.count(AuditEventType.COMPLETED) == 0
        assert obs.metrics.counter("events_consumed_total") == 100
        assert obs.metrics.counter("recalibrations_total") == 1
