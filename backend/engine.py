"""
Engine Orchestration Module

The RitualEngine is the single owner of alignment, progress and gate
state. Everything else either pushes inputs into it (feed, human
confirmation, housekeeping ticks) or reads the immutable snapshot it
publishes after every input.

DESIGN PRINCIPLES:
==================
1. One writer: only on_event / ingest_raw / submit_confirmation / tick mutate
2. Incremental folding: O(1) work per event, no re-scan of history
3. Every accepted input is appended to the ritual log (replayable)
4. Abnormal input never raises: it becomes a condition or RECALIBRATION
5. While the gate is armed the phase stays HARMONY until the gate resolves
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging
import os

from .contracts.base import Error, ErrorCode
from .contracts.events import AuditEventType, ServiceEvent
from .contracts.state import (
    AlignmentState, EngineSnapshot, GateResult, GateStatus, RitualPhase, RitualProgress
)
from .core.alignment import AlignmentConfig, AlignmentScorer
from .core.gate import ConfirmationGate, GateConfig
from .core.progress import ProgressConfig, ProgressTracker
from .observability import ObservabilityConfig, ObservabilityEngine
from .temporal.clock import MonotonicClock
from .temporal.event_log import RitualEventLog

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[AlignmentState], Any]

_TRUE_STRINGS = {"1", "true", "yes", "on"}


@dataclass
class RitualEngineConfig:
    """Unified configuration for one engine instance."""
    alignment: AlignmentConfig = None
    progress: ProgressConfig = None
    gate: GateConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.alignment = self.alignment or AlignmentConfig()
        self.progress = self.progress or ProgressConfig()
        self.gate = self.gate or GateConfig()
        self.observability = self.observability or ObservabilityConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'RitualEngineConfig':
        """
        Build a config from RITUAL_* environment variables.

        RITUAL_TOTAL_EVENTS, RITUAL_REWIND, RITUAL_RETAIN_CHECKS,
        RITUAL_GATE_TIMEOUT_SECONDS ("none" disables the timeout).
        """
        env = os.environ if environ is None else environ

        progress = ProgressConfig()
        if "RITUAL_TOTAL_EVENTS" in env:
            progress = ProgressConfig(
                total_expected_events=int(env["RITUAL_TOTAL_EVENTS"]),
                recalibration_rewind=float(env.get("RITUAL_REWIND", progress.recalibration_rewind))
            )
        elif "RITUAL_REWIND" in env:
            progress = ProgressConfig(recalibration_rewind=float(env["RITUAL_REWIND"]))

        alignment = AlignmentConfig()
        if "RITUAL_RETAIN_CHECKS" in env:
            alignment.retain_checks_on_recalibration = (
                env["RITUAL_RETAIN_CHECKS"].strip().lower() in _TRUE_STRINGS
            )

        gate = GateConfig()
        if "RITUAL_GATE_TIMEOUT_SECONDS" in env:
            raw = env["RITUAL_GATE_TIMEOUT_SECONDS"].strip().lower()
            gate = GateConfig(timeout_seconds=None if raw in ("", "none") else float(raw))

        return cls(alignment=alignment, progress=progress, gate=gate)


class RitualEngine:
    """
    Ritual Progress & Alignment Engine.

    INPUT CHANNELS:
    ===============
    - on_event(ServiceEvent) / ingest_raw(mapping): the feed clock
    - submit_confirmation(text): the human-facing collaborator
    - tick(): any clock; only resolves gate timeouts

    OUTPUT:
    =======
    - snapshot: latest immutable EngineSnapshot
    - on_complete(AlignmentState): fired exactly once
    """

    def __init__(
        self,
        config: Optional[RitualEngineConfig] = None,
        clock: Optional[MonotonicClock] = None,
        on_complete: Optional[CompletionCallback] = None
    ):
        self._config = config or RitualEngineConfig()
        self._clock = clock or MonotonicClock.live()
        self._on_complete = on_complete

        self._scorer = AlignmentScorer(self._config.alignment)
        self._tracker = ProgressTracker(self._config.progress)
        self._gate = ConfirmationGate(self._config.gate, self._clock)
        self._log = RitualEventLog()
        self._observability = ObservabilityEngine(self._config.observability)

        self._completion_fired = False
        self._snapshot = self._build_snapshot(None)

    # =========================================================================
    # READ INTERFACE
    # =========================================================================

    @property
    def snapshot(self) -> EngineSnapshot:
        return self._snapshot

    @property
    def config(self) -> RitualEngineConfig:
        return self._config

    @property
    def clock(self) -> MonotonicClock:
        return self._clock

    @property
    def log(self) -> RitualEventLog:
        return self._log

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    @property
    def completion_fired(self) -> bool:
        return self._completion_fired

    def gate_remaining(self) -> Optional[float]:
        """Seconds left in the current arming window, if armed."""
        return self._gate.remaining()

    # =========================================================================
    # FEED INTERFACE
    # =========================================================================

    def on_event(self, event: ServiceEvent) -> EngineSnapshot:
        """Fold one event from the feed."""
        if not isinstance(event, ServiceEvent):
            if isinstance(event, Mapping):
                return self.ingest_raw(event)
            return self._discard(Error.create(
                ErrorCode.MALFORMED_EVENT,
                f"Unsupported event type {type(event).__name__}"
            ))

        if self._tracker.state.phase is RitualPhase.COMPLETION:
            return self._discard(Error.create(
                ErrorCode.EVENT_AFTER_COMPLETION,
                "Event received after completion",
                service=event.service_name,
            ))

        self._expire_gate_if_due()

        entry = self._log.append_event(event)
        seq = entry.sequence.value
        previous_progress = self._tracker.state
        previous_ripple = self._scorer.state.ripple

        alignment = self._scorer.consume(event)
        conditions: List[Error] = self._scorer.drain_conditions()
        for condition in conditions:
            self._observability.increment("invalid_checks_total")
            self._observability.log_audit(
                AuditEventType.CHECK_REJECTED, "alignment", "reject_check",
                sequence=seq, error=condition, check_id=event.check_id
            )

        if alignment.ripple > previous_ripple:
            self._observability.log_audit(
                AuditEventType.RIPPLE, "alignment", "ripple",
                sequence=seq, score=f"{alignment.overall_score:.4f}", ripple=alignment.ripple
            )

        progress = self._tracker.advance(
            event, alignment, self._config.progress.total_expected_events,
            hold_harmony=self._gate.state.armed
        )

        if progress.recalibrations > previous_progress.recalibrations:
            condition = Error.create(
                ErrorCode.UNCONFIRMED_COMPLETION,
                "Full fraction reached without confirmation",
                gate_status=self._gate.state.status.value,
            )
            conditions.append(condition)
            self._after_recalibration(seq, condition)
        elif progress.phase is RitualPhase.HARMONY and self._gate.state.status is GateStatus.IDLE:
            gate_state = self._gate.arm()
            logger.info("[engine] gate armed (#%d) at seq %d", gate_state.armings, seq)
            self._observability.log_audit(
                AuditEventType.GATE_ARMED, "gate", "arm",
                sequence=seq, armings=gate_state.armings
            )

        self._observability.increment("events_consumed_total")
        self._observability.gauge("overall_score", alignment.overall_score)
        self._observability.gauge("progress_fraction", self._tracker.state.fraction)
        self._observability.log_audit(
            AuditEventType.EVENT_FOLDED, "engine", "fold",
            sequence=seq, service=event.service_name, status=event.status.value
        )
        self._audit_phase_change(previous_progress, self._tracker.state, seq)

        return self._publish(conditions[-1] if conditions else None)

    def ingest_raw(self, raw: Mapping[str, Any]) -> EngineSnapshot:
        """
        Parse and fold a raw feed record.

        Malformed records are discarded and do not advance the fraction.
        """
        result = ServiceEvent.from_dict(raw)
        if result.is_failure:
            return self._discard(result.error)
        return self.on_event(result.value)

    # =========================================================================
    # CONFIRMATION INTERFACE
    # =========================================================================

    def submit_confirmation(self, text: str) -> bool:
        """
        Offer a confirmation token to the gate.

        Returns True only when the token confirms (or the run is already
        confirmed and the token matches). Outside an arming window the
        call has no effect and returns False.
        """
        gate_state = self._gate.state
        if gate_state.status is GateStatus.CONFIRMED:
            return self._gate.matches(text)
        if not gate_state.armed:
            logger.debug("[engine] confirmation ignored: gate %s", gate_state.status.value)
            return False

        result = self._gate.submit(text)
        if result is GateResult.TIMED_OUT:
            entry = self._log.append_timeout()
            self._after_gate_failure(result, entry.sequence.value)
            return False

        entry = self._log.append_confirmation(text)
        if result is GateResult.CONFIRMED:
            self._complete(entry.sequence.value)
            return True

        self._after_gate_failure(result, entry.sequence.value)
        return False

    def expire_gate(self) -> bool:
        """
        Resolve an armed gate as timed out now.

        Used by the async session when its wait window elapses, and by
        replay. Returns True if the gate was armed.
        """
        previous = self._tracker.state
        if self._gate.force_timeout() is None:
            return False
        entry = self._log.append_timeout()
        self._after_gate_failure(GateResult.TIMED_OUT, entry.sequence.value, previous)
        return True

    def tick(self) -> EngineSnapshot:
        """Housekeeping tick: resolves gate timeouts, otherwise read-only."""
        self._expire_gate_if_due()
        return self._snapshot

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _expire_gate_if_due(self):
        previous = self._tracker.state
        if self._gate.expire_if_due() is GateResult.TIMED_OUT:
            entry = self._log.append_timeout()
            self._after_gate_failure(GateResult.TIMED_OUT, entry.sequence.value, previous)

    def _after_gate_failure(
        self,
        result: GateResult,
        seq: int,
        previous: Optional[RitualProgress] = None
    ):
        previous = previous or self._tracker.state
        if result is GateResult.TIMED_OUT:
            code, event_type, message = (
                ErrorCode.GATE_TIMEOUT, AuditEventType.GATE_TIMED_OUT,
                "No confirmation within the arming window"
            )
        else:
            code, event_type, message = (
                ErrorCode.GATE_REJECTED, AuditEventType.GATE_REJECTED,
                "Confirmation did not match the first principle"
            )
        condition = Error.create(code, message, armings=self._gate.state.armings)
        logger.info("[engine] gate %s, recalibrating", result.value)
        self._observability.log_audit(event_type, "gate", result.value, sequence=seq, error=condition)

        self._tracker.recalibrate()
        self._after_recalibration(seq, condition)
        self._audit_phase_change(previous, self._tracker.state, seq)
        self._publish(condition)

    def _after_recalibration(self, seq: int, condition: Error):
        self._gate.reset()
        self._scorer.on_recalibration()
        self._observability.increment("recalibrations_total")
        self._observability.log_audit(
            AuditEventType.RECALIBRATED, "progress", "recalibrate",
            sequence=seq, error=condition,
            fraction=f"{self._tracker.state.fraction:.4f}"
        )

    def _complete(self, seq: int):
        previous = self._tracker.state
        self._tracker.complete()
        self._observability.log_audit(AuditEventType.GATE_CONFIRMED, "gate", "confirm", sequence=seq)
        self._audit_phase_change(previous, self._tracker.state, seq)
        snapshot = self._publish(None)

        if self._completion_fired:
            return
        self._completion_fired = True
        self._observability.log_audit(
            AuditEventType.COMPLETED, "engine", "complete", sequence=seq,
            checks=snapshot.alignment.checks_count,
            score=f"{snapshot.alignment.overall_score:.4f}"
        )
        logger.info(
            "[engine] ritual complete: %d checks, score %.3f",
            snapshot.alignment.checks_count, snapshot.alignment.overall_score
        )
        if self._on_complete is not None:
            self._on_complete(snapshot.alignment)

    def _discard(self, condition: Error) -> EngineSnapshot:
        logger.warning("[engine] discarded event: %s", condition.message)
        self._observability.increment("events_discarded_total")
        self._observability.log_audit(
            AuditEventType.EVENT_DISCARDED, "engine", "discard",
            sequence=self._log.state.head_sequence.value, error=condition
        )
        return self._publish(condition)

    def _audit_phase_change(self, before: RitualProgress, after: RitualProgress, seq: int):
        if before.phase is not after.phase:
            self._observability.log_audit(
                AuditEventType.PHASE_CHANGED, "progress", "phase",
                sequence=seq, source=before.phase.value, target=after.phase.value
            )

    def _publish(self, condition: Optional[Error]) -> EngineSnapshot:
        self._snapshot = self._build_snapshot(condition)
        return self._snapshot

    def _build_snapshot(self, condition: Optional[Error]) -> EngineSnapshot:
        return EngineSnapshot(
            sequence=self._log.state.head_sequence.value,
            progress=self._tracker.state,
            alignment=self._scorer.state,
            gate=self._gate.state,
            last_condition=condition
        )

    def summary(self) -> Dict[str, Any]:
        """Compact dict view of the current snapshot (for logs and demos)."""
        snap = self._snapshot
        return {
            "sequence": snap.sequence,
            "phase": snap.phase.value,
            "fraction": round(snap.progress.fraction, 4),
            "checks": snap.alignment.checks_count,
            "score": round(snap.alignment.overall_score, 4),
            "ripple": snap.alignment.ripple,
            "gate": snap.gate.status.value,
        }
