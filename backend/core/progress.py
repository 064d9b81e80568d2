"""
Progress Tracker
================

Turns the count of consumed events into a completion fraction and a
band-ordered phase.

BANDS (first match wins):
=========================
    fraction >= 1.0   -> COMPLETION, only via complete(). Reaching it
                         while the gate is armed stays HARMONY; reaching
                         it with the gate idle forces RECALIBRATION
    fraction >= 0.99  -> HARMONY (gate-eligible)
    fraction >= 0.5   -> DEPLOYMENT
    otherwise         -> INITIALIZATION

RECALIBRATION:
==============
fraction rewinds to max(0, fraction - rewind) and counting restarts
from that floor. Earned checks are not this component's concern.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional
import logging
import math

from ..contracts.base import clamp
from ..contracts.events import CognitiveWeight, ServiceEvent, ServiceStatus
from ..contracts.state import AlignmentState, RitualPhase, RitualProgress

logger = logging.getLogger(__name__)

# Tolerance for band edges reached by float accumulation.
_BAND_EPSILON = 1e-9


@dataclass
class ProgressConfig:
    """Configuration for the progress tracker."""
    total_expected_events: int = 100
    deployment_threshold: float = 0.5
    harmony_threshold: float = 0.99
    recalibration_rewind: float = 0.5

    def __post_init__(self):
        if self.total_expected_events <= 0:
            raise ValueError("total_expected_events must be positive")
        if not 0.0 < self.deployment_threshold <= self.harmony_threshold < 1.0:
            raise ValueError("thresholds must satisfy 0 < deployment <= harmony < 1")
        if not 0.0 <= self.recalibration_rewind <= 1.0:
            raise ValueError("recalibration_rewind must be within [0, 1]")
        # A rewind from 1.0 must land below the harmony band again.
        if self.recalibration_rewind <= 1.0 - self.harmony_threshold:
            raise ValueError("recalibration_rewind must exceed 1 - harmony_threshold")
        check_total_reaches_harmony(self.total_expected_events, self.harmony_threshold)


def check_total_reaches_harmony(total: int, harmony_threshold: float):
    """
    Raise ValueError unless one event step fits inside the harmony band.

    With fewer events the fraction jumps from below the band straight to
    1.0 and the gate can never arm.
    """
    if total <= 0:
        raise ValueError("total_expected_events must be positive")
    if total * (1.0 - harmony_threshold) < 1.0 - _BAND_EPSILON:
        minimum = math.ceil(1.0 / (1.0 - harmony_threshold) - _BAND_EPSILON)
        raise ValueError(
            f"total_expected_events={total} skips the harmony band "
            f"(need at least {minimum})"
        )


class ProgressTracker:
    """
    Monotonic progress within a run, except on recalibration.

    GUARANTEES:
    ===========
    1. fraction never decreases except through recalibrate()
    2. COMPLETION is reachable only through complete()
    3. Once COMPLETION, advance() is a no-op
    4. Under hold_harmony the phase is HARMONY, never RECALIBRATION
    """

    def __init__(self, config: Optional[ProgressConfig] = None):
        self._config = config or ProgressConfig()
        self._floor = 0.0
        self._events_since_floor = 0
        self._events_consumed = 0
        self._recalibrations = 0
        self._aux_gates: List[int] = []
        self._cognitive_weight: Optional[CognitiveWeight] = None
        self._state = RitualProgress()

    @property
    def state(self) -> RitualProgress:
        return self._state

    def band_for(self, fraction: float) -> RitualPhase:
        """Phase band for a fraction, ignoring the completion guard."""
        cfg = self._config
        if fraction >= 1.0 - _BAND_EPSILON:
            return RitualPhase.COMPLETION
        if fraction >= cfg.harmony_threshold - _BAND_EPSILON:
            return RitualPhase.HARMONY
        if fraction >= cfg.deployment_threshold - _BAND_EPSILON:
            return RitualPhase.DEPLOYMENT
        return RitualPhase.INITIALIZATION

    def advance(
        self,
        event: ServiceEvent,
        alignment: AlignmentState,
        total_expected_events: Optional[int] = None,
        hold_harmony: bool = False
    ) -> RitualProgress:
        """
        Count one event and re-band.

        alignment is accepted so progress and alignment are always
        advanced from the same event; banding itself uses only the count.
        hold_harmony is set while the confirmation gate is armed: the
        fraction keeps growing up to 1.0 but the phase stays HARMONY.
        """
        if self._state.phase is RitualPhase.COMPLETION:
            return self._state

        total = total_expected_events or self._config.total_expected_events
        if total != self._config.total_expected_events:
            check_total_reaches_harmony(total, self._config.harmony_threshold)

        self._events_consumed += 1
        self._events_since_floor += 1
        if event.aux_gate_id is not None:
            self._aux_gates.append(event.aux_gate_id)
        if event.cognitive_weight is not None:
            self._cognitive_weight = event.cognitive_weight

        fraction = clamp(self._floor + self._events_since_floor / total, 0.0, 1.0)
        if fraction >= 1.0 - _BAND_EPSILON:
            fraction = 1.0

        phase = self.band_for(fraction)
        aligned = event.status is not ServiceStatus.ERROR

        if hold_harmony and phase is RitualPhase.COMPLETION:
            phase = RitualPhase.HARMONY

        if phase is RitualPhase.COMPLETION:
            logger.info(
                "[progress] full fraction reached without confirmation "
                "(checks=%d), recalibrating",
                alignment.checks_count
            )
            return self._rewind(fraction, aligned)

        self._state = self._build(fraction, phase, aligned)
        return self._state

    def recalibrate(self) -> RitualProgress:
        """Force RECALIBRATION from the current fraction."""
        if self._state.phase is RitualPhase.COMPLETION:
            return self._state
        return self._rewind(self._state.fraction, self._state.aligned)

    def complete(self) -> RitualProgress:
        """Force COMPLETION with fraction 1.0. Idempotent."""
        if self._state.phase is not RitualPhase.COMPLETION:
            self._state = self._build(1.0, RitualPhase.COMPLETION, self._state.aligned)
        return self._state

    def _rewind(self, fraction: float, aligned: bool) -> RitualProgress:
        self._floor = max(0.0, fraction - self._config.recalibration_rewind)
        self._events_since_floor = 0
        self._recalibrations += 1
        logger.info(
            "[progress] recalibration #%d: fraction %.3f -> %.3f",
            self._recalibrations, fraction, self._floor
        )
        self._state = self._build(self._floor, RitualPhase.RECALIBRATION, aligned)
        return self._state

    def _build(self, fraction: float, phase: RitualPhase, aligned: bool) -> RitualProgress:
        return RitualProgress(
            fraction=fraction,
            phase=phase,
            aligned=aligned,
            active_aux_gates=tuple(self._aux_gates),
            events_consumed=self._events_consumed,
            recalibrations=self._recalibrations,
            cognitive_weight=self._cognitive_weight
        )
