"""
State Contracts

Immutable views of engine state handed to readers.

OWNERSHIP:
==========
- AlignmentState: produced only by the AlignmentScorer
- RitualProgress: produced only by the ProgressTracker
- ConfirmationGateState: produced only by the ConfirmationGate
- EngineSnapshot: assembled only by the RitualEngine

Readers (presentation, API, completion callback) hold references to
these objects. They cannot mutate them and never feed them back.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple
import hashlib

from .base import Error
from .events import CognitiveWeight


class RitualPhase(Enum):
    """Discrete phase of the ritual, band-ordered except RECALIBRATION."""
    INITIALIZATION = "initialization"
    DEPLOYMENT = "deployment"
    HARMONY = "harmony"
    RECALIBRATION = "recalibration"
    COMPLETION = "completion"

    @property
    def is_terminal(self) -> bool:
        return self is RitualPhase.COMPLETION


@dataclass(frozen=True)
class AlignmentState:
    """Aggregate alignment over the fixed check set."""
    checks_passed: FrozenSet[int] = frozenset()
    overall_score: float = 0.0
    ripple: float = 0.0
    mean_health: float = 0.0
    events_folded: int = 0

    @property
    def checks_count(self) -> int:
        return len(self.checks_passed)


@dataclass(frozen=True)
class RitualProgress:
    """Completion fraction plus the phase derived from it."""
    fraction: float = 0.0
    phase: RitualPhase = RitualPhase.INITIALIZATION
    aligned: bool = True
    active_aux_gates: Tuple[int, ...] = field(default_factory=tuple)
    events_consumed: int = 0
    recalibrations: int = 0
    cognitive_weight: Optional[CognitiveWeight] = None  # last one seen


@dataclass(frozen=True)
class BalanceMetrics:
    """
    Visualization-facing vector. Purely derived, no lifecycle.

    left_weight is floor-clamped at 0.1, right_weight is ceiling-clamped
    at 0.9. The clamp is one-sided on each side.
    """
    left_weight: float
    right_weight: float
    balance: float
    pulse: float
    complexity: float


class GateStatus(Enum):
    IDLE = "idle"
    ARMED = "armed"
    CONFIRMED = "confirmed"


class GateResult(Enum):
    """Outcome of the latest arming window."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ConfirmationGateState:
    status: GateStatus = GateStatus.IDLE
    expected_token: str = ""
    result: GateResult = GateResult.PENDING
    armed_at: Optional[float] = None
    armings: int = 0

    @property
    def armed(self) -> bool:
        return self.status is GateStatus.ARMED


@dataclass(frozen=True)
class EngineSnapshot:
    """
    Complete immutable view of one engine at one sequence.

    This is the ONLY object the presentation clock reads.
    """
    sequence: int
    progress: RitualProgress
    alignment: AlignmentState
    gate: ConfirmationGateState
    last_condition: Optional[Error] = None

    @property
    def phase(self) -> RitualPhase:
        return self.progress.phase

    @property
    def is_complete(self) -> bool:
        return self.progress.phase is RitualPhase.COMPLETION

    def state_hash(self) -> str:
        """
        Deterministic hash of the replayable content.

        Excludes wall-clock and monotonic timestamps (condition time,
        armed_at) so a replayed engine hashes identically.
        """
        content = (
            f"{self.sequence}|"
            f"{self.progress.fraction!r}|{self.progress.phase.value}|"
            f"{int(self.progress.aligned)}|"
            f"{','.join(str(g) for g in self.progress.active_aux_gates)}|"
            f"{self.progress.events_consumed}|{self.progress.recalibrations}|"
            f"{self.progress.cognitive_weight.value if self.progress.cognitive_weight else ''}|"
            f"{','.join(str(c) for c in sorted(self.alignment.checks_passed))}|"
            f"{self.alignment.overall_score!r}|{self.alignment.ripple!r}|"
            f"{self.gate.status.value}|{self.gate.result.value}|{self.gate.armings}"
        )
        return hashlib.sha256(content.encode()).hexdigest()[:16]
