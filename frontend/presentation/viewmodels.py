"""
Presentation Contracts

Responsibility:
Define ViewModel contracts for the dashboard and build them from an
EngineSnapshot. Strictly read-only: nothing here writes to the engine.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from backend.contracts.principles import PRINCIPLES
from backend.contracts.state import BalanceMetrics, EngineSnapshot, RitualPhase
from backend.core.balance import balance_for_snapshot

PHASE_COLORS = {
    RitualPhase.INITIALIZATION: "slate-400",
    RitualPhase.DEPLOYMENT: "amber-500",
    RitualPhase.HARMONY: "emerald-500",
    RitualPhase.RECALIBRATION: "red-500",
    RitualPhase.COMPLETION: "violet-500",
}

AUX_TRAIL_LENGTH = 12


@dataclass(frozen=True)
class GatePromptViewModel:
    """Prompt shown while the confirmation gate is armed."""
    message: str
    expected_token: str
    is_blocking: bool


@dataclass(frozen=True)
class RitualDashboardViewModel:
    """ViewModel for one frame of the ritual dashboard."""
    sequence: int
    phase_label: str     # e.g., "Harmony"
    status_color: str    # e.g., "emerald-500"
    progress_percent: int
    checks_label: str    # e.g., "31 / 42 principles"
    score_percent: int
    ripple: float
    is_aligned: bool
    aux_gate_trail: Tuple[int, ...]
    balance: BalanceMetrics
    gate_prompt: Optional[GatePromptViewModel]
    condition_message: Optional[str]
    is_complete: bool


def build_dashboard_view(
    snapshot: EngineSnapshot,
    secondary_factor: Optional[float] = None
) -> RitualDashboardViewModel:
    progress = snapshot.progress
    alignment = snapshot.alignment

    gate_prompt = None
    if snapshot.gate.armed:
        gate_prompt = GatePromptViewModel(
            message="Affirm the first principle to complete the ritual",
            expected_token=snapshot.gate.expected_token,
            is_blocking=False
        )

    return RitualDashboardViewModel(
        sequence=snapshot.sequence,
        phase_label=progress.phase.value.capitalize(),
        status_color=PHASE_COLORS[progress.phase],
        progress_percent=int(progress.fraction * 100),
        checks_label=f"{alignment.checks_count} / {len(PRINCIPLES)} principles",
        score_percent=int(round(alignment.overall_score * 100)),
        ripple=alignment.ripple,
        is_aligned=progress.aligned,
        aux_gate_trail=progress.active_aux_gates[-AUX_TRAIL_LENGTH:],
        balance=balance_for_snapshot(snapshot, secondary_factor),
        gate_prompt=gate_prompt,
        condition_message=snapshot.last_condition.message if snapshot.last_condition else None,
        is_complete=snapshot.is_complete
    )
