"""
Core Ritual Engine Components

RESPONSIBILITY: Fold events into alignment and progress, derive balance
metrics, guard completion behind the confirmation gate
ALLOWED INPUTS: ServiceEvent, confirmation text, monotonic time
OUTPUTS: AlignmentState, RitualProgress, BalanceMetrics, ConfirmationGateState

WHAT THIS LAYER MUST NOT DO:
============================
- Read wall-clock time (gate timing goes through MonotonicClock)
- Know about transports, rendering, or HTTP
- Expose mutable internals (every output is a frozen contract)

Each component owns exactly one slice of state. The RitualEngine in
backend/engine.py is the only thing that wires them together.
"""

from .alignment import AlignmentConfig, AlignmentScorer
from .balance import (
    balance_for_snapshot, compute_balance_metrics, secondary_factor_from_weight
)
from .gate import ConfirmationGate, GateConfig
from .progress import ProgressConfig, ProgressTracker

__all__ = [
    'AlignmentConfig',
    'AlignmentScorer',
    'balance_for_snapshot',
    'compute_balance_metrics',
    'secondary_factor_from_weight',
    'ConfirmationGate',
    'GateConfig',
    'ProgressConfig',
    'ProgressTracker',
]
