"""
Balance Metric Calculator
=========================

Pure mapping (fraction, overall_score, secondary_factor) -> BalanceMetrics.

ASYMMETRY:
==========
left_weight is only floor-clamped (>= 0.1) and right_weight is only
ceiling-clamped (<= 0.9). This biases the picture toward the right
side as alignment rises. Do not make the clamp symmetric.

No history, no errors: callers pass values already in [0, 1].
"""

from __future__ import annotations
from typing import Optional

from ..contracts.events import CognitiveWeight
from ..contracts.state import BalanceMetrics, EngineSnapshot

LEFT_FLOOR = 0.1
RIGHT_CEILING = 0.9
SCORE_SKEW = 0.3
SECONDARY_SKEW = 0.1

_SECONDARY_BY_WEIGHT = {
    CognitiveWeight.A: 0.0,
    CognitiveWeight.BALANCED: 0.5,
    CognitiveWeight.B: 1.0,
}


def compute_balance_metrics(
    fraction: float,
    overall_score: float,
    secondary_factor: float
) -> BalanceMetrics:
    base_left = 1.0 - fraction
    base_right = fraction

    adj_left = base_left * (1.0 - overall_score * SCORE_SKEW)
    adj_right = base_right * (1.0 + overall_score * SCORE_SKEW)

    final_left = adj_left * (1.0 - secondary_factor * SECONDARY_SKEW)
    final_right = adj_right * (1.0 + secondary_factor * SECONDARY_SKEW)

    left_weight = max(final_left, LEFT_FLOOR)
    right_weight = min(final_right, RIGHT_CEILING)

    return BalanceMetrics(
        left_weight=left_weight,
        right_weight=right_weight,
        balance=right_weight - left_weight,
        pulse=overall_score,
        complexity=1.0 + fraction * 3.0
    )


def balance_for_snapshot(
    snapshot: EngineSnapshot,
    secondary_factor: Optional[float] = None
) -> BalanceMetrics:
    """
    Metrics for whatever snapshot is current.

    Without an explicit secondary_factor the last cognitive weight seen
    on the feed decides it.
    """
    if secondary_factor is None:
        secondary_factor = secondary_factor_from_weight(snapshot.progress.cognitive_weight)
    return compute_balance_metrics(
        snapshot.progress.fraction,
        snapshot.alignment.overall_score,
        secondary_factor
    )


def secondary_factor_from_weight(weight: Optional[CognitiveWeight]) -> float:
    """Default secondary factor for a cognitive weight (None -> balanced)."""
    if weight is None:
        return _SECONDARY_BY_WEIGHT[CognitiveWeight.BALANCED]
    return _SECONDARY_BY_WEIGHT[weight]
