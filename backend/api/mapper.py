"""
API Mapper
==========

Transforms engine snapshots into JSON-ready DTO dicts for the dashboard.
No smoothing, no reinterpretation: every field is a direct projection.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from ..contracts.base import Error
from ..contracts.principles import MAX_CHECK_ID, MIN_CHECK_ID, principle_name
from ..contracts.state import BalanceMetrics, EngineSnapshot
from ..core.balance import balance_for_snapshot


def map_snapshot_to_dto(
    snapshot: EngineSnapshot,
    secondary_factor: Optional[float] = None
) -> Dict[str, Any]:
    """
    Map EngineSnapshot to the dashboard DTO.

    Args:
        snapshot: Current engine snapshot.
        secondary_factor: Opaque weighting input for the balance metrics
            (None: derived from the last cognitive weight).
    """
    progress = snapshot.progress
    alignment = snapshot.alignment
    gate = snapshot.gate

    return {
        "version_id": f"v_{snapshot.state_hash()[:8]}",
        "generated_at": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "sequence": snapshot.sequence,
        "progress": {
            "fraction": progress.fraction,
            "phase": progress.phase.value,
            "aligned": progress.aligned,
            "active_aux_gates": list(progress.active_aux_gates),
            "events_consumed": progress.events_consumed,
            "recalibrations": progress.recalibrations,
            "cognitive_weight": progress.cognitive_weight.value if progress.cognitive_weight else None,
        },
        "alignment": {
            "checks_passed": sorted(alignment.checks_passed),
            "overall_score": alignment.overall_score,
            "ripple": alignment.ripple,
            "mean_health": alignment.mean_health,
        },
        "gate": {
            "status": gate.status.value,
            "result": gate.result.value,
            "armings": gate.armings,
            "expected_token": gate.expected_token if gate.armed else None,
        },
        "balance": _map_balance(balance_for_snapshot(snapshot, secondary_factor)),
        "condition": _map_condition(snapshot.last_condition),
    }


def map_principles() -> Dict[str, Any]:
    return {
        "count": MAX_CHECK_ID - MIN_CHECK_ID + 1,
        "principles": [
            {"check_id": i, "name": principle_name(i)}
            for i in range(MIN_CHECK_ID, MAX_CHECK_ID + 1)
        ],
    }


def _map_balance(metrics: BalanceMetrics) -> Dict[str, float]:
    return {
        "left_weight": metrics.left_weight,
        "right_weight": metrics.right_weight,
        "balance": metrics.balance,
        "pulse": metrics.pulse,
        "complexity": metrics.complexity,
    }


def _map_condition(error: Optional[Error]) -> Optional[Dict[str, Any]]:
    if error is None:
        return None
    return {
        "code": error.code.name,
        "message": error.message,
        "context": dict(error.context),
    }
