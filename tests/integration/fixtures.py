"""
Integration Test Fixtures

Explicit, deterministic engines and runs.
All clocks are MANUAL so arming windows only move when a test says so.
"""

from datetime import datetime, timezone
from typing import List, Optional

from backend.contracts.events import CognitiveWeight, ServiceEvent, ServiceStatus
from backend.contracts.principles import PRINCIPLES
from backend.core.alignment import AlignmentConfig
from backend.core.gate import GateConfig
from backend.core.progress import ProgressConfig
from backend.engine import RitualEngine, RitualEngineConfig
from backend.ingestion.feed import scripted_run
from backend.temporal.clock import MonotonicClock


# =============================================================================
# FIXED VALUES
# =============================================================================

T0 = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

CONFIRMATION_TEXT = PRINCIPLES[0]  # "I have not committed sin"

# With 100 expected events, event 99 lands exactly on the harmony band.
EVENTS_TO_HARMONY = 99


# =============================================================================
# FACTORIES
# =============================================================================

def make_event(
    status: ServiceStatus = ServiceStatus.ONLINE,
    health: float = 0.9,
    check_id: Optional[int] = None,
    service: str = "gateway",
    aux_gate_id: Optional[int] = None,
    weight: Optional[CognitiveWeight] = None
) -> ServiceEvent:
    return ServiceEvent(
        service_name=service,
        status=status,
        timestamp=T0,
        health_score=health,
        check_id=check_id,
        cognitive_weight=weight,
        aux_gate_id=aux_gate_id
    )


def make_config(
    total_events: int = 100,
    timeout_seconds: Optional[float] = 30.0,
    retain_checks: bool = True,
    rewind: float = 0.5
) -> RitualEngineConfig:
    return RitualEngineConfig(
        alignment=AlignmentConfig(retain_checks_on_recalibration=retain_checks),
        progress=ProgressConfig(total_expected_events=total_events, recalibration_rewind=rewind),
        gate=GateConfig(timeout_seconds=timeout_seconds)
    )


def make_engine(on_complete=None, **config_kwargs) -> RitualEngine:
    """Engine on a manual clock starting at 0."""
    return RitualEngine(
        config=make_config(**config_kwargs),
        clock=MonotonicClock.manual(),
        on_complete=on_complete
    )


def full_run(total_events: int = 200, seed: int = 42) -> List[ServiceEvent]:
    return scripted_run(total_events=total_events, seed=seed)


def drive(engine: RitualEngine, events: List[ServiceEvent]):
    for event in events:
        engine.on_event(event)
    return engine.snapshot


def drive_to_harmony(engine: RitualEngine, events: Optional[List[ServiceEvent]] = None):
    """Fold exactly enough events to arm the gate."""
    events = events if events is not None else full_run()
    return drive(engine, events[:EVENTS_TO_HARMONY])
