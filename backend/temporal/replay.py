"""
Replay Engine
=============

Rebuild an engine from its ritual log.

INVARIANT: Replay is deterministic.
Same log up to the same sequence = same snapshot state_hash.

Replay uses a MANUAL clock that never advances: timeouts come only
from GATE_TIMEOUT entries, exactly as they were recorded.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ..contracts.base import Error
from ..contracts.state import EngineSnapshot
from ..contracts.temporal import LogEntryKind, LogSequence
from ..engine import RitualEngine, RitualEngineConfig
from .clock import MonotonicClock
from .event_log import RitualEventLog


@dataclass(frozen=True)
class ReplayResult:
    """
    Result of replay operation.
    """
    success: bool
    snapshot: Optional[EngineSnapshot] = None
    engine: Optional[RitualEngine] = None
    error: Optional[Error] = None
    entries_replayed: int = 0


class ReplayEngine:
    """
    GUARANTEES:
    ===========
    1. Replay produces identical state for identical log
    2. A log with a broken hash chain is refused, never partially replayed
    3. The source log is only read
    """

    def __init__(self, config: Optional[RitualEngineConfig] = None):
        self._config = config

    def replay(
        self,
        log: RitualEventLog,
        until_seq: Optional[LogSequence] = None
    ) -> ReplayResult:
        is_valid, error = log.verify_integrity()
        if not is_valid:
            return ReplayResult(success=False, error=error)

        engine = RitualEngine(config=self._config, clock=MonotonicClock.manual())
        count = 0
        for entry in log.replay(until_seq=until_seq):
            if entry.kind is LogEntryKind.SERVICE_EVENT:
                engine.on_event(entry.event)
            elif entry.kind is LogEntryKind.CONFIRMATION:
                engine.submit_confirmation(entry.text)
            elif entry.kind is LogEntryKind.GATE_TIMEOUT:
                engine.expire_gate()
            count += 1

        return ReplayResult(
            success=True,
            snapshot=engine.snapshot,
            engine=engine,
            entries_replayed=count
        )
