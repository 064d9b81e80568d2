"""
Temporal Layer
==============

Time and history for the ritual engine.

INVARIANTS:
- Every accepted input is appended to a hash-chained log
- No mutation of stored entries
- Same log -> same derived state (deterministic replay)
- Gate timing uses a monotonic clock, never event timestamps

Modules:
- clock: injectable monotonic clock (live / manual)
- event_log: append-only ritual log
- replay: rebuild an engine from a log (import backend.temporal.replay)
"""

from .clock import ClockError, MonotonicClock
from .event_log import LogState, RitualEventLog

__all__ = [
    'ClockError',
    'MonotonicClock',
    'LogState',
    'RitualEventLog',
]
