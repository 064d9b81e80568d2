"""
Ritual Progress & Alignment Engine Backend

This package folds a stream of service-status events into a ritual
progress fraction, an alignment score over 42 principles, and a
confirmation gate that guards completion. Layers communicate only
through immutable contracts.

LAYER STRUCTURE:
================

1. INGESTION LAYER (ingestion/)
   - Responsibility: Deliver ServiceEvents in arrival order
   - Outputs: ServiceEvent (immutable)
   - MUST NOT: Fold, score, reorder or deduplicate events

2. CORE RITUAL STATE (core/)
   - alignment.py: principles earned, overall score, one-shot ripple
   - progress.py: completion fraction and band-ordered phases
   - gate.py: pause-and-acknowledge confirmation gate
   - balance.py: pure asymmetric balance metrics for presentation
   - MUST NOT: Log inputs, touch the clock directly, render anything

3. TEMPORAL LAYER (temporal/)
   - Responsibility: Hash-chained ritual log, deterministic replay,
     injectable monotonic clock
   - MUST NOT: Interpret entries beyond re-dispatching them

4. ORCHESTRATION (engine.py, session.py)
   - RitualEngine: single writer of ritual state, publishes snapshots
   - RitualSession: async driver for the feed and the confirmation channel

5. OBSERVABILITY & AUDIT LAYER (observability/)
   - Responsibility: Audit trail and metrics
   - MUST NOT: Modify system behavior, filter or interpret events

6. API (api/)
   - Responsibility: HTTP projection of snapshots, confirmation endpoint

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: snapshots and contracts are frozen dataclasses
- Append-only: every accepted input is appended to the ritual log
- Deterministic: replaying a log yields the same state hash
- Explicit errors: abnormal input becomes a queryable condition
"""

from .engine import RitualEngine, RitualEngineConfig

__all__ = ['RitualEngine', 'RitualEngineConfig']
