"""
Ingestion Layer

RESPONSIBILITY: Deliver ServiceEvents to the engine in arrival order
OUTPUTS: ServiceEvent (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Fold, score or interpret events
- Reorder or deduplicate events
- Touch engine state
"""

from .feed import DEFAULT_SERVICES, EventFeed, MockEventFeed, scripted_run

__all__ = [
    'DEFAULT_SERVICES',
    'EventFeed',
    'MockEventFeed',
    'scripted_run',
]
