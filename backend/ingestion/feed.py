"""
Event Feed
==========

The engine only needs an ordered source of complete ServiceEvents,
delivered one at a time. Transport is not its concern.

MockEventFeed replays a scripted run on a timer, the way the dashboard
is driven when no live deployment is attached.

GUARANTEES:
- Same (total_events, seed, error_rate) -> identical scripted run
- Events are yielded in list order, never reordered
"""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Iterable, List, Optional, Protocol, Tuple
import asyncio
import random

from ..contracts.events import CognitiveWeight, ServiceEvent, ServiceStatus
from ..contracts.principles import CHECK_COUNT

DEFAULT_SERVICES: Tuple[str, ...] = (
    "gateway", "auth", "ledger", "scheduler", "oracle", "archive",
)

_WEIGHT_CYCLE = (CognitiveWeight.A, CognitiveWeight.B, CognitiveWeight.BALANCED)


class EventFeed(Protocol):
    """Anything that yields ServiceEvents in arrival order."""

    def __aiter__(self) -> AsyncIterator[ServiceEvent]:
        ...


def scripted_run(
    total_events: int = 100,
    seed: int = 42,
    error_rate: float = 0.0,
    services: Tuple[str, ...] = DEFAULT_SERVICES,
    aux_gate_every: int = 7,
    start: Optional[datetime] = None
) -> List[ServiceEvent]:
    """
    Build a deterministic run.

    The first CHECK_COUNT events each validate one principle in order.
    The rest are plain ONLINE heartbeats. With error_rate > 0 some
    events report ERROR with a failing health score instead.
    """
    rng = random.Random(seed)
    start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
    events: List[ServiceEvent] = []

    for i in range(total_events):
        is_error = error_rate > 0 and rng.random() < error_rate
        check_id = i + 1 if i < CHECK_COUNT else None

        if is_error:
            status = ServiceStatus.ERROR
            health = round(rng.uniform(0.0, 0.45), 3)
        elif check_id is not None:
            status = ServiceStatus.VALIDATED
            health = round(rng.uniform(0.7, 1.0), 3)
        else:
            status = ServiceStatus.ONLINE
            health = round(rng.uniform(0.5, 1.0), 3)

        aux_gate_id = None
        if aux_gate_every and (i + 1) % aux_gate_every == 0:
            aux_gate_id = ((i + 1) // aux_gate_every - 1) % 7 + 1

        events.append(ServiceEvent(
            service_name=services[i % len(services)],
            status=status,
            timestamp=start + timedelta(seconds=i),
            health_score=health,
            check_id=check_id,
            cognitive_weight=_WEIGHT_CYCLE[i % len(_WEIGHT_CYCLE)],
            aux_gate_id=aux_gate_id
        ))

    return events


class MockEventFeed:
    """
    Timer-driven feed over a fixed event list.

    interval_seconds = 0 yields as fast as the consumer pulls.
    """

    def __init__(self, events: Iterable[ServiceEvent], interval_seconds: float = 0.5):
        self._events = list(events)
        self._interval = interval_seconds
        self._delivered = 0

    @property
    def delivered(self) -> int:
        return self._delivered

    def __len__(self) -> int:
        return len(self._events)

    async def __aiter__(self) -> AsyncIterator[ServiceEvent]:
        for event in self._events:
            if self._interval > 0:
                await asyncio.sleep(self._interval)
            else:
                await asyncio.sleep(0)
            self._delivered += 1
            yield event
