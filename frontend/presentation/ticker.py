"""
Presentation Ticker

Responsibility:
Run the presentation clock. Each tick reads whatever snapshot is
current and hands a fresh ViewModel to a render callback.

The ticker never holds a mutable copy of engine state and never
calls into the engine's write interface.
"""

from collections import deque
from typing import Callable, List, Optional
import asyncio

from backend.contracts.state import EngineSnapshot
from .viewmodels import RitualDashboardViewModel, build_dashboard_view

SnapshotReader = Callable[[], EngineSnapshot]
RenderCallback = Callable[[RitualDashboardViewModel], None]


class PresentationTicker:
    """Fixed-interval reader of engine snapshots."""

    def __init__(
        self,
        render: Optional[RenderCallback] = None,
        interval_seconds: float = 1 / 30,
        secondary_factor: Optional[float] = None,
        history: int = 300
    ):
        self._render = render
        self._interval = interval_seconds
        self._secondary_factor = secondary_factor
        self._frames = deque(maxlen=history)

    @property
    def frames(self) -> List[RitualDashboardViewModel]:
        return list(self._frames)

    def set_secondary_factor(self, value: Optional[float]):
        """Pin the secondary factor; None follows the feed's cognitive weight."""
        if value is None:
            self._secondary_factor = None
            return
        self._secondary_factor = min(1.0, max(0.0, value))

    def frame(self, read: SnapshotReader) -> RitualDashboardViewModel:
        """Build and render one frame."""
        view = build_dashboard_view(read(), self._secondary_factor)
        self._frames.append(view)
        if self._render is not None:
            self._render(view)
        return view

    async def run(self, read: SnapshotReader):
        """Tick until cancelled."""
        while True:
            self.frame(read)
            await asyncio.sleep(self._interval)
