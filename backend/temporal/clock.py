"""
Monotonic Clock
===============

Injectable clock for gate timeouts.

GUARANTEES:
- Live mode reads time.monotonic(), never wall-clock or event timestamps
- Manual mode only moves when advanced explicitly (tests, replay)
- Time never goes backwards in either mode
"""

from __future__ import annotations
from dataclasses import dataclass
import time


class ClockError(Exception):
    """Raised when a live clock is asked to move manually, or time would rewind."""
    pass


@dataclass
class MonotonicClock:
    """
    Injectable monotonic clock.

    MODES:
    ======
    1. LIVE mode: Uses time.monotonic()
    2. MANUAL mode: Uses an internal counter advanced by advance()
    """
    _is_live: bool = True
    _manual_now: float = 0.0

    def now(self) -> float:
        """Current monotonic time in seconds."""
        if self._is_live:
            return time.monotonic()
        return self._manual_now

    def advance(self, seconds: float) -> float:
        """Move a manual clock forward. Returns the new time."""
        if self._is_live:
            raise ClockError("Cannot advance a live clock")
        if seconds < 0:
            raise ClockError(f"Monotonic clock cannot move backwards ({seconds}s)")
        self._manual_now += seconds
        return self._manual_now

    def is_live(self) -> bool:
        return self._is_live

    @classmethod
    def live(cls) -> 'MonotonicClock':
        """Create clock in LIVE mode (uses time.monotonic)."""
        return cls(_is_live=True)

    @classmethod
    def manual(cls, start: float = 0.0) -> 'MonotonicClock':
        """Create clock in MANUAL mode starting at `start`."""
        return cls(_is_live=False, _manual_now=start)

    def __repr__(self) -> str:
        mode = "LIVE" if self._is_live else "MANUAL"
        return f"MonotonicClock({mode}, now={self.now():.3f})"
