"""
Confirmation Gate
=================

Pause-and-acknowledge sub-state-machine guarding COMPLETION.

    IDLE --arm()--> ARMED --submit(match)--> CONFIRMED   (terminal)
                          --submit(other)--> IDLE, result=REJECTED
                          --window elapsed-> IDLE, result=TIMED_OUT

Only one token is evaluated per arming window. The window is measured
on a MonotonicClock, never on event timestamps.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ..contracts.principles import PRINCIPLE_ONE_TOKEN, PRINCIPLES
from ..contracts.state import ConfirmationGateState, GateResult, GateStatus
from ..temporal.clock import MonotonicClock


@dataclass
class GateConfig:
    """Configuration for the confirmation gate."""
    required_token: str = PRINCIPLE_ONE_TOKEN
    expected_token: str = PRINCIPLES[0]
    timeout_seconds: Optional[float] = 30.0  # None disables the timeout

    def __post_init__(self):
        if not self.required_token.strip():
            raise ValueError("required_token must be non-empty")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive or None")


def _normalize(text: str) -> str:
    return " ".join(text.split()).lower()


class ConfirmationGate:
    """
    GUARANTEES:
    ===========
    1. submit() has an effect only while ARMED
    2. CONFIRMED is reached at most once and is never left
    3. REJECTED / TIMED_OUT leave the gate IDLE and re-armable
    """

    def __init__(
        self,
        config: Optional[GateConfig] = None,
        clock: Optional[MonotonicClock] = None
    ):
        self._config = config or GateConfig()
        self._clock = clock or MonotonicClock.live()
        self._state = ConfirmationGateState(expected_token=self._config.expected_token)

    @property
    def state(self) -> ConfirmationGateState:
        return self._state

    @property
    def clock(self) -> MonotonicClock:
        return self._clock

    def matches(self, text: str) -> bool:
        return _normalize(self._config.required_token) in _normalize(text)

    def arm(self) -> ConfirmationGateState:
        """IDLE -> ARMED. No-op in any other status."""
        if self._state.status is GateStatus.IDLE:
            self._state = ConfirmationGateState(
                status=GateStatus.ARMED,
                expected_token=self._config.expected_token,
                result=GateResult.PENDING,
                armed_at=self._clock.now(),
                armings=self._state.armings + 1
            )
        return self._state

    def remaining(self) -> Optional[float]:
        """Seconds left in the arming window (None if unarmed or no timeout)."""
        if not self._state.armed or self._config.timeout_seconds is None:
            return None
        elapsed = self._clock.now() - self._state.armed_at
        return max(0.0, self._config.timeout_seconds - elapsed)

    def is_expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def submit(self, text: str) -> Optional[GateResult]:
        """
        Evaluate a token. Returns the resolution, or None if not ARMED.
        A token arriving after the window closes resolves as TIMED_OUT.
        """
        if not self._state.armed:
            return None
        if self.is_expired():
            return self._resolve(GateResult.TIMED_OUT)
        if self.matches(text):
            return self._resolve(GateResult.CONFIRMED)
        return self._resolve(GateResult.REJECTED)

    def expire_if_due(self) -> Optional[GateResult]:
        """Resolve as TIMED_OUT if the window has elapsed."""
        if self.is_expired():
            return self._resolve(GateResult.TIMED_OUT)
        return None

    def force_timeout(self) -> Optional[GateResult]:
        """Resolve an armed gate as TIMED_OUT regardless of the clock."""
        if not self._state.armed:
            return None
        return self._resolve(GateResult.TIMED_OUT)

    def reset(self) -> ConfirmationGateState:
        """Drop an armed window back to IDLE. CONFIRMED is never reset."""
        if self._state.status is GateStatus.ARMED:
            self._state = ConfirmationGateState(
                status=GateStatus.IDLE,
                expected_token=self._config.expected_token,
                result=self._state.result,
                armed_at=None,
                armings=self._state.armings
            )
        return self._state

    def _resolve(self, result: GateResult) -> GateResult:
        status = GateStatus.CONFIRMED if result is GateResult.CONFIRMED else GateStatus.IDLE
        self._state = ConfirmationGateState(
            status=status,
            expected_token=self._config.expected_token,
            result=result,
            armed_at=None,
            armings=self._state.armings
        )
        return result
