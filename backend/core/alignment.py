"""
Alignment Scorer
================

Folds service events into per-check validation state and one bounded
aggregate score.

FOLDING RULES:
==============
- A check passes iff status is ONLINE/VALIDATED and health >= pass threshold
- A failing event never removes an already passed check (no flapping)
- overall = clamp(w_checks * passed/42 + w_health * mean_health, 0, 1)
- Ripple increments once per run, the first time overall >= threshold
- Out-of-range check ids are rejected; the event still folds its health

Each consume() is O(1): running sums, never a re-scan of history.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Set
import logging

from ..contracts.base import Error, ErrorCode, clamp
from ..contracts.events import ServiceEvent
from ..contracts.principles import CHECK_COUNT
from ..contracts.state import AlignmentState

logger = logging.getLogger(__name__)


@dataclass
class AlignmentConfig:
    """Configuration for the alignment scorer."""
    check_count: int = CHECK_COUNT
    checks_weight: float = 0.6
    health_weight: float = 0.4
    pass_health_threshold: float = 0.5
    ripple_threshold: float = 0.9
    ripple_increment: float = 0.42
    retain_checks_on_recalibration: bool = True


class AlignmentScorer:
    """
    Incremental alignment fold.

    GUARANTEES:
    ===========
    1. checks_passed only grows (unless recalibration is configured to clear)
    2. overall_score stays in [0, 1]
    3. ripple is awarded at most once per scorer instance
    4. Same event sequence -> same AlignmentState
    """

    def __init__(self, config: Optional[AlignmentConfig] = None):
        self._config = config or AlignmentConfig()
        self._checks: Set[int] = set()
        self._health_sum = 0.0
        self._events_folded = 0
        self._ripple = 0.0
        self._ripple_awarded = False
        self._conditions: List[Error] = []
        self._state = AlignmentState()

    @property
    def state(self) -> AlignmentState:
        return self._state

    @property
    def ripple_awarded(self) -> bool:
        return self._ripple_awarded

    def drain_conditions(self) -> List[Error]:
        """Return and clear conditions raised since the last drain."""
        conditions, self._conditions = self._conditions, []
        return conditions

    def consume(self, event: ServiceEvent) -> AlignmentState:
        """Fold one event and return the new state."""
        self._events_folded += 1
        self._health_sum += event.health_score

        if event.check_id is not None:
            if not 1 <= event.check_id <= self._config.check_count:
                self._conditions.append(Error.create(
                    ErrorCode.INVALID_CHECK_ID,
                    f"Check id {event.check_id} outside 1..{self._config.check_count}",
                    check_id=event.check_id,
                    service=event.service_name,
                ))
                logger.debug(
                    "[alignment] rejected check %s from %s",
                    event.check_id, event.service_name
                )
            elif (
                event.status.is_passing
                and event.health_score >= self._config.pass_health_threshold
            ):
                self._checks.add(event.check_id)

        return self._rebuild()

    def on_recalibration(self) -> AlignmentState:
        """
        Recalibration hook. Earned checks persist unless configured otherwise.
        The ripple, once awarded, is never re-awarded.
        """
        if not self._config.retain_checks_on_recalibration and self._checks:
            logger.info("[alignment] clearing %d checks on recalibration", len(self._checks))
            self._checks.clear()
            return self._rebuild()
        return self._state

    def _rebuild(self) -> AlignmentState:
        cfg = self._config
        mean_health = self._health_sum / self._events_folded if self._events_folded else 0.0
        score = clamp(
            cfg.checks_weight * (len(self._checks) / cfg.check_count)
            + cfg.health_weight * mean_health,
            0.0, 1.0
        )

        if not self._ripple_awarded and score >= cfg.ripple_threshold:
            self._ripple_awarded = True
            self._ripple += cfg.ripple_increment
            logger.info("[alignment] ripple awarded at score %.3f", score)

        self._state = AlignmentState(
            checks_passed=frozenset(self._checks),
            overall_score=score,
            ripple=self._ripple,
            mean_health=mean_health,
            events_folded=self._events_folded
        )
        return self._state
