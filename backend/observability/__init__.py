"""
Observability & Audit Layer

RESPONSIBILITY: Audit trail, counters and gauges for one engine run
ALLOWED INPUTS: Audit entries and metric points from the engine
OUTPUTS: AuditLogEntry lists, MetricPoint series

WHAT THIS LAYER MUST NOT DO:
============================
- Modify engine behavior
- Filter or interpret events (only record them)
- Block or delay the feed or the presentation clock

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable entries (never references to mutable state)
- Provides read-only copies of logs and metrics
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple
import hashlib
import logging

from ..contracts.base import Error
from ..contracts.events import AuditEventType, AuditLogEntry

logger = logging.getLogger(__name__)


# =============================================================================
# LOG COLLECTORS (One per component)
# =============================================================================

class LogCollector:
    """
    Append-only collector of audit entries for one component.
    With max_entries set, only the newest entries are kept.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        self._entries.append(entry)

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        if event_type:
            return [e for e in self._entries if e.event_type == event_type]
        return list(self._entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: datetime
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Counters and gauges for one run.

    Counters accumulate. Each series keeps only its latest max_points
    points, so a long-running feed holds bounded memory.
    """

    def __init__(self, max_points: int = 1000):
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._counters: Dict[str, float] = {}

    def increment(self, metric_name: str, amount: float = 1.0):
        self._counters[metric_name] = self._counters.get(metric_name, 0.0) + amount
        self.record(metric_name, self._counters[metric_name])

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        label_tuple = tuple(sorted(labels.items())) if labels else ()
        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=label_tuple
        )
        series = self._metrics.get(metric_name)
        if series is None:
            series = self._metrics[metric_name] = deque(maxlen=self._max_points)
        series.append(point)

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._metrics.get(metric_name, ()))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        series = self._metrics.get(metric_name)
        return series[-1] if series else None

    def counter(self, metric_name: str) -> float:
        return self._counters.get(metric_name, 0.0)


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_metrics: bool = True
    max_entries_per_layer: Optional[int] = 10_000
    max_points_per_metric: int = 1000


class ObservabilityEngine:
    """
    Central audit/metrics sink for one RitualEngine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    LAYERS = ('alignment', 'progress', 'gate', 'engine')

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._collectors: Dict[str, LogCollector] = {
            name: LogCollector(self._config.max_entries_per_layer) for name in self.LAYERS
        }
        self._metrics = (
            MetricsCollector(self._config.max_points_per_metric)
            if self._config.enable_metrics else None
        )
        self._counter = 0

    @property
    def metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def log_audit(
        self,
        event_type: AuditEventType,
        layer: str,
        action: str,
        sequence: int = 0,
        error: Optional[Error] = None,
        **metadata: object
    ) -> AuditLogEntry:
        """Build and collect an audit entry."""
        self._counter += 1
        entry_id = hashlib.sha256(
            f"{layer}_{action}|{sequence}|{self._counter}".encode()
        ).hexdigest()[:16]

        entry = AuditLogEntry(
            entry_id=f"audit_{entry_id}",
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            layer=layer,
            action=action,
            sequence=sequence,
            metadata=tuple((k, str(v)) for k, v in sorted(metadata.items())),
            error=error
        )
        self.collect_audit(entry)
        return entry

    def collect_audit(self, entry: AuditLogEntry):
        collector = self._collectors.get(entry.layer)
        if collector is None:
            logger.warning("[observability] audit entry for unknown layer %s", entry.layer)
            return
        collector.collect(entry)

    def increment(self, metric_name: str, amount: float = 1.0):
        if self._metrics:
            self._metrics.increment(metric_name, amount)

    def gauge(self, metric_name: str, value: float):
        if self._metrics:
            self._metrics.record(metric_name, value)

    def get_unified_log(
        self,
        layers: Optional[List[str]] = None,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        """Entries from all (or the given) layers, in collection order."""
        target_layers = layers or list(self._collectors.keys())
        entries: List[AuditLogEntry] = []
        for layer_name in target_layers:
            collector = self._collectors.get(layer_name)
            if collector:
                entries.extend(collector.get_entries(event_type=event_type))
        entries.sort(key=lambda e: (e.timestamp, e.sequence))
        return entries

    def count(self, event_type: AuditEventType) -> int:
        return len(self.get_unified_log(event_type=event_type))
