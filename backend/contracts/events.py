"""
Event Contracts

Immutable records flowing INTO the engine (service events) and OUT of it
(audit entries).

WHY FROZEN:
===========
A ServiceEvent is owned by the feed. The engine reads and folds it,
it never edits it. Audit entries are append-only facts.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple
import hashlib
import json
import math

from .base import Error, ErrorCode, Result


# =============================================================================
# SERVICE EVENTS
# =============================================================================

class ServiceStatus(Enum):
    """Status reported by a single service in the deployment feed."""
    INITIALIZING = "initializing"
    ONLINE = "online"
    ERROR = "error"
    VALIDATED = "validated"
    RECALIBRATING = "recalibrating"

    @property
    def is_passing(self) -> bool:
        return self in (ServiceStatus.ONLINE, ServiceStatus.VALIDATED)


class CognitiveWeight(Enum):
    """Which side of the balance a service leans toward."""
    A = "a"
    B = "b"
    BALANCED = "balanced"


@dataclass(frozen=True)
class ServiceEvent:
    """
    One self-contained service status record.

    check_id is deliberately NOT range-validated here: an out-of-range
    check is an INVALID_CHECK_ID condition for the scorer, while the
    event itself is still well-formed and folds its health score.
    """
    service_name: str
    status: ServiceStatus
    timestamp: datetime
    health_score: float
    check_id: Optional[int] = None
    cognitive_weight: Optional[CognitiveWeight] = None
    aux_gate_id: Optional[int] = None

    def __post_init__(self):
        if not self.service_name or not isinstance(self.service_name, str):
            raise ValueError("service_name must be a non-empty string")
        if not isinstance(self.status, ServiceStatus):
            raise ValueError(f"status must be a ServiceStatus, got {self.status!r}")
        if not isinstance(self.timestamp, datetime):
            raise ValueError("timestamp must be a datetime")
        if isinstance(self.health_score, bool) or not isinstance(self.health_score, (int, float)):
            raise ValueError("health_score must be a number")
        if math.isnan(self.health_score) or not 0.0 <= self.health_score <= 1.0:
            raise ValueError(f"health_score must be within [0, 1], got {self.health_score}")
        for name in ("check_id", "aux_gate_id"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValueError(f"{name} must be an int or None")
        if self.cognitive_weight is not None and not isinstance(self.cognitive_weight, CognitiveWeight):
            raise ValueError("cognitive_weight must be a CognitiveWeight or None")

    def to_dict(self) -> Dict[str, Any]:
        """Canonical dict form (used for hashing and the HTTP adapter)."""
        return {
            "service_name": self.service_name,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "health_score": self.health_score,
            "check_id": self.check_id,
            "cognitive_weight": self.cognitive_weight.value if self.cognitive_weight else None,
            "aux_gate_id": self.aux_gate_id,
        }

    def digest(self) -> str:
        """Deterministic content hash."""
        payload = json.dumps(self.to_dict(), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> Result:
        """
        Parse a raw feed record.

        Accepts snake_case or camelCase keys. Returns Result.failure with
        MALFORMED_EVENT for missing or invalid fields; never raises.
        """
        try:
            event = ServiceEvent(
                service_name=_pick(raw, "service_name", "serviceName", required=True),
                status=_parse_status(_pick(raw, "status", required=True)),
                timestamp=_parse_timestamp(_pick(raw, "timestamp", required=True)),
                health_score=_pick(raw, "health_score", "healthScore", required=True),
                check_id=_pick(raw, "check_id", "checkId"),
                cognitive_weight=_parse_weight(_pick(raw, "cognitive_weight", "cognitiveWeight")),
                aux_gate_id=_pick(raw, "aux_gate_id", "auxGateId"),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            return Result.failure(Error.create(
                ErrorCode.MALFORMED_EVENT,
                f"Malformed service event: {e}",
                keys=",".join(sorted(str(k) for k in raw.keys())) if hasattr(raw, "keys") else "",
            ))
        return Result.success(event)


def _pick(raw: Mapping[str, Any], *keys: str, required: bool = False) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    if required:
        raise KeyError(f"missing required field '{keys[0]}'")
    return None


def _parse_status(value: Any) -> ServiceStatus:
    if isinstance(value, ServiceStatus):
        return value
    return ServiceStatus(str(value).lower())


def _parse_weight(value: Any) -> Optional[CognitiveWeight]:
    if value is None or isinstance(value, CognitiveWeight):
        return value
    return CognitiveWeight(str(value).lower())


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


# =============================================================================
# AUDIT EVENTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    EVENT_FOLDED = "event_folded"
    EVENT_DISCARDED = "event_discarded"
    CHECK_REJECTED = "check_rejected"
    PHASE_CHANGED = "phase_changed"
    RIPPLE = "ripple"
    GATE_ARMED = "gate_armed"
    GATE_CONFIRMED = "gate_confirmed"
    GATE_REJECTED = "gate_rejected"
    GATE_TIMED_OUT = "gate_timed_out"
    RECALIBRATED = "recalibrated"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: datetime
    layer: str  # Which component generated this
    action: str
    sequence: int = 0
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
    error: Optional[Error] = None
