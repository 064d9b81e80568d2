from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
import hashlib

from .events import ServiceEvent


@dataclass(frozen=True)
class LogSequence:
    """
    Immutable sequence position in the log.
    """
    value: int

    def next(self) -> 'LogSequence':
        return LogSequence(self.value + 1)


class LogEntryKind(Enum):
    """What an entry records. Every engine input has a kind."""
    SERVICE_EVENT = "service_event"
    CONFIRMATION = "confirmation"
    GATE_TIMEOUT = "gate_timeout"


@dataclass(frozen=True)
class LogEntry:
    """
    Immutable log entry.
    INVARIANTS:
    - Once written, never modified.
    - Entries form a hash chain for integrity verification.
    - Exactly one of event / text is set for SERVICE_EVENT / CONFIRMATION.
    """
    sequence: LogSequence
    kind: LogEntryKind
    recorded_at: datetime
    previous_hash: str
    entry_hash: str
    event: Optional[ServiceEvent] = None
    text: Optional[str] = None

    @staticmethod
    def compute_hash(
        sequence: LogSequence,
        kind: LogEntryKind,
        recorded_at: datetime,
        previous_hash: str,
        event: Optional[ServiceEvent],
        text: Optional[str]
    ) -> str:
        payload_digest = event.digest() if event is not None else (text or "")
        hash_content = (
            f"{sequence.value}|"
            f"{kind.value}|"
            f"{payload_digest}|"
            f"{recorded_at.isoformat()}|"
            f"{previous_hash}"
        )
        return hashlib.sha256(hash_content.encode()).hexdigest()

    @staticmethod
    def create(
        sequence: LogSequence,
        kind: LogEntryKind,
        recorded_at: datetime,
        previous_hash: str,
        event: Optional[ServiceEvent] = None,
        text: Optional[str] = None
    ) -> 'LogEntry':
        """Factory for deterministic entry creation."""
        entry_hash = LogEntry.compute_hash(
            sequence, kind, recorded_at, previous_hash, event, text
        )
        return LogEntry(
            sequence=sequence,
            kind=kind,
            recorded_at=recorded_at,
            previous_hash=previous_hash,
            entry_hash=entry_hash,
            event=event,
            text=text
        )

    def verify(self) -> bool:
        """Recompute the hash from content and compare."""
        return self.entry_hash == LogEntry.compute_hash(
            self.sequence, self.kind, self.recorded_at,
            self.previous_hash, self.event, self.text
        )
