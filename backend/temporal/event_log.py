"""
Ritual Event Log
================

Append-only record of every input the engine accepted.

INVARIANTS:
- No updates or deletes - append only
- Every entry has monotonic sequence number
- Hash chain for integrity verification
- Deterministic replay: same entries -> same engine state

The engine folds incrementally; this log is what makes the folded
state re-derivable from history.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from ..contracts.base import Error, ErrorCode
from ..contracts.events import ServiceEvent
from ..contracts.temporal import LogEntry, LogEntryKind, LogSequence


@dataclass(frozen=True)
class LogState:
    """
    Immutable snapshot of log state.
    """
    head_sequence: LogSequence
    head_hash: str
    entry_count: int

    @staticmethod
    def empty() -> 'LogState':
        return LogState(
            head_sequence=LogSequence(0),
            head_hash="",
            entry_count=0
        )


class RitualEventLog:
    """
    Append-only ritual log.

    GUARANTEES:
    ===========
    1. NO updates - entries are immutable once written
    2. NO deletes - log only grows
    3. Deterministic - same entries in same order -> same state
    4. Verifiable - hash chain ensures integrity
    """

    def __init__(self):
        self._entries: List[LogEntry] = []
        self._sequence_counter = LogSequence(0)
        self._head_hash = ""

    @property
    def state(self) -> LogState:
        """Get current log state (immutable snapshot)."""
        return LogState(
            head_sequence=self._sequence_counter,
            head_hash=self._head_hash,
            entry_count=len(self._entries)
        )

    def __len__(self) -> int:
        return len(self._entries)

    def append_event(self, event: ServiceEvent) -> LogEntry:
        return self._append(LogEntryKind.SERVICE_EVENT, event=event)

    def append_confirmation(self, text: str) -> LogEntry:
        return self._append(LogEntryKind.CONFIRMATION, text=text)

    def append_timeout(self) -> LogEntry:
        return self._append(LogEntryKind.GATE_TIMEOUT)

    def _append(
        self,
        kind: LogEntryKind,
        event: Optional[ServiceEvent] = None,
        text: Optional[str] = None
    ) -> LogEntry:
        """
        This is the ONLY write operation.
        Returns the created entry for caller reference.
        """
        new_sequence = self._sequence_counter.next()

        entry = LogEntry.create(
            sequence=new_sequence,
            kind=kind,
            recorded_at=datetime.now(timezone.utc),
            previous_hash=self._head_hash,
            event=event,
            text=text
        )

        self._entries.append(entry)
        self._sequence_counter = new_sequence
        self._head_hash = entry.entry_hash

        return entry

    def replay(self, until_seq: Optional[LogSequence] = None) -> Iterator[LogEntry]:
        """
        Replay entries in sequence order.

        Args:
            until_seq: Stop at this sequence (inclusive), None = end
        """
        end = (until_seq.value if until_seq else len(self._entries))

        for entry in self._entries:
            if entry.sequence.value > end:
                break
            yield entry

    def verify_integrity(self) -> Tuple[bool, Optional[Error]]:
        """
        Verify hash chain integrity.

        Returns (is_valid, error) tuple.
        """
        expected_previous = ""

        for entry in self._entries:
            if entry.previous_hash != expected_previous or not entry.verify():
                return (False, Error.create(
                    ErrorCode.STRUCTURAL_INCONSISTENCY,
                    f"Hash chain broken at sequence {entry.sequence.value}",
                    expected_hash=expected_previous,
                    actual_hash=entry.previous_hash,
                ))
            expected_previous = entry.entry_hash

        return (True, None)
