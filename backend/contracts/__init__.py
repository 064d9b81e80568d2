"""
Contracts Module

This module defines the explicit data types that form the contracts
between the feed, the engine components and the readers. All
inter-component communication MUST use these contracts.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All contracts include explicit error states
3. All timestamps use UTC and are never mutated
4. Hash-based identity for log integrity verification
"""

from .base import Error, ErrorCode, Result, clamp
from .events import (
    AuditEventType, AuditLogEntry, CognitiveWeight, ServiceEvent, ServiceStatus
)
from .principles import (
    CHECK_COUNT, PRINCIPLE_ONE_TOKEN, PRINCIPLES, is_valid_check_id, principle_name
)
from .state import (
    AlignmentState, BalanceMetrics, ConfirmationGateState, EngineSnapshot,
    GateResult, GateStatus, RitualPhase, RitualProgress
)
from .temporal import LogEntry, LogEntryKind, LogSequence

__all__ = [
    'Error', 'ErrorCode', 'Result', 'clamp',
    'AuditEventType', 'AuditLogEntry', 'CognitiveWeight', 'ServiceEvent', 'ServiceStatus',
    'CHECK_COUNT', 'PRINCIPLE_ONE_TOKEN', 'PRINCIPLES', 'is_valid_check_id', 'principle_name',
    'AlignmentState', 'BalanceMetrics', 'ConfirmationGateState', 'EngineSnapshot',
    'GateResult', 'GateStatus', 'RitualPhase', 'RitualProgress',
    'LogEntry', 'LogEntryKind', 'LogSequence',
]
