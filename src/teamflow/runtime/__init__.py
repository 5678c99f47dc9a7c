"""
Runtime - Running workflows and recording what happened.

This package provides:
- ExecutionEngine: Idle/Running/Completed run state machine over a graph
- Transcript: Append-only, observable log of run events
- CapabilityRegistry, RemoteCapabilityInvoker: Capability backends
"""

from .capability import (
    CapabilityHandler,
    CapabilityInvoker,
    CapabilityRegistry,
    RemoteCapabilityInvoker,
)
from .engine import ExecutionEngine, NodeRunStatus, RunResult, RunState
from .transcript import SYSTEM_LABEL, EventKind, RunEvent, Transcript, TranscriptView

__all__ = [
    # Capability
    "CapabilityHandler",
    "CapabilityInvoker",
    "CapabilityRegistry",
    "RemoteCapabilityInvoker",
    # Engine
    "ExecutionEngine",
    "NodeRunStatus",
    "RunResult",
    "RunState",
    # Transcript
    "SYSTEM_LABEL",
    "EventKind",
    "RunEvent",
    "Transcript",
    "TranscriptView",
]
