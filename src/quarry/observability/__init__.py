"""Observability — one event model for cell runs and relay traffic.

Quick Start:
    >>> from quarry.observability import StackCollector, EventLog
    >>> log = EventLog()
    >>> collector = StackCollector(log)
    >>> # Pass collector to ExecutionCoordinator / RelayServer / CollaborationSession

"""

from quarry.observability.collector import StackCollector
from quarry.observability.events import (
    CascadeSkipped,
    DependencyMaterialized,
    MessageRelayed,
    PreviewBroadcast,
    QueryExecuted,
    RelayConnection,
    RunProfile,
    StackEvent,
    now_ns,
)
from quarry.observability.log import EventLog
from quarry.observability.profiler import RunProfiler, compute_aggregate_stats

__all__ = [
    "CascadeSkipped",
    "DependencyMaterialized",
    "EventLog",
    "MessageRelayed",
    "PreviewBroadcast",
    "QueryExecuted",
    "RelayConnection",
    "RunProfile",
    "RunProfiler",
    "StackCollector",
    "StackEvent",
    "compute_aggregate_stats",
    "now_ns",
]
