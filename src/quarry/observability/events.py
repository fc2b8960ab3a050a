"""Unified event model for notebook and relay observability.

Defines event types for the execution engine and the collaboration relay.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Execution events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DependencyMaterialized:
    """A referenced cell's result was offered to the engine as a relation.

    Attributes:
        node_id: The referenced cell.
        relation: Relation name the result was registered under.
        status: ``ready``, ``skipped`` or ``failed``.
        rows: Number of rows registered (0 unless ready).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    node_id: str
    relation: str
    status: Literal["ready", "skipped", "failed"]
    rows: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class QueryExecuted:
    """A query cell run finished.

    Attributes:
        node_id: The cell that ran.
        outcome: ``succeeded``, ``failed`` or ``stale`` (discarded completion).
        rows: Result row count (0 on failure).
        error: Error text for failed runs.
        duration_ms: Wall time of the run in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    node_id: str
    outcome: Literal["succeeded", "failed", "stale"]
    rows: int
    error: str | None
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class CascadeSkipped:
    """Dependent cells were not re-run because their references form a cycle.

    Attributes:
        node_id: The cell whose success triggered the cascade.
        cycle: Node ids participating in the cycle.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    node_id: str
    cycle: tuple[str, ...]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class RunProfile:
    """Per-stage timing of one query cell run.

    Attributes:
        node_id: The cell that ran.
        materialize_ms: Time spent registering referenced results.
        execute_ms: Time spent in the engine.
        propagate_ms: Time spent updating the cell and downstream charts.
        broadcast_ms: Time spent handing the preview to the session.
        total_ms: Wall time of the run.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    node_id: str
    materialize_ms: float
    execute_ms: float
    propagate_ms: float
    broadcast_ms: float
    total_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Collaboration events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RelayConnection:
    """A relay client joined or left a room.

    Attributes:
        room: Room name.
        client_id: Connection identifier.
        kind: ``connect`` or ``disconnect``.
        members: Room size after the change.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    room: str
    client_id: str
    kind: Literal["connect", "disconnect"]
    members: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class MessageRelayed:
    """A client frame was processed by the relay.

    Attributes:
        room: Room name.
        message_type: Declared ``type`` of the frame (empty if undecodable).
        delivered: Number of peers it was queued for (0 when dropped).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    room: str
    message_type: str
    delivered: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PreviewBroadcast:
    """A preview of a cell result was sent to collaborators.

    Attributes:
        node_id: The cell whose result was previewed.
        rows: Rows included in the preview.
        total_rows: Rows in the full result.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    node_id: str
    rows: int
    total_rows: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StackEvent = (
    DependencyMaterialized
    | QueryExecuted
    | CascadeSkipped
    | RunProfile
    | RelayConnection
    | MessageRelayed
    | PreviewBroadcast
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
