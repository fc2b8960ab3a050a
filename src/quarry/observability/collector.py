"""Stack collector — the single entry point for recording quarry events.

The execution coordinator, the relay server and the collaboration session
each take an optional collector and call its ``record_*`` helpers; all of
them land in one ``EventLog`` that the relay exposes at its stats endpoint.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from quarry.observability.events import (
    CascadeSkipped,
    DependencyMaterialized,
    MessageRelayed,
    PreviewBroadcast,
    QueryExecuted,
    RelayConnection,
    StackEvent,
    now_ns,
)
from quarry.observability.log import EventLog


class StackCollector:
    """Unified event collector for the engine and the relay.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    def record(self, event: StackEvent) -> None:
        """Record a pre-built event."""
        self._log.append(event)

    # ----- Execution events -----

    def record_materialization(
        self,
        node_id: str,
        relation: str,
        *,
        status: str,
        rows: int = 0,
    ) -> None:
        """Record the outcome of materializing one referenced cell."""
        self._log.append(
            DependencyMaterialized(
                node_id=node_id,
                relation=relation,
                status=status,  # type: ignore[arg-type]
                rows=rows,
                timestamp_ns=now_ns(),
            )
        )

    def record_query(
        self,
        node_id: str,
        *,
        outcome: str,
        rows: int = 0,
        error: str | None = None,
        duration_ms: float = 0.0,
    ) -> None:
        """Record a finished cell run."""
        self._log.append(
            QueryExecuted(
                node_id=node_id,
                outcome=outcome,  # type: ignore[arg-type]
                rows=rows,
                error=error,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_cascade_skipped(self, node_id: str, cycle: tuple[str, ...]) -> None:
        """Record a dependent re-run skipped because of a reference cycle."""
        self._log.append(
            CascadeSkipped(node_id=node_id, cycle=cycle, timestamp_ns=now_ns())
        )

    # ----- Collaboration events -----

    def record_connection(
        self,
        room: str,
        client_id: str,
        *,
        kind: str,
        members: int = 0,
    ) -> None:
        """Record a relay join or leave."""
        self._log.append(
            RelayConnection(
                room=room,
                client_id=client_id,
                kind=kind,  # type: ignore[arg-type]
                members=members,
                timestamp_ns=now_ns(),
            )
        )

    def record_relay(self, room: str, message_type: str, *, delivered: int = 0) -> None:
        """Record a frame processed by the relay."""
        self._log.append(
            MessageRelayed(
                room=room,
                message_type=message_type,
                delivered=delivered,
                timestamp_ns=now_ns(),
            )
        )

    def record_preview(self, node_id: str, *, rows: int = 0, total_rows: int = 0) -> None:
        """Record a preview handed to collaborators."""
        self._log.append(
            PreviewBroadcast(
                node_id=node_id,
                rows=rows,
                total_rows=total_rows,
                timestamp_ns=now_ns(),
            )
        )
