"""In-memory event log shared by the relay and the execution coordinator.

Events are keyed by a *subject*: the cell id for execution events, the room
name for relay events. The relay's stats endpoint summarizes the log per
event type and per subject.

The coordinator records from the event loop, while profiling data can be
appended from engine worker threads, so every access takes the lock.
"""

import threading
from collections import Counter, deque
from typing import Any

from quarry.observability.events import StackEvent

# Subjects listed in ``EventLog.stats()``; the rest are only counted.
BUSIEST_SUBJECTS = 10


def subject_of(event: StackEvent) -> str | None:
    """The cell id or room an event concerns, if any."""
    node_id = getattr(event, "node_id", None)
    if node_id is not None:
        return node_id
    return getattr(event, "room", None)


class EventLog:
    """Ring buffer of the most recent ``max_events`` events."""

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[StackEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: StackEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        subject: str | None = None,
        limit: int = 100,
    ) -> list[StackEvent]:
        """Matching events, newest first.

        Args:
            event_type: Keep only instances of this event class.
            since_ns: Keep only events stamped at or after this time.
            subject: Keep only events about this cell id or room.
            limit: Return at most this many events.

        """
        with self._lock:
            snapshot = list(self._events)
        matches: list[StackEvent] = []
        for event in reversed(snapshot):
            if len(matches) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if subject is not None and subject_of(event) != subject:
                continue
            matches.append(event)
        return matches

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Counts per event type and for the busiest subjects."""
        with self._lock:
            snapshot = list(self._events)
        by_type = Counter(type(event).__name__ for event in snapshot)
        by_subject = Counter(
            subject for subject in map(subject_of, snapshot) if subject is not None
        )
        return {
            "total": len(snapshot),
            "max_events": self._max_events,
            "by_type": dict(by_type),
            "busiest": dict(by_subject.most_common(BUSIEST_SUBJECTS)),
        }
