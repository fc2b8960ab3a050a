"""Room registry — which connections share a room, and who gets each frame.

This module holds no sockets and does no I/O. Every operation takes the
current ``RoomRegistry`` and returns the next one together with the
frames to deliver, as ``Outbound`` pairs. The relay server owns the only
registry instance and performs the actual sends.

Rooms come and go with their members: joining an unknown room creates
it, and the last member leaving removes it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlsplit

from quarry._errors import RelayError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from quarry._types import ClientID, RoomName

DEFAULT_ROOM = "default"

# Frame kinds the relay forwards between peers. ``users`` is relay-only.
RELAYED_KINDS = frozenset({"position", "edge", "preview", "node", "text"})


class Member(Protocol):
    """A connection as the registry sees it."""

    @property
    def client_id(self) -> ClientID: ...

    @property
    def writable(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class Outbound:
    """One frame to deliver to one connection."""

    conn: Member
    frame: str


@dataclass(frozen=True, slots=True)
class RoomRegistry:
    """Snapshot of room membership. Never mutated; operations return a new one."""

    rooms: Mapping[RoomName, frozenset[Member]] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    def members(self, room: RoomName) -> frozenset[Member]:
        return self.rooms.get(room, frozenset())

    def member_count(self, room: RoomName) -> int:
        return len(self.members(room))

    @property
    def total_members(self) -> int:
        return sum(len(members) for members in self.rooms.values())

    def counts(self) -> dict[RoomName, int]:
        """Member count per room, for the stats endpoint."""
        return {room: len(members) for room, members in self.rooms.items()}

    def _with(self, room: RoomName, members: frozenset[Member]) -> RoomRegistry:
        rooms = dict(self.rooms)
        if members:
            rooms[room] = members
        else:
            rooms.pop(room, None)
        return RoomRegistry(MappingProxyType(rooms))


def room_from_path(path: str, default: RoomName = DEFAULT_ROOM) -> RoomName:
    """Room name from a connection path: its first segment.

    ``/team-a`` and ``/team-a/anything?x=1`` both map to ``team-a``;
    ``/`` and the empty path map to ``default``.
    """
    segment = urlsplit(path).path.lstrip("/").split("/", 1)[0]
    return segment or default


def users_frame(count: int) -> str:
    return json.dumps({"type": "users", "count": count})


def _announce(members: frozenset[Member], count: int) -> tuple[Outbound, ...]:
    frame = users_frame(count)
    return tuple(Outbound(conn, frame) for conn in members if conn.writable)


def join(
    registry: RoomRegistry, room: RoomName, conn: Member,
) -> tuple[RoomRegistry, tuple[Outbound, ...]]:
    """Add ``conn`` to ``room`` and announce the new count to everyone in it."""
    members = registry.members(room) | {conn}
    return registry._with(room, members), _announce(members, len(members))


def leave(
    registry: RoomRegistry, room: RoomName, conn: Member,
) -> tuple[RoomRegistry, tuple[Outbound, ...]]:
    """Remove ``conn`` from ``room`` and announce the count to who is left."""
    current = registry.members(room)
    if conn not in current:
        return registry, ()
    members = current - {conn}
    return registry._with(room, members), _announce(members, len(members))


def decode_frame(raw: str | bytes) -> dict[str, Any]:
    """Parse one relay frame.

    Raises:
        RelayError: If the frame is not a JSON object with a string ``type``.

    """
    try:
        message = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Frame is not valid JSON: {exc}"
        raise RelayError(msg) from exc
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        msg = "Frame must be a JSON object with a string 'type'"
        raise RelayError(msg)
    return message


def route(
    registry: RoomRegistry, room: RoomName, sender: Member, raw: str,
) -> tuple[str, tuple[Outbound, ...]]:
    """Decide who receives a frame sent by ``sender``.

    Returns the frame's declared type (empty when undecodable) and the
    deliveries. Relayed kinds go, unmodified, to every other writable
    member of the room; anything else goes nowhere.
    """
    try:
        kind = decode_frame(raw)["type"]
    except RelayError:
        return "", ()
    if kind not in RELAYED_KINDS:
        return kind, ()
    outbound = tuple(
        Outbound(conn, raw)
        for conn in registry.members(room)
        if conn is not sender and conn.writable
    )
    return kind, outbound
