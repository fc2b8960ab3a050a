"""Collaboration: the room relay and the client session that talks to it."""

from quarry.collab.debounce import Debouncer
from quarry.collab.relay import Peer, RelayServer, create_app, serve
from quarry.collab.rooms import (
    RELAYED_KINDS,
    Outbound,
    RoomRegistry,
    join,
    leave,
    room_from_path,
    route,
)
from quarry.collab.session import CollaborationSession
from quarry.collab.transport import RelayTransport, WebSocketTransport

__all__ = [
    "RELAYED_KINDS",
    "CollaborationSession",
    "Debouncer",
    "Outbound",
    "Peer",
    "RelayServer",
    "RelayTransport",
    "RoomRegistry",
    "WebSocketTransport",
    "create_app",
    "join",
    "leave",
    "room_from_path",
    "route",
    "serve",
]
