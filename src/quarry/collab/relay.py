"""Relay server — room-based WebSocket fan-out.

Every WebSocket path is a room (``/team-a`` joins room ``team-a``, ``/``
joins the default room). The relay never looks inside a frame beyond its
``type``: frames of a relayed kind are forwarded verbatim to every other
member of the sender's room, and every join or leave announces the new
member count to the room.

Each connection owns an outbound queue drained by its own writer task.
Forwarding is a ``put_nowait``; a full queue drops the frame for that peer
only, and a socket that fails to send is disconnected and its room
announced the new member count. Delivery is best-effort with no replay
for late joiners.

Served by uvicorn; ``/_quarry/stats`` reports room sizes and event stats.
"""

from __future__ import annotations

import asyncio
import itertools
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from quarry.collab.rooms import DEFAULT_ROOM, RoomRegistry, join, leave, room_from_path, route
from quarry.observability import EventLog, StackCollector, compute_aggregate_stats

if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from quarry._types import ClientID, RoomName
    from quarry.collab.rooms import Outbound
    from quarry.config import QuarryConfig

STATS_ENDPOINT = "/_quarry/stats"

_client_ids = itertools.count(1)


@dataclass(eq=False, slots=True)
class Peer:
    """A connected relay client.

    Attributes:
        client_id: Unique identifier for this connection.
        room: The room this client joined.
        queue: Frames waiting for the writer task.
        closed: Set once the socket is gone or failed to send.

    """

    client_id: ClientID
    room: RoomName
    queue: asyncio.Queue[str] = field(default_factory=asyncio.Queue)
    closed: bool = False

    @property
    def writable(self) -> bool:
        return not self.closed and not self.queue.full()


class RelayServer:
    """Owns the room registry and moves frames between peers.

    ``connect``/``receive``/``disconnect`` are the synchronous core and are
    driven by ``handle``, the Starlette WebSocket endpoint.

    Args:
        collector: Optional observability collector.
        default_room: Room for connections on ``/``.
        queue_size: Per-connection outbound queue bound.

    """

    def __init__(
        self,
        *,
        collector: StackCollector | None = None,
        default_room: RoomName = DEFAULT_ROOM,
        queue_size: int = 256,
    ) -> None:
        self._registry = RoomRegistry()
        self._collector = collector
        self._default_room = default_room
        self._queue_size = queue_size

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def collector(self) -> StackCollector | None:
        return self._collector

    def connect(self, room: RoomName) -> Peer:
        """Register a new peer in ``room`` and announce the member count."""
        peer = Peer(
            client_id=f"c{next(_client_ids)}",
            room=room,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        self._registry, outbound = join(self._registry, room, peer)
        self._deliver(outbound)
        members = self._registry.member_count(room)
        print(f"  [{room}] {peer.client_id} connected ({members} in room)", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_connection(
                room, peer.client_id, kind="connect", members=members,
            )
        return peer

    def disconnect(self, peer: Peer) -> None:
        """Remove a peer and tell the rest of its room."""
        peer.closed = True
        room = peer.room
        if peer not in self._registry.members(room):
            return
        self._registry, outbound = leave(self._registry, room, peer)
        self._deliver(outbound)
        members = self._registry.member_count(room)
        print(f"  [{room}] {peer.client_id} disconnected ({members} in room)", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_connection(
                room, peer.client_id, kind="disconnect", members=members,
            )

    def receive(self, peer: Peer, raw: str) -> int:
        """Forward a frame from ``peer``. Returns how many peers it was queued for."""
        message_type, outbound = route(self._registry, peer.room, peer, raw)
        delivered = self._deliver(outbound)
        if self._collector is not None:
            self._collector.record_relay(peer.room, message_type, delivered=delivered)
        return delivered

    def _deliver(self, outbound: Iterable[Outbound]) -> int:
        count = 0
        for item in outbound:
            conn = item.conn
            assert isinstance(conn, Peer)
            try:
                conn.queue.put_nowait(item.frame)
                count += 1
            except asyncio.QueueFull:
                print(
                    f"  [{conn.room}] dropped frame for {conn.client_id}: queue full",
                    file=sys.stderr,
                )
        return count

    async def handle(self, websocket: WebSocket) -> None:
        """WebSocket endpoint: join, pump frames until the client leaves."""
        room = room_from_path(websocket.url.path, self._default_room)
        await websocket.accept()
        peer = self.connect(room)
        writer = asyncio.create_task(self._write(websocket, peer))
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect" or peer.closed:
                    break
                raw = message.get("text")
                if raw is None and message.get("bytes") is not None:
                    raw = message["bytes"].decode("utf-8", errors="replace")
                if raw is not None:
                    self.receive(peer, raw)
        finally:
            self.disconnect(peer)
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)

    async def _write(self, websocket: WebSocket, peer: Peer) -> None:
        """Drain a peer's queue onto its socket until it fails or is cancelled."""
        try:
            while True:
                frame = await peer.queue.get()
                await websocket.send_text(frame)
        except Exception as exc:
            print(f"  [{peer.room}] send to {peer.client_id} failed: {exc}", file=sys.stderr)
            self.disconnect(peer)

    async def stats(self, request: Request) -> JSONResponse:
        """``/_quarry/stats``: room sizes plus run and event-log statistics."""
        payload: dict[str, object] = {"rooms": self._registry.counts()}
        if self._collector is not None:
            payload["runs"] = compute_aggregate_stats(self._collector.log)
            payload["event_log"] = self._collector.log.stats()
        return JSONResponse(payload)


def create_app(server: RelayServer | None = None) -> Starlette:
    """Build the Starlette application for a relay server."""
    server = server if server is not None else RelayServer()
    return Starlette(
        routes=[
            Route(STATS_ENDPOINT, server.stats, methods=["GET"]),
            WebSocketRoute("/{path:path}", server.handle),
        ],
    )


def serve(config: QuarryConfig) -> None:
    """Run the relay with uvicorn until interrupted."""
    import uvicorn

    from quarry.banner import print_banner

    collector = StackCollector(EventLog(max_events=config.max_events))
    server = RelayServer(
        collector=collector,
        default_room=config.default_room,
        queue_size=config.queue_size,
    )
    app = create_app(server)
    warnings = []
    if config.host not in ("127.0.0.1", "localhost", "::1"):
        warnings.append(
            f"Listening on {config.host} without authentication: anyone who can reach it can join a room",
        )
    print_banner(config, warnings=warnings)
    uvicorn.run(app, host=config.host, port=config.port, log_level="warning")
