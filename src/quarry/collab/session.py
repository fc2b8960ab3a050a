"""Collaboration session — one client's link to a relay room.

The session owns at most one transport. Outbound, it turns local edits
into relay frames: positions and text are debounced per node so a drag or
a burst of typing becomes one frame, while edges, new nodes and previews
go out at once. Inbound, it decodes frames and hands each to the handler
registered for its kind; a kind with no handler is dropped.

Status moves ``local -> connecting -> live`` on connect and back to
``local`` on disconnect or when the transport drops. There is no automatic
reconnect; call ``connect()`` again.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import TYPE_CHECKING, Any, Literal

from quarry._errors import CanvasError, RelayError
from quarry.canvas.model import Edge, Node, Position, Preview
from quarry.collab.debounce import Debouncer
from quarry.collab.rooms import decode_frame
from quarry.collab.transport import open_websocket

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from quarry._types import MessageHandler, NodeId, RoomName
    from quarry.canvas.state import CanvasState
    from quarry.collab.transport import Connector, RelayTransport
    from quarry.observability.collector import StackCollector

type SessionStatus = Literal["local", "connecting", "live"]


class CollaborationSession:
    """Mirrors local canvas edits to a relay room and applies remote ones.

    Args:
        room: Room to join (appended to ``url`` as the path).
        url: Base relay URL.
        connect: Coroutine opening a transport for a full URL; defaults to the
            ``websockets`` client.
        debounce_ms: Quiet period for position and text edits.
        collector: Optional observability collector (records going live and offline).

    """

    def __init__(
        self,
        room: RoomName = "default",
        *,
        url: str = "ws://localhost:1234",
        connect: Connector | None = None,
        debounce_ms: int = 300,
        collector: StackCollector | None = None,
    ) -> None:
        self._room = room
        self._base_url = url
        self._connector = connect or open_websocket
        self._collector = collector
        self._debouncer = Debouncer(debounce_ms / 1000, self._send_debounced)
        self._handlers: dict[str, MessageHandler] = {}
        self._transport: RelayTransport | None = None
        self._reader: asyncio.Task[None] | None = None
        self._status: SessionStatus = "local"
        self._users = 0

    @property
    def room(self) -> RoomName:
        return self._room

    @property
    def url(self) -> str:
        return f"{self._base_url.rstrip('/')}/{self._room}"

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_live(self) -> bool:
        return self._status == "live"

    @property
    def users(self) -> int:
        """Last member count announced by the relay (0 when not live)."""
        return self._users if self.is_live else 0

    # ----- Connection -----

    async def connect(self) -> bool:
        """Open the transport and start receiving. Returns True once live.

        A second call while connecting or live does nothing. Connection
        failures are reported on stderr and leave the session local.
        """
        if self._status != "local":
            return self.is_live
        self._status = "connecting"
        try:
            transport = await self._connector(self.url)
        except ConnectionError as exc:
            self._status = "local"
            print(f"  Collaboration offline: {exc}", file=sys.stderr)
            return False
        self._transport = transport
        self._status = "live"
        # Counts ourselves until the relay announces the room size.
        self._users = 1
        self._reader = asyncio.get_running_loop().create_task(self._read(transport))
        print(f"  Collaboration live in room {self._room!r}", file=sys.stderr)
        self._record("connect")
        return True

    async def disconnect(self) -> None:
        """Close the transport. Pending debounced edits are dropped."""
        self._debouncer.cancel()
        transport, reader = self._transport, self._reader
        self._go_local()
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if transport is not None:
            await self._close(transport)

    async def _close(self, transport: RelayTransport) -> None:
        try:
            await transport.close()
        except ConnectionError as exc:
            print(f"  Error closing relay connection: {exc}", file=sys.stderr)

    def _record(self, kind: str) -> None:
        if self._collector is not None:
            self._collector.record_connection(
                self._room, "local", kind=kind, members=self._users,
            )

    def _go_local(self) -> None:
        if self._status == "live":
            self._record("disconnect")
        self._transport = None
        self._reader = None
        self._status = "local"
        self._users = 0

    async def _read(self, transport: RelayTransport) -> None:
        try:
            async for frame in transport:
                self.dispatch(frame)
        except ConnectionError as exc:
            print(f"  Collaboration connection lost: {exc}", file=sys.stderr)
        finally:
            if self._transport is transport:
                self._debouncer.cancel()
                self._go_local()
                await self._close(transport)

    # ----- Inbound -----

    def on(self, kind: str, handler: MessageHandler) -> Callable[[], None]:
        """Handle inbound frames of ``kind``. Returns a function that unregisters it."""
        self._handlers[kind] = handler

        def unsubscribe() -> None:
            if self._handlers.get(kind) is handler:
                del self._handlers[kind]

        return unsubscribe

    def dispatch(self, frame: str) -> bool:
        """Apply one inbound frame. Returns False if it was dropped."""
        try:
            message = decode_frame(frame)
        except RelayError as exc:
            print(f"  Ignoring relay frame: {exc}", file=sys.stderr)
            return False
        kind = message["type"]
        if kind == "users":
            count = message.get("count")
            if isinstance(count, int):
                self._users = count
        handler = self._handlers.get(kind)
        if handler is None:
            return kind == "users"
        try:
            handler(message)
        except (AttributeError, CanvasError, KeyError, TypeError, ValueError) as exc:
            print(f"  Could not apply {kind!r} message: {exc}", file=sys.stderr)
            return False
        return True

    def attach(self, canvas: CanvasState) -> Callable[[], None]:
        """Apply remote edits to ``canvas``. Returns a function that detaches it.

        Handlers write to the canvas directly, never through the session, so
        remote edits are not sent back out.
        """

        def on_position(message: dict[str, Any]) -> None:
            canvas.move_node(message["nodeId"], Position.from_dict(message["position"]))

        def on_edge(message: dict[str, Any]) -> None:
            canvas.add_edge(Edge.from_dict(message["edge"]))

        def on_preview(message: dict[str, Any]) -> None:
            canvas.set_preview(message["nodeId"], Preview.from_dict(message["preview"]))

        def on_node(message: dict[str, Any]) -> None:
            canvas.add_node(Node.from_dict(message["node"]))

        def on_text(message: dict[str, Any]) -> None:
            canvas.set_text(message["nodeId"], str(message["text"]))

        unsubscribers = [
            self.on("position", on_position),
            self.on("edge", on_edge),
            self.on("preview", on_preview),
            self.on("node", on_node),
            self.on("text", on_text),
        ]

        def detach() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return detach

    # ----- Outbound -----

    async def send(self, message: dict[str, Any]) -> bool:
        """Send one message now. Returns False when not live or the send failed."""
        transport = self._transport
        if transport is None or not self.is_live:
            return False
        frame = json.dumps(message, default=str)
        try:
            await transport.send(frame)
        except ConnectionError as exc:
            print(f"  Collaboration connection lost: {exc}", file=sys.stderr)
            await self.disconnect()
            return False
        return True

    async def _send_debounced(self, key: Hashable, message: dict[str, Any]) -> None:
        await self.send(message)

    def sync_position(self, node_id: NodeId, position: Position) -> None:
        if self.is_live:
            self._debouncer.schedule(
                ("position", node_id),
                {"type": "position", "nodeId": node_id, "position": position.to_dict()},
            )

    def sync_text(self, node_id: NodeId, text: str) -> None:
        if self.is_live:
            self._debouncer.schedule(
                ("text", node_id),
                {"type": "text", "nodeId": node_id, "text": text},
            )

    async def sync_edge(self, edge: Edge) -> bool:
        return await self.send({"type": "edge", "edge": edge.to_dict()})

    async def sync_node(self, node: Node) -> bool:
        return await self.send({"type": "node", "node": node.to_dict()})

    async def sync_preview(self, node_id: NodeId, preview: Preview) -> bool:
        return await self.send(
            {"type": "preview", "nodeId": node_id, "preview": preview.to_dict()},
        )

    async def flush(self) -> None:
        """Send debounced edits now instead of waiting out the quiet period."""
        await self._debouncer.flush()
