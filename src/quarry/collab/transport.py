"""Client transports for the collaboration session.

The session speaks to the relay through ``RelayTransport``: send a text
frame, iterate received frames, close. ``WebSocketTransport`` is the real
one, built on the ``websockets`` asyncio client; tests substitute an
in-memory pair.

Transport failures surface as ``ConnectionError`` whatever the underlying
library raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from websockets.asyncio.client import ClientConnection


class RelayTransport(Protocol):
    """A connected, bidirectional text-frame channel to the relay."""

    async def send(self, frame: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str]: ...

    async def close(self) -> None: ...


# Opens a transport for a full room URL.
type Connector = Callable[[str], Awaitable[RelayTransport]]


class WebSocketTransport:
    """``RelayTransport`` over a ``websockets`` client connection."""

    __slots__ = ("_ws",)

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    @classmethod
    async def open(cls, url: str) -> WebSocketTransport:
        """Connect to ``url``.

        Raises:
            ConnectionError: If the relay cannot be reached or refuses the handshake.

        """
        from websockets.asyncio.client import connect
        from websockets.exceptions import InvalidHandshake, InvalidURI

        try:
            ws = await connect(url)
        except (OSError, InvalidHandshake, InvalidURI, TimeoutError) as exc:
            msg = f"Cannot connect to relay at {url}: {exc}"
            raise ConnectionError(msg) from exc
        return cls(ws)

    async def send(self, frame: str) -> None:
        from websockets.exceptions import ConnectionClosed

        try:
            await self._ws.send(frame)
        except ConnectionClosed as exc:
            msg = f"Relay connection closed: {exc}"
            raise ConnectionError(msg) from exc

    async def __aiter__(self) -> AsyncIterator[str]:
        from websockets.exceptions import ConnectionClosedError

        try:
            async for message in self._ws:
                yield message if isinstance(message, str) else message.decode("utf-8", "replace")
        except ConnectionClosedError as exc:
            msg = f"Relay connection lost: {exc}"
            raise ConnectionError(msg) from exc

    async def close(self) -> None:
        await self._ws.close()


async def open_websocket(url: str) -> RelayTransport:
    """Default connector for ``CollaborationSession``."""
    return await WebSocketTransport.open(url)
