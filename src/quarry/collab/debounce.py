"""Per-key debouncing of outbound edits.

Typing in a query cell or dragging a node produces a burst of changes;
only the last value after a quiet period is worth sending. Each key has
its own timer, so edits to different nodes never delay each other.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable


class Debouncer:
    """Calls ``send(key, value)`` once ``delay`` seconds pass without a new value.

    Args:
        delay: Quiet period in seconds.
        send: Coroutine function receiving the key and its latest value.

    """

    def __init__(self, delay: float, send: Callable[[Hashable, Any], Awaitable[None]]) -> None:
        self._delay = delay
        self._send = send
        self._values: dict[Hashable, Any] = {}
        self._timers: dict[Hashable, asyncio.Task[None]] = {}

    @property
    def pending(self) -> int:
        return len(self._values)

    def schedule(self, key: Hashable, value: Any) -> None:
        """Store ``value`` for ``key`` and restart that key's timer."""
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._values[key] = value
        self._timers[key] = asyncio.get_running_loop().create_task(self._fire(key))

    async def _fire(self, key: Hashable) -> None:
        await asyncio.sleep(self._delay)
        # Detach before sending so a schedule() during the send starts a new timer.
        self._timers.pop(key, None)
        value = self._values.pop(key)
        await self._send(key, value)

    async def flush(self) -> None:
        """Send every pending value now."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        values, self._values = self._values, {}
        for key, value in values.items():
            await self._send(key, value)

    def cancel(self) -> None:
        """Drop every pending value."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._values.clear()
