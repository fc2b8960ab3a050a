"""Tests for quarry.collab.debounce."""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from typing import Any

import pytest

from quarry.collab.debounce import Debouncer


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[Hashable, Any]] = []

    async def __call__(self, key: Hashable, value: Any) -> None:
        self.calls.append((key, value))


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_last_value_wins(self) -> None:
        sent = _Recorder()
        debouncer = Debouncer(0.02, sent)
        for text in ("S", "SE", "SEL"):
            debouncer.schedule("sql-1", text)
        assert sent.calls == []
        await asyncio.sleep(0.08)
        assert sent.calls == [("sql-1", "SEL")]
        assert debouncer.pending == 0

    @pytest.mark.asyncio
    async def test_keys_are_independent(self) -> None:
        sent = _Recorder()
        debouncer = Debouncer(0.02, sent)
        debouncer.schedule("a", 1)
        debouncer.schedule("b", 2)
        await asyncio.sleep(0.08)
        assert sorted(sent.calls) == [("a", 1), ("b", 2)]

    @pytest.mark.asyncio
    async def test_reschedule_restarts_timer(self) -> None:
        sent = _Recorder()
        debouncer = Debouncer(0.05, sent)
        debouncer.schedule("a", 1)
        await asyncio.sleep(0.03)
        debouncer.schedule("a", 2)
        await asyncio.sleep(0.03)
        assert sent.calls == []
        await asyncio.sleep(0.06)
        assert sent.calls == [("a", 2)]

    @pytest.mark.asyncio
    async def test_flush_sends_now(self) -> None:
        sent = _Recorder()
        debouncer = Debouncer(10, sent)
        debouncer.schedule("a", 1)
        await debouncer.flush()
        assert sent.calls == [("a", 1)]
        assert debouncer.pending == 0

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self) -> None:
        sent = _Recorder()
        debouncer = Debouncer(0.01, sent)
        debouncer.schedule("a", 1)
        debouncer.cancel()
        await asyncio.sleep(0.05)
        assert sent.calls == []
