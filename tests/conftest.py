"""Shared test fixtures for quarry."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import pytest

from quarry._errors import EngineError
from quarry.canvas.model import Edge, Node, Position, Result
from quarry.canvas.state import CanvasState


class FakeEngine:
    """In-memory stand-in for DuckDBEngine.

    ``responses`` maps exact SQL text to a Result (or an exception to raise).
    Tables registered through ``create_table_from_records`` are kept in
    ``tables``; a query ``SELECT * FROM <name>`` against one returns it.
    ``gates`` maps SQL text to an event the query waits on before answering.
    """

    def __init__(self, responses: dict[str, Result | Exception] | None = None) -> None:
        self.responses: dict[str, Result | Exception] = dict(responses or {})
        self.tables: dict[str, tuple[list[dict[str, Any]], list[str]]] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.queries: list[str] = []
        self.created: list[str] = []
        self.init_calls = 0
        self.fail_create: set[str] = set()

    async def init(self) -> None:
        self.init_calls += 1

    async def query(self, sql: str) -> Result:
        self.queries.append(sql)
        gate = self.gates.get(sql)
        if gate is not None:
            await gate.wait()
        if sql in self.responses:
            response = self.responses[sql]
            if isinstance(response, Exception):
                raise response
            return response
        for name, (records, columns) in self.tables.items():
            if sql == f"SELECT * FROM {name}":
                return Result.of(columns, [[r[c] for c in columns] for r in records])
        msg = f"Catalog Error: no canned response for {sql!r}"
        raise EngineError(msg)

    async def create_table_from_records(
        self,
        name: str,
        records: list[dict[str, Any]],
        columns: list[str] | None = None,
    ) -> None:
        if name in self.fail_create:
            msg = f"cannot create {name}"
            raise EngineError(msg)
        self.created.append(name)
        cols = list(columns) if columns is not None else list(records[0]) if records else []
        self.tables[name] = (list(records), cols)


class FakeTransport:
    """In-memory transport: ``push`` simulates frames from the relay."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self.fail_send = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, frame: str) -> None:
        if self.closed or self.fail_send:
            msg = "socket closed"
            raise ConnectionError(msg)
        self.sent.append(json.loads(frame))

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            frame = await self._inbox.get()
            if frame is None:
                return
            yield frame

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(None)

    def push(self, message: dict | str) -> None:
        self._inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def hang_up(self) -> None:
        self._inbox.put_nowait(None)


class Connector:
    def __init__(self, *, fail: bool = False) -> None:
        self.urls: list[str] = []
        self.transports: list[FakeTransport] = []
        self.fail = fail

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        if self.fail:
            msg = f"Cannot connect to relay at {url}"
            raise ConnectionError(msg)
        transport = FakeTransport()
        self.transports.append(transport)
        return transport


def query_node(node_id: str, text: str = "SELECT 1", result: Result | None = None) -> Node:
    return Node(id=node_id, kind="query", text=text, result=result)


def chart_node(node_id: str, chart_kind: str = "bar") -> Node:
    return Node(id=node_id, kind="chart", chart_kind=chart_kind)


def note_node(node_id: str, text: str = "# Notes") -> Node:
    return Node(id=node_id, kind="note", text=text)


ANSWER = Result.of(["answer"], [[42]])


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def canvas() -> CanvasState:
    """Canvas with one query (sql-1), one chart (chart-1) wired to it, and a note."""
    state = CanvasState(id="demo", name="Demo")
    state.add_node(query_node("sql-1", "SELECT 42 AS answer"))
    state.add_node(chart_node("chart-1"))
    state.add_node(note_node("text-1"))
    state.move_node("text-1", Position(200, 0))
    state.add_edge(Edge(id="e1", source="sql-1", target="chart-1"))
    return state
