"""Notebook — local edits to a canvas, mirrored to collaborators.

``Notebook`` is what a UI drives. Every intent mutates the canvas first
and then, when a collaboration session is live, sends the matching relay
message. Running a cell goes through the execution coordinator, whose
previews are handed to the session.

Quick start::

    canvas = CanvasState()
    notebook = Notebook.create(canvas, DuckDBEngine(sample_data=True))
    query = await notebook.add_node("query", text="SELECT * FROM customers")
    await notebook.run(query.id)
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from quarry._errors import CanvasError, ColumnMappingRequired
from quarry.canvas.model import Edge, Node, Position
from quarry.engine.coordinator import ExecutionCoordinator

if TYPE_CHECKING:
    from quarry._types import NodeId, NodeKind
    from quarry.canvas.model import ColumnMapping, Preview
    from quarry.canvas.state import CanvasState
    from quarry.collab.session import CollaborationSession
    from quarry.config import QuarryConfig
    from quarry.engine.coordinator import RunOutcome
    from quarry.engine.duckdb_engine import AnalyticalEngine
    from quarry.observability.collector import StackCollector

# What a freshly added cell shows before anyone edits it.
_NEW_CELL: dict[str, tuple[str, str]] = {
    "query": ("New Query", "SELECT 1"),
    "note": ("Note", "# Title\n\nWrite your notes here..."),
    "chart": ("Chart", ""),
}

_ID_PREFIX: dict[str, str] = {"query": "sql", "note": "text", "chart": "chart"}


class Notebook:
    """Local intents over one canvas.

    Args:
        canvas: The canvas state store.
        coordinator: Runs query cells on that canvas.
        session: Optional collaboration session; edits are mirrored while it is live.

    """

    def __init__(
        self,
        canvas: CanvasState,
        coordinator: ExecutionCoordinator,
        session: CollaborationSession | None = None,
    ) -> None:
        if coordinator.canvas is not canvas:
            msg = "Coordinator runs against a different canvas"
            raise CanvasError(msg)
        self._canvas = canvas
        self._coordinator = coordinator
        self._session: CollaborationSession | None = None
        self._detach = None
        if session is not None:
            self.use_session(session)

    @classmethod
    def create(
        cls,
        canvas: CanvasState,
        engine: AnalyticalEngine,
        *,
        config: QuarryConfig | None = None,
        session: CollaborationSession | None = None,
        collector: StackCollector | None = None,
    ) -> Notebook:
        """Build the coordinator from ``config`` and wire its previews to the session."""
        coordinator = ExecutionCoordinator(
            canvas,
            engine,
            collector=collector,
            cascade=config.cascade if config is not None else False,
            preview_rows=config.preview_rows if config is not None else 5,
        )
        return cls(canvas, coordinator, session)

    @property
    def canvas(self) -> CanvasState:
        return self._canvas

    @property
    def coordinator(self) -> ExecutionCoordinator:
        return self._coordinator

    @property
    def session(self) -> CollaborationSession | None:
        return self._session

    def use_session(self, session: CollaborationSession | None) -> None:
        """Switch collaboration to ``session`` (None to stop mirroring)."""
        if self._detach is not None:
            self._detach()
            self._detach = None
        self._session = session
        if session is None:
            self._coordinator.broadcast = None
            return
        self._detach = session.attach(self._canvas)
        self._coordinator.broadcast = self._broadcast_preview

    async def _broadcast_preview(self, node_id: NodeId, preview: Preview) -> None:
        if self._session is not None and self._session.is_live:
            await self._session.sync_preview(node_id, preview)

    def _live(self) -> CollaborationSession | None:
        session = self._session
        return session if session is not None and session.is_live else None

    # ----- Intents -----

    async def add_node(
        self,
        kind: NodeKind,
        *,
        node_id: NodeId | None = None,
        position: Position | None = None,
        label: str | None = None,
        text: str | None = None,
        chart_kind: str = "bar",
    ) -> Node:
        """Create a cell and announce it to the room.

        Raises:
            CanvasError: If ``node_id`` is already taken.

        """
        default_label, default_text = _NEW_CELL[kind]
        node = Node(
            id=node_id or f"{_ID_PREFIX[kind]}-{uuid.uuid4().hex[:8]}",
            kind=kind,
            position=position or Position(),
            label=label if label is not None else default_label,
            text=text if text is not None else default_text,
            chart_kind=chart_kind,
        )
        if not self._canvas.add_node(node):
            msg = f"Node id already in use: {node.id!r}"
            raise CanvasError(msg)
        if session := self._live():
            await session.sync_node(node)
        return node

    async def move_node(self, node_id: NodeId, position: Position) -> None:
        self._canvas.get(node_id)
        self._canvas.move_node(node_id, position)
        if session := self._live():
            session.sync_position(node_id, position)

    async def set_text(self, node_id: NodeId, text: str) -> None:
        """Edit a query's text or a note's content."""
        node = self._canvas.get(node_id)
        if node.is_chart:
            msg = f"Chart {node_id!r} has no text"
            raise CanvasError(msg)
        self._canvas.set_text(node_id, text)
        if session := self._live():
            session.sync_text(node_id, text)

    async def connect(
        self,
        source: NodeId,
        target: NodeId,
        *,
        mapping: ColumnMapping | None = None,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> Edge | None:
        """Draw an edge from ``source`` to ``target``.

        Connecting a query that already has a result to a chart needs a
        column mapping. The chart then receives the result, the mapping and
        its source id. Returns None if an identical edge already exists.

        Raises:
            CanvasError: If either node is unknown, or a mapping names a
                column the result does not have.
            ColumnMappingRequired: If the mapping is needed but missing.

        """
        source_node = self._canvas.get(source)
        target_node = self._canvas.get(target)

        if source_node.is_query and target_node.is_chart:
            result = source_node.result
            if result is not None and result.columns:
                if mapping is None:
                    raise ColumnMappingRequired(source, target, list(result.columns))
                missing = [
                    c for c in (mapping.x_column, mapping.y_column) if c not in result.columns
                ]
                if missing:
                    msg = f"Result of {source!r} has no column {missing[0]!r}"
                    raise CanvasError(msg)
            self._canvas.bind_chart(target, result, mapping=mapping, source_id=source)

        edge = Edge(
            id=f"e{uuid.uuid4().hex[:12]}",
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        if not self._canvas.add_edge(edge):
            return None
        if session := self._live():
            await session.sync_edge(edge)
        return edge

    async def run(self, node_id: NodeId, text: str | None = None) -> RunOutcome:
        """Run a query cell, optionally storing new text first."""
        if text is not None and self._canvas.get(node_id).is_query and (session := self._live()):
            session.sync_text(node_id, text)
        return await self._coordinator.run(node_id, text)

    async def remove_node(self, node_id: NodeId) -> Node:
        """Delete a cell and its edges. Deletions are local only."""
        return self._canvas.remove_node(node_id)
