"""Canvas state store — the in-memory graph of nodes and edges.

The store is the single authority that the execution coordinator, the
collaboration session and local user intents all read and mutate. It is
not locked: every mutation happens on the event loop that owns the canvas.

Invariants:
    - node ids are unique; insertion order is preserved
    - an edge id is stored at most once
    - removing a node removes every edge that touches it
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from quarry._errors import CanvasError
from quarry.canvas.model import ColumnMapping, Edge, Node, Position
from quarry.canvas.references import parse_references

if TYPE_CHECKING:
    from pathlib import Path

    from quarry._types import NodeId
    from quarry.canvas.model import Preview, Result


@dataclass(slots=True)
class CanvasState:
    """Mutable canvas document.

    Attributes:
        id: Canvas identifier (also the default relay room name).
        name: Display name.
        description: Display description.

    """

    id: str = "default"
    name: str = "Untitled canvas"
    description: str = ""
    _nodes: dict[NodeId, Node] = field(default_factory=dict)
    _edges: dict[str, Edge] = field(default_factory=dict)

    # ----- Reads -----

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> tuple[Edge, ...]:
        return tuple(self._edges.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def find(self, node_id: NodeId) -> Node | None:
        """Return the node or None."""
        return self._nodes.get(node_id)

    def get(self, node_id: NodeId) -> Node:
        """Return the node.

        Raises:
            CanvasError: If no node has this id.

        """
        node = self._nodes.get(node_id)
        if node is None:
            msg = f"Unknown node: {node_id!r}"
            raise CanvasError(msg)
        return node

    def has_edge(self, edge: Edge) -> bool:
        """True if the edge id, or the same source/target/handles, is present."""
        if edge.id in self._edges:
            return True
        return any(
            e.source == edge.source
            and e.target == edge.target
            and e.source_handle == edge.source_handle
            and e.target_handle == edge.target_handle
            for e in self._edges.values()
        )

    def downstream_charts(self, node_id: NodeId) -> tuple[Node, ...]:
        """Chart nodes targeted by an edge whose source is ``node_id``."""
        charts: list[Node] = []
        seen: set[NodeId] = set()
        for edge in self._edges.values():
            if edge.source != node_id or edge.target in seen:
                continue
            target = self._nodes.get(edge.target)
            if target is not None and target.is_chart:
                charts.append(target)
                seen.add(target.id)
        return tuple(charts)

    def references_of(self, node_id: NodeId) -> tuple[NodeId, ...]:
        """Ids a query node references in its text."""
        node = self._nodes.get(node_id)
        if node is None or not node.is_query:
            return ()
        return parse_references(node.text).references

    def dependents_of(self, node_id: NodeId) -> tuple[NodeId, ...]:
        """Query nodes whose text references ``node_id`` directly."""
        return tuple(
            node.id
            for node in self._nodes.values()
            if node.is_query and node.id != node_id and node_id in self.references_of(node.id)
        )

    # ----- Mutations -----

    def add_node(self, node: Node) -> bool:
        """Insert a node. Returns False (and changes nothing) if the id exists."""
        if node.id in self._nodes:
            return False
        self._nodes[node.id] = node
        return True

    def remove_node(self, node_id: NodeId) -> Node:
        """Remove a node and every edge touching it."""
        node = self.get(node_id)
        del self._nodes[node_id]
        for edge_id in [
            e.id for e in self._edges.values() if node_id in (e.source, e.target)
        ]:
            del self._edges[edge_id]
        return node

    def move_node(self, node_id: NodeId, position: Position) -> bool:
        """Set a node's position. Unknown ids are ignored (returns False)."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.position = position
        return True

    def set_text(self, node_id: NodeId, text: str) -> bool:
        """Replace a query's text or a note's content. Charts are ignored."""
        node = self._nodes.get(node_id)
        if node is None or node.is_chart:
            return False
        node.text = text
        return True

    def set_preview(self, node_id: NodeId, preview: Preview | None) -> bool:
        """Attach a preview received from a collaborator."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.preview = preview
        return True

    def add_edge(self, edge: Edge) -> bool:
        """Insert an edge. Duplicates and edges to unknown nodes are ignored."""
        if self.has_edge(edge):
            return False
        if edge.source not in self._nodes or edge.target not in self._nodes:
            return False
        self._edges[edge.id] = edge
        return True

    def remove_edge(self, edge_id: str) -> bool:
        return self._edges.pop(edge_id, None) is not None

    def begin_run(self, node_id: NodeId) -> Node:
        """Mark a query node as executing. Result and error stay visible."""
        node = self.get(node_id)
        if not node.is_query:
            msg = f"Node {node_id!r} is a {node.kind} node and cannot be run"
            raise CanvasError(msg)
        node.is_executing = True
        return node

    def complete_run(self, node_id: NodeId, result: Result) -> None:
        """Store a successful result and clear the error."""
        node = self.get(node_id)
        node.result = result
        node.error = None
        node.is_executing = False

    def fail_run(self, node_id: NodeId, error: str) -> None:
        """Store an error, keeping whatever result was there before."""
        node = self.get(node_id)
        node.error = error
        node.is_executing = False

    def bind_chart(
        self,
        chart_id: NodeId,
        result: Result | None,
        *,
        mapping: ColumnMapping | None = None,
        source_id: NodeId | None = None,
    ) -> None:
        """Copy a result (and optionally a mapping/source) onto a chart node."""
        chart = self.get(chart_id)
        if not chart.is_chart:
            msg = f"Node {chart_id!r} is not a chart"
            raise CanvasError(msg)
        chart.result = result
        if mapping is not None:
            chart.column_mapping = mapping
        if source_id is not None:
            chart.source_node_id = source_id

    # ----- Serialization -----

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanvasState:
        canvas = cls(
            id=str(data.get("id", "default")),
            name=str(data.get("name", "Untitled canvas")),
            description=str(data.get("description", "")),
        )
        for raw in data.get("nodes") or []:
            node = Node.from_dict(raw)
            if not canvas.add_node(node):
                msg = f"Duplicate node id in canvas: {node.id!r}"
                raise CanvasError(msg)
        for raw in data.get("edges") or []:
            canvas.add_edge(Edge.from_dict(raw))
        return canvas

    @classmethod
    def load(cls, path: Path) -> CanvasState:
        """Read a canvas from a JSON file.

        Raises:
            CanvasError: If the file cannot be read or is not a canvas object.

        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            msg = f"Cannot read canvas {path}: {exc}"
            raise CanvasError(msg) from exc
        if not isinstance(data, dict):
            msg = f"Canvas file {path} must contain a JSON object"
            raise CanvasError(msg)
        return cls.from_dict(data)

    def snapshot(self, node_id: NodeId) -> Node:
        """Detached copy of a node, safe to serialize while the live node mutates."""
        return replace(self.get(node_id))
