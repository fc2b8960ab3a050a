"""Canvas data model — nodes, edges, results and previews.

Nodes and edges are mutable dataclasses owned by the canvas state store.
Results and previews are frozen: a new run produces a new Result object
instead of patching the previous one.

Every type converts to and from the camelCase JSON shapes exchanged with
the browser UI and the relay (``to_dict`` / ``from_dict``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from quarry._errors import CanvasError

if TYPE_CHECKING:
    from quarry._types import NodeId, NodeKind, Scalar

DEFAULT_PREVIEW_ROWS = 5

# The browser UI names node types after its cell components.
_KIND_ALIASES: dict[str, NodeKind] = {
    "query": "query",
    "sqlCell": "query",
    "note": "note",
    "textCell": "note",
    "chart": "chart",
    "chartCell": "chart",
}

CHART_KINDS = frozenset({"bar", "line", "pie", "bigNumber"})


def _mapping(data: object, what: str) -> dict[str, Any]:
    """Return ``data`` if it is a JSON object, else raise CanvasError."""
    if not isinstance(data, dict):
        msg = f"{what} must be an object, got {type(data).__name__}"
        raise CanvasError(msg)
    return data


def normalize_kind(raw: str) -> NodeKind:
    """Map a wire node type (``sqlCell``, ``query``, ...) to a node kind."""
    kind = _KIND_ALIASES.get(raw)
    if kind is None:
        msg = f"Unknown node type: {raw!r}"
        raise CanvasError(msg)
    return kind


@dataclass(frozen=True, slots=True)
class Position:
    """A point on the canvas."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Position:
        if not data:
            return cls()
        data = _mapping(data, "Position")
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass(frozen=True, slots=True)
class Result:
    """Tabular output of a query run.

    Attributes:
        columns: Column names in result order.
        rows: Rows of scalar values, positionally aligned to ``columns``.

    """

    columns: tuple[str, ...]
    rows: tuple[tuple[Scalar, ...], ...]

    @classmethod
    def of(cls, columns: list[str] | tuple[str, ...], rows: Any) -> Result:
        """Build a Result from any column/row sequences."""
        return cls(columns=tuple(columns), rows=tuple(tuple(row) for row in rows))

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def validate(self) -> None:
        """Raise CanvasError if any row does not match the column count."""
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                msg = (
                    f"Result row {index} has {len(row)} values, "
                    f"expected {width} ({', '.join(self.columns)})"
                )
                raise CanvasError(msg)

    @property
    def unique_columns(self) -> tuple[str, ...]:
        """Column names with repeats renamed ``a_1``, ``a_2``, ... as DuckDB does.

        ``SELECT a.id, b.id`` yields two ``id`` columns; identifiers are
        case-insensitive, so ``ID`` repeats ``id`` too.
        """
        seen: set[str] = set()
        names: list[str] = []
        for name in self.columns:
            candidate, suffix = name, 0
            while candidate.casefold() in seen:
                suffix += 1
                candidate = f"{name}_{suffix}"
            seen.add(candidate.casefold())
            names.append(candidate)
        return tuple(names)

    def records(self) -> list[dict[str, Scalar]]:
        """Rows as field-keyed dicts keyed by ``unique_columns``, in column order."""
        self.validate()
        columns = self.unique_columns
        return [dict(zip(columns, row, strict=True)) for row in self.rows]

    def preview(self, limit: int = DEFAULT_PREVIEW_ROWS) -> Preview:
        """Truncate to at most ``limit`` rows for broadcasting."""
        return Preview(
            columns=self.columns,
            rows=self.rows[:limit],
            total_rows=len(self.rows),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"columns": list(self.columns), "rows": [list(row) for row in self.rows]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Result | None:
        if not data:
            return None
        data = _mapping(data, "Result")
        return cls.of(data.get("columns") or [], data.get("rows") or [])


@dataclass(frozen=True, slots=True)
class Preview:
    """A Result truncated for low-bandwidth broadcast.

    Attributes:
        columns: Column names of the full result.
        rows: The first few rows of the full result.
        total_rows: Row count of the full result.

    """

    columns: tuple[str, ...]
    rows: tuple[tuple[Scalar, ...], ...]
    total_rows: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": list(self.columns),
            "rows": [list(row) for row in self.rows],
            "totalRows": self.total_rows,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Preview | None:
        if not data:
            return None
        data = _mapping(data, "Preview")
        rows = tuple(tuple(row) for row in data.get("rows") or [])
        return cls(
            columns=tuple(data.get("columns") or []),
            rows=rows,
            total_rows=int(data.get("totalRows", len(rows))),
        )


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Which result columns feed a chart's horizontal and vertical axes."""

    x_column: str
    y_column: str

    def to_dict(self) -> dict[str, str]:
        return {"xColumn": self.x_column, "yColumn": self.y_column}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ColumnMapping | None:
        if not data:
            return None
        data = _mapping(data, "Column mapping")
        return cls(x_column=str(data["xColumn"]), y_column=str(data["yColumn"]))


@dataclass(slots=True)
class Node:
    """A cell on the canvas.

    ``text`` holds the query text for query nodes and the markdown content
    for note nodes. Execution fields are only meaningful for query nodes;
    chart fields only for chart nodes.

    """

    id: NodeId
    kind: NodeKind
    position: Position = field(default_factory=Position)
    label: str = ""
    text: str = ""
    is_executing: bool = False
    result: Result | None = None
    error: str | None = None
    preview: Preview | None = None
    chart_kind: str = "bar"
    column_mapping: ColumnMapping | None = None
    source_node_id: NodeId | None = None

    @property
    def is_query(self) -> bool:
        return self.kind == "query"

    @property
    def is_chart(self) -> bool:
        return self.kind == "chart"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"label": self.label}
        if self.kind == "note":
            data["content"] = self.text
        elif self.kind == "query":
            data.update(
                sql=self.text,
                isExecuting=self.is_executing,
                results=self.result.to_dict() if self.result else None,
                error=self.error,
            )
            if self.preview is not None:
                data["preview"] = self.preview.to_dict()
        else:
            data.update(
                chartType=self.chart_kind,
                results=self.result.to_dict() if self.result else None,
                columnMapping=self.column_mapping.to_dict() if self.column_mapping else None,
                sourceNodeId=self.source_node_id,
            )
        return {
            "id": self.id,
            "type": self.kind,
            "position": self.position.to_dict(),
            "data": data,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Node:
        """Build a node from its wire shape.

        Raises:
            CanvasError: If the node is not an object, the id is missing or the
            type is unknown.

        """
        raw = _mapping(raw, "Node")
        node_id = raw.get("id")
        if not node_id:
            msg = "Node is missing an id"
            raise CanvasError(msg)
        kind = normalize_kind(str(raw.get("type", "")))
        data = _mapping(raw.get("data") or {}, "Node data")
        text = data.get("content", "") if kind == "note" else data.get("sql", "")
        chart_kind = data.get("chartType", "bar")
        if chart_kind not in CHART_KINDS:
            msg = f"Unknown chart type: {chart_kind!r}"
            raise CanvasError(msg)
        return cls(
            id=str(node_id),
            kind=kind,
            position=Position.from_dict(raw.get("position")),
            label=str(data.get("label", "")),
            text=text or "",
            is_executing=bool(data.get("isExecuting", False)),
            result=Result.from_dict(data.get("results")),
            error=data.get("error"),
            preview=Preview.from_dict(data.get("preview")),
            chart_kind=chart_kind,
            column_mapping=ColumnMapping.from_dict(data.get("columnMapping")),
            source_node_id=data.get("sourceNodeId"),
        )


@dataclass(frozen=True, slots=True)
class Edge:
    """A directed connection between two nodes."""

    id: str
    source: NodeId
    target: NodeId
    source_handle: str | None = None
    target_handle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "sourceHandle": self.source_handle,
            "targetHandle": self.target_handle,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Edge:
        raw = _mapping(raw, "Edge")
        source = raw.get("source")
        target = raw.get("target")
        if not source or not target:
            msg = "Edge needs both a source and a target"
            raise CanvasError(msg)
        edge_id = raw.get("id") or f"e-{source}-{target}"
        return cls(
            id=str(edge_id),
            source=str(source),
            target=str(target),
            source_handle=raw.get("sourceHandle"),
            target_handle=raw.get("targetHandle"),
        )
