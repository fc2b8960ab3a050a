"""Tests for quarry.canvas.model — nodes, edges, results and wire shapes."""

from __future__ import annotations

import pytest

from quarry._errors import CanvasError
from quarry.canvas.model import (
    ColumnMapping,
    Edge,
    Node,
    Position,
    Preview,
    Result,
    normalize_kind,
)


class TestNormalizeKind:
    def test_ui_names(self) -> None:
        assert normalize_kind("sqlCell") == "query"
        assert normalize_kind("textCell") == "note"
        assert normalize_kind("chartCell") == "chart"

    def test_plain_names(self) -> None:
        assert normalize_kind("query") == "query"

    def test_unknown_raises(self) -> None:
        with pytest.raises(CanvasError, match="Unknown node type"):
            normalize_kind("videoCell")


class TestResult:
    """Result — frozen tabular output."""

    def test_of_converts_sequences(self) -> None:
        result = Result.of(["a", "b"], [[1, 2], (3, 4)])
        assert result.columns == ("a", "b")
        assert result.rows == ((1, 2), (3, 4))
        assert result.row_count == 2

    def test_frozen(self) -> None:
        result = Result.of(["a"], [[1]])
        with pytest.raises(AttributeError):
            result.rows = ()  # type: ignore[misc]

    def test_records_keyed_by_column(self) -> None:
        result = Result.of(["id", "name"], [[1, "Alice"], [2, "Bob"]])
        assert result.records() == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]

    def test_unique_columns(self) -> None:
        result = Result.of(["a", "a", "A", "id", "a_1"], [])
        assert result.unique_columns == ("a", "a_1", "A_2", "id", "a_1_1")
        assert result.columns == ("a", "a", "A", "id", "a_1")

    def test_records_keep_repeated_columns(self) -> None:
        result = Result.of(["id", "id"], [[1, 2]])
        assert result.records() == [{"id": 1, "id_1": 2}]

    def test_ragged_rows_rejected(self) -> None:
        result = Result.of(["id", "name"], [[1, "Alice"], [2]])
        with pytest.raises(CanvasError, match="row 1 has 1 values"):
            result.records()

    def test_preview_truncates(self) -> None:
        result = Result.of(["n"], [[i] for i in range(12)])
        preview = result.preview(5)
        assert preview.rows == tuple((i,) for i in range(5))
        assert preview.total_rows == 12
        assert preview.columns == ("n",)

    def test_preview_of_short_result(self) -> None:
        preview = Result.of(["n"], [[1]]).preview()
        assert preview.rows == ((1,),)
        assert preview.total_rows == 1

    def test_dict_shape(self) -> None:
        data = Result.of(["a"], [[1]]).to_dict()
        assert data == {"columns": ["a"], "rows": [[1]]}
        assert Result.from_dict(data) == Result.of(["a"], [[1]])

    def test_from_empty_dict(self) -> None:
        assert Result.from_dict(None) is None


class TestPreview:
    def test_wire_shape_uses_total_rows(self) -> None:
        preview = Preview(columns=("a",), rows=((1,),), total_rows=10)
        assert preview.to_dict() == {"columns": ["a"], "rows": [[1]], "totalRows": 10}

    def test_missing_total_defaults_to_row_count(self) -> None:
        preview = Preview.from_dict({"columns": ["a"], "rows": [[1], [2]]})
        assert preview is not None
        assert preview.total_rows == 2


class TestNode:
    """Node — wire shape per kind."""

    def test_query_round_trip(self) -> None:
        node = Node(
            id="sql-1", kind="query", position=Position(10, 20), label="Customers",
            text="SELECT 1", result=Result.of(["x"], [[1]]), error=None,
        )
        data = node.to_dict()
        assert data["type"] == "query"
        assert data["data"]["sql"] == "SELECT 1"
        assert data["data"]["results"] == {"columns": ["x"], "rows": [[1]]}
        assert Node.from_dict(data) == node

    def test_note_stores_content(self) -> None:
        data = Node(id="text-1", kind="note", text="# Hi").to_dict()
        assert data["data"]["content"] == "# Hi"
        assert "sql" not in data["data"]

    def test_chart_fields(self) -> None:
        node = Node(
            id="chart-1", kind="chart", chart_kind="pie",
            column_mapping=ColumnMapping("country", "total"), source_node_id="sql-1",
        )
        data = node.to_dict()["data"]
        assert data["chartType"] == "pie"
        assert data["columnMapping"] == {"xColumn": "country", "yColumn": "total"}
        assert data["sourceNodeId"] == "sql-1"
        assert Node.from_dict(node.to_dict()) == node

    def test_from_ui_shape(self) -> None:
        node = Node.from_dict({
            "id": "sql-3",
            "type": "sqlCell",
            "position": {"x": 1, "y": 2},
            "data": {"label": "Q", "sql": "SELECT 2"},
        })
        assert node.kind == "query"
        assert node.text == "SELECT 2"
        assert node.position == Position(1.0, 2.0)

    def test_missing_id_raises(self) -> None:
        with pytest.raises(CanvasError, match="missing an id"):
            Node.from_dict({"type": "query"})

    def test_unknown_chart_type_raises(self) -> None:
        with pytest.raises(CanvasError, match="chart type"):
            Node.from_dict({"id": "c", "type": "chart", "data": {"chartType": "radar"}})


class TestEdge:
    def test_default_id(self) -> None:
        edge = Edge.from_dict({"source": "sql-1", "target": "chart-1"})
        assert edge.id == "e-sql-1-chart-1"

    def test_handles_round_trip(self) -> None:
        edge = Edge(id="e1", source="a", target="b", source_handle="out", target_handle="in")
        assert Edge.from_dict(edge.to_dict()) == edge

    def test_requires_endpoints(self) -> None:
        with pytest.raises(CanvasError):
            Edge.from_dict({"id": "e1", "source": "a"})


class TestNonObjectPayloads:
    """from_dict rejects JSON that is not an object with CanvasError."""

    @pytest.mark.parametrize(
        ("parse", "payload"),
        [
            (Position.from_dict, [1, 2]),
            (Result.from_dict, [["a"], [[1]]]),
            (Preview.from_dict, "rows"),
            (ColumnMapping.from_dict, ["x", "y"]),
            (Node.from_dict, "sql-1"),
            (Edge.from_dict, ["a", "b"]),
        ],
    )
    def test_rejected(self, parse: object, payload: object) -> None:
        with pytest.raises(CanvasError, match="must be an object"):
            parse(payload)  # type: ignore[operator]

    def test_node_data_must_be_object(self) -> None:
        with pytest.raises(CanvasError, match="Node data"):
            Node.from_dict({"id": "sql-1", "type": "query", "data": ["SELECT 1"]})
