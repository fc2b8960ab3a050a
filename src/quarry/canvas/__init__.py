"""Canvas layer — the node/edge model, state store and reference parsing."""

from quarry.canvas.charts import ChartSeries, chart_series
from quarry.canvas.model import ColumnMapping, Edge, Node, Position, Preview, Result
from quarry.canvas.references import ParsedQuery, parse_references, relation_name
from quarry.canvas.state import CanvasState

__all__ = [
    "CanvasState",
    "ChartSeries",
    "ColumnMapping",
    "Edge",
    "Node",
    "ParsedQuery",
    "Position",
    "Preview",
    "Result",
    "chart_series",
    "parse_references",
    "relation_name",
]
