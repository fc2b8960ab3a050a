"""Chart series extraction from a bound query result.

Charts take their axes from the column mapping chosen when the query was
connected. Without a usable mapping the first column labels the x axis and
the second column (or the first, for single-column results) gives values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from quarry.canvas.model import ColumnMapping, Result


@dataclass(frozen=True, slots=True)
class ChartSeries:
    """Plot-ready data for a chart cell.

    Attributes:
        labels: Category labels (x axis), stringified.
        values: Numeric values (y axis); non-numeric cells become None.
        value: First y value, used by ``bigNumber`` charts.
        title: Name of the value column.

    """

    labels: tuple[str, ...]
    values: tuple[float | None, ...]
    value: Any
    title: str


def _as_number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def chart_series(result: Result | None, mapping: ColumnMapping | None = None) -> ChartSeries | None:
    """Build the series for a chart, or None when there is nothing to plot."""
    if result is None or not result.rows or not result.columns:
        return None

    x_index, y_index = 0, 1 if len(result.columns) > 1 else 0
    if mapping is not None and {mapping.x_column, mapping.y_column} <= set(result.columns):
        x_index = result.columns.index(mapping.x_column)
        y_index = result.columns.index(mapping.y_column)

    return ChartSeries(
        labels=tuple(str(row[x_index]) for row in result.rows),
        values=tuple(_as_number(row[y_index]) for row in result.rows),
        value=result.rows[0][y_index],
        title=result.columns[y_index],
    )
