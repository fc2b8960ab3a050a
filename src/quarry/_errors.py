"""Quarry error hierarchy.

All quarry-specific errors inherit from QuarryError for easy catching.
"""


class QuarryError(Exception):
    """Base error for all quarry operations."""


class ConfigError(QuarryError):
    """Invalid or missing configuration."""


class CanvasError(QuarryError):
    """Invalid canvas operation (unknown node, bad shape, wrong node kind)."""


class ColumnMappingRequired(CanvasError):
    """A query -> chart connection needs a column mapping before it can be made.

    Attributes:
        source: Id of the query node.
        target: Id of the chart node.
        columns: Columns of the source result the mapping can choose from.

    """

    def __init__(self, source: str, target: str, columns: list[str]) -> None:
        self.source = source
        self.target = target
        self.columns = list(columns)
        super().__init__(
            f"Connecting {source!r} to chart {target!r} needs a column mapping "
            f"(available columns: {', '.join(self.columns)})"
        )


class EngineError(QuarryError):
    """The analytical engine rejected a statement.

    The message is the engine's own error text so it can be shown on the node.
    """


class RelayError(QuarryError):
    """A relay frame could not be decoded."""
