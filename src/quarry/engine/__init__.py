"""Execution engine — materializes cell references and runs query cells.

Connects the canvas to the analytical engine: referenced results become
relations, the rewritten query runs, and results flow to charts and
collaborators.
"""

from quarry.engine.coordinator import ExecutionCoordinator, RunOutcome
from quarry.engine.duckdb_engine import AnalyticalEngine, DuckDBEngine, get_engine
from quarry.engine.materializer import MaterializeOutcome, materialize, materialize_all

__all__ = [
    "AnalyticalEngine",
    "DuckDBEngine",
    "ExecutionCoordinator",
    "MaterializeOutcome",
    "RunOutcome",
    "get_engine",
    "materialize",
    "materialize_all",
]
