"""Quarry — a collaborative SQL notebook on an infinite canvas.

Query cells hold SQL that may reference other cells as ``{{sql-1}}``; each
referenced result is registered in DuckDB under a relation name before the
query runs. Results flow into chart cells wired downstream, and a
room-based WebSocket relay mirrors edits and result previews between
everyone editing the same canvas.

Quick start::

    import asyncio
    from quarry import CanvasState, DuckDBEngine, Notebook

    async def main():
        notebook = Notebook.create(CanvasState(), DuckDBEngine(sample_data=True))
        q1 = await notebook.add_node("query", node_id="sql-1",
                                     text="SELECT * FROM customers")
        await notebook.run(q1.id)
        q2 = await notebook.add_node("query", text="SELECT count(*) FROM {{sql-1}}")
        print((await notebook.run(q2.id)).result)

    asyncio.run(main())

Two commands::

    quarry relay .                # Start the collaboration relay
    quarry run canvas.json        # Run the query cells of a saved canvas

"""

__version__ = "0.1.0"
__all__ = [
    "CanvasState",
    "CollaborationSession",
    "DuckDBEngine",
    "ExecutionCoordinator",
    "Notebook",
    "QuarryConfig",
    "RelayServer",
    "__version__",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import quarry`` fast; DuckDB, Starlette and websockets load only
    when the part that needs them is used.
    """
    if name == "QuarryConfig":
        from quarry.config import QuarryConfig

        return QuarryConfig

    if name == "load_config":
        from quarry.config_loader import load_config

        return load_config

    if name == "CanvasState":
        from quarry.canvas.state import CanvasState

        return CanvasState

    if name == "DuckDBEngine":
        from quarry.engine.duckdb_engine import DuckDBEngine

        return DuckDBEngine

    if name == "ExecutionCoordinator":
        from quarry.engine.coordinator import ExecutionCoordinator

        return ExecutionCoordinator

    if name == "Notebook":
        from quarry.notebook import Notebook

        return Notebook

    if name == "CollaborationSession":
        from quarry.collab.session import CollaborationSession

        return CollaborationSession

    if name == "RelayServer":
        from quarry.collab.relay import RelayServer

        return RelayServer

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
