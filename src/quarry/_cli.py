"""Quarry CLI — quarry relay / quarry run.

Entry point for the ``quarry`` command-line interface.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quarry.canvas.model import Result
    from quarry.config import QuarryConfig
    from quarry.engine.coordinator import RunOutcome


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the quarry CLI."""
    parser = argparse.ArgumentParser(
        prog="quarry",
        description="Collaborative SQL notebook: relay server and canvas runner.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # quarry relay
    relay_parser = subparsers.add_parser(
        "relay",
        help="Start the collaboration relay",
    )
    relay_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    relay_parser.add_argument("--host", default=None, help="Bind address")
    relay_parser.add_argument("--port", type=int, default=None, help="Bind port")
    relay_parser.add_argument("--room", default=None, help="Room for clients connecting to /")

    # quarry run
    run_parser = subparsers.add_parser(
        "run",
        help="Run the query cells of a saved canvas",
    )
    run_parser.add_argument("canvas", help="Canvas JSON file")
    run_parser.add_argument(
        "nodes", nargs="*", help="Query cells to run (default: all, in canvas order)",
    )
    run_parser.add_argument("--root", default=".", help="Project root directory")
    run_parser.add_argument("--database", default=None, help="DuckDB database path")
    run_parser.add_argument(
        "--sample-data", action="store_true", default=None, help="Create the sample tables",
    )
    run_parser.add_argument(
        "--cascade", action="store_true", default=None,
        help="Re-run cells that reference a cell after it succeeds",
    )
    run_parser.add_argument(
        "--load", action="append", default=[], metavar="FILE",
        help="Load a CSV, Parquet or JSON file as a table, or attach a .duckdb database (repeatable)",
    )
    run_parser.add_argument(
        "--save", default=None, metavar="FILE", help="Write the canvas with results to FILE",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from quarry import __version__

    return __version__


def format_result(result: Result, limit: int = 20) -> str:
    """Render a result as a plain-text table (at most ``limit`` rows)."""
    header = [str(c) for c in result.columns]
    body = [["NULL" if v is None else str(v) for v in row] for row in result.rows[:limit]]
    widths = [len(h) for h in header]
    for row in body:
        for i, cell in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(cell))
    lines = [
        "  ".join(h.ljust(w) for h, w in zip(header, widths, strict=True)),
        "  ".join("-" * w for w in widths),
    ]
    lines.extend("  ".join(c.ljust(w) for c, w in zip(row, widths, strict=False)) for row in body)
    if result.row_count > limit:
        lines.append(f"... {result.row_count - limit} more rows")
    return "\n".join(lines)


def _print_outcome(outcome: RunOutcome) -> None:
    if outcome.result is not None:
        rows = outcome.result.row_count
        print(f"== {outcome.node_id} ({rows} row{'s' if rows != 1 else ''})")
        print(format_result(outcome.result))
    else:
        print(f"== {outcome.node_id} failed")
        print(outcome.error or "Query failed")
    print()
    for cascaded in outcome.cascaded:
        _print_outcome(cascaded)


def _count_failures(outcome: RunOutcome) -> int:
    own = 0 if outcome.succeeded else 1
    return own + sum(_count_failures(cascaded) for cascaded in outcome.cascaded)


async def _run_canvas(
    config: QuarryConfig,
    canvas_path: Path,
    node_ids: list[str],
    load: list[str],
    save: str | None,
) -> int:
    from quarry.canvas.state import CanvasState
    from quarry.engine.coordinator import ExecutionCoordinator
    from quarry.engine.duckdb_engine import DuckDBEngine
    from quarry.observability import EventLog, StackCollector

    canvas = CanvasState.load(canvas_path)
    engine = DuckDBEngine(
        config.database_path,
        sample_data=config.sample_data,
        query_timeout_seconds=config.query_timeout_seconds,
    )
    collector = StackCollector(EventLog(max_events=config.max_events))
    coordinator = ExecutionCoordinator(
        canvas,
        engine,
        collector=collector,
        cascade=config.cascade,
        preview_rows=config.preview_rows,
    )

    try:
        for path in load:
            await engine.load_file(Path(path))
        targets = node_ids or [node.id for node in canvas.nodes if node.is_query]
        failures = 0
        for node_id in targets:
            outcome = await coordinator.run(node_id)
            _print_outcome(outcome)
            failures += _count_failures(outcome)
    finally:
        await engine.close()

    if save is not None:
        import json

        Path(save).write_text(json.dumps(canvas.to_dict(), indent=2, default=str), encoding="utf-8")
        print(f"  Saved canvas to {save}", file=sys.stderr)
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from quarry._errors import QuarryError
    from quarry.config_loader import load_config

    if args.command == "relay":
        from quarry.collab.relay import serve

        config = load_config(
            Path(args.root), host=args.host, port=args.port, default_room=args.room,
        )
        serve(config)
    elif args.command == "run":
        config = load_config(
            Path(args.root),
            database=args.database,
            sample_data=args.sample_data,
            cascade=args.cascade,
        )
        try:
            code = asyncio.run(
                _run_canvas(config, Path(args.canvas), args.nodes, args.load, args.save),
            )
        except QuarryError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        sys.exit(code)


if __name__ == "__main__":
    main()
