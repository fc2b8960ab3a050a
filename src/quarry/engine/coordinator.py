"""Execution coordinator — runs one query cell end to end.

Orchestrates a single run request:
    1. Mark the cell as executing (previous result stays visible)
    2. Parse ``{{id}}`` markers and rewrite them to relation names
    3. Materialize every referenced cell's stored result, in marker order
    4. Submit the rewritten query to the engine
    5. Store the result (or error) on the cell
    6. Copy the result onto every chart cell wired downstream
    7. Hand a bounded preview to the broadcast callback, if one is set

Steps happen strictly in that order within a run. Runs on different cells
are independent and may interleave; a cell that is being materialized
is read as it stands at that moment.

A run is never cancelled. When a cell is re-run before an earlier run
finished, the earlier completion is discarded once it arrives: each run
takes a per-cell sequence number and only the latest one may write.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field, replace
from graphlib import CycleError, TopologicalSorter
from typing import TYPE_CHECKING

from quarry._errors import EngineError
from quarry.canvas.model import DEFAULT_PREVIEW_ROWS
from quarry.canvas.references import parse_references
from quarry.engine.materializer import materialize_all

if TYPE_CHECKING:
    from quarry._types import NodeId
    from quarry.canvas.model import Preview, Result
    from quarry.canvas.state import CanvasState
    from quarry.engine.duckdb_engine import AnalyticalEngine
    from quarry.engine.materializer import MaterializeOutcome
    from quarry.observability.collector import StackCollector
    from quarry.observability.profiler import RunProfiler

# Receives (node_id, preview) after a successful run.
type BroadcastFn = Callable[[str, Preview], Awaitable[None] | None]


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Result of one ``ExecutionCoordinator.run`` call.

    Attributes:
        node_id: The cell that ran.
        sequence: Per-cell run number.
        result: The new result on success.
        error: Error text on failure.
        stale: True when a newer run of the same cell started first; nothing
            was written.
        materialized: Outcomes of the reference materialization step.
        charts_updated: Chart cells that received the result.
        cascaded: Outcomes of dependent cells re-run afterwards.

    """

    node_id: NodeId
    sequence: int
    result: Result | None = None
    error: str | None = None
    stale: bool = False
    materialized: tuple[MaterializeOutcome, ...] = ()
    charts_updated: tuple[NodeId, ...] = ()
    cascaded: tuple[RunOutcome, ...] = field(default=())

    @property
    def succeeded(self) -> bool:
        return self.result is not None and not self.stale


class ExecutionCoordinator:
    """Runs query cells against an analytical engine and updates the canvas.

    Args:
        canvas: The canvas state store the cells live in.
        engine: Query engine (``init``/``query``/``create_table_from_records``).
        broadcast: Optional callback receiving ``(node_id, preview)`` after each
            successful run. Typically ``CollaborationSession.sync_preview``.
        collector: Optional observability collector.
        cascade: Re-run query cells that reference a cell after it succeeds.
        preview_rows: Maximum rows in a broadcast preview.
        verbose: Print a timing line per run to stderr.

    """

    def __init__(
        self,
        canvas: CanvasState,
        engine: AnalyticalEngine,
        *,
        broadcast: BroadcastFn | None = None,
        collector: StackCollector | None = None,
        cascade: bool = False,
        preview_rows: int = DEFAULT_PREVIEW_ROWS,
        verbose: bool = False,
    ) -> None:
        self._canvas = canvas
        self._engine = engine
        self._collector = collector
        self._cascade = cascade
        self._preview_rows = preview_rows
        self._verbose = verbose
        self.broadcast = broadcast
        # Latest sequence number started per cell.
        self._sequence: dict[NodeId, int] = {}

    @property
    def canvas(self) -> CanvasState:
        return self._canvas

    def latest_sequence(self, node_id: NodeId) -> int:
        """Sequence number of the most recent run started for a cell (0 = never)."""
        return self._sequence.get(node_id, 0)

    async def run(self, node_id: NodeId, text: str | None = None) -> RunOutcome:
        """Run a query cell.

        Args:
            node_id: Id of a query cell.
            text: New query text to store before running (the editor contents).

        Raises:
            CanvasError: If the id is unknown or the cell is not a query.

        """
        outcome = await self._run_one(node_id, text)
        if self._cascade and outcome.succeeded:
            cascaded = await self._run_dependents(node_id)
            if cascaded:
                outcome = _with_cascade(outcome, cascaded)
        return outcome

    async def _run_one(self, node_id: NodeId, text: str | None) -> RunOutcome:
        canvas = self._canvas
        node = canvas.begin_run(node_id)
        if text is not None:
            node.text = text

        sequence = self._sequence.get(node_id, 0) + 1
        self._sequence[node_id] = sequence

        profiler = None
        if self._collector is not None:
            from quarry.observability.profiler import RunProfiler

            profiler = RunProfiler(self._collector.log, node_id, verbose=self._verbose)
        t0 = time.perf_counter()

        parsed = parse_references(node.text)
        result: Result | None = None
        error: str | None = None

        with _stage(profiler, "materialize"):
            materialized = await materialize_all(
                self._engine, canvas, parsed.references, self._collector,
            )
        failed = next((m for m in materialized if not m.ok), None)

        if failed is not None:
            error = failed.reason
        else:
            with _stage(profiler, "execute"):
                try:
                    result = await self._engine.query(parsed.sql)
                except EngineError as exc:
                    error = str(exc)

        duration_ms = (time.perf_counter() - t0) * 1000

        if sequence != self._sequence.get(node_id):
            self._record(node_id, "stale", result, error, duration_ms)
            return RunOutcome(
                node_id=node_id, sequence=sequence, stale=True, materialized=materialized,
            )

        if canvas.find(node_id) is None:
            # Removed while running; nothing left to update.
            self._record(node_id, "stale", result, error, duration_ms)
            return RunOutcome(
                node_id=node_id, sequence=sequence, stale=True, materialized=materialized,
            )

        if result is None:
            canvas.fail_run(node_id, error or "Query failed")
            self._record(node_id, "failed", None, error, duration_ms)
            print(f"  {node_id} failed: {error}", file=sys.stderr)
            if profiler is not None:
                profiler.finish()
            return RunOutcome(
                node_id=node_id, sequence=sequence, error=error, materialized=materialized,
            )

        with _stage(profiler, "propagate"):
            canvas.complete_run(node_id, result)
            charts = canvas.downstream_charts(node_id)
            for chart in charts:
                canvas.bind_chart(chart.id, result)

        with _stage(profiler, "broadcast"):
            await self._broadcast(node_id, result)

        self._record(node_id, "succeeded", result, None, duration_ms)
        if profiler is not None:
            profiler.finish()
        return RunOutcome(
            node_id=node_id,
            sequence=sequence,
            result=result,
            materialized=materialized,
            charts_updated=tuple(chart.id for chart in charts),
        )

    async def _broadcast(self, node_id: NodeId, result: Result) -> None:
        if self.broadcast is None:
            return
        preview = result.preview(self._preview_rows)
        pending = self.broadcast(node_id, preview)
        if pending is not None:
            await pending
        if self._collector is not None:
            self._collector.record_preview(
                node_id, rows=len(preview.rows), total_rows=preview.total_rows,
            )

    async def _run_dependents(self, node_id: NodeId) -> tuple[RunOutcome, ...]:
        """Re-run every query cell that (transitively) references ``node_id``."""
        order = self.dependent_order(node_id)
        if order is None:
            return ()
        outcomes: list[RunOutcome] = []
        for dependent in order:
            outcome = await self._run_one(dependent, None)
            outcomes.append(outcome)
            if not outcome.succeeded:
                break
        return tuple(outcomes)

    def dependent_order(self, node_id: NodeId) -> tuple[NodeId, ...] | None:
        """Cells referencing ``node_id`` (transitively) in dependency order.

        Returns None when the references among them form a cycle; the cycle
        is recorded and reported on stderr.
        """
        canvas = self._canvas
        reachable: set[NodeId] = set()
        frontier = [node_id]
        while frontier:
            current = frontier.pop()
            for dependent in canvas.dependents_of(current):
                if dependent not in reachable:
                    reachable.add(dependent)
                    frontier.append(dependent)
        reachable.discard(node_id)

        sorter: TopologicalSorter[NodeId] = TopologicalSorter()
        for dependent in reachable:
            sorter.add(dependent, *(r for r in canvas.references_of(dependent) if r in reachable))
        try:
            return tuple(sorter.static_order())
        except CycleError as exc:
            cycle = tuple(exc.args[1]) if len(exc.args) > 1 else ()
            if self._collector is not None:
                self._collector.record_cascade_skipped(node_id, cycle)
            print(
                f"  Not re-running dependents of {node_id}: reference cycle "
                f"{' -> '.join(cycle)}",
                file=sys.stderr,
            )
            return None

    def _record(
        self,
        node_id: NodeId,
        outcome: str,
        result: Result | None,
        error: str | None,
        duration_ms: float,
    ) -> None:
        if self._collector is None:
            return
        self._collector.record_query(
            node_id,
            outcome=outcome,
            rows=result.row_count if result is not None else 0,
            error=error,
            duration_ms=duration_ms,
        )


def _with_cascade(outcome: RunOutcome, cascaded: tuple[RunOutcome, ...]) -> RunOutcome:
    return replace(outcome, cascaded=cascaded)


def _stage(profiler: RunProfiler | None, name: str) -> AbstractContextManager[None]:
    if profiler is None:
        return nullcontext()
    return profiler.stage(name)
