"""Dependency materializer — registers referenced results as relations.

Before a query that references ``{{sql-1}}`` runs, the last result stored
on ``sql-1`` is registered in the engine as the relation ``sql_1``. Each
reference produces one tagged outcome:

    ready    the relation was (re)created from the referenced result
    skipped  nothing to register: unknown node, or no result yet
    failed   the result was malformed or the engine refused it

A skipped reference is not an error here. The query itself then fails with
the engine's unknown-relation message, which is what the user sees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from quarry._errors import CanvasError, EngineError
from quarry.canvas.references import relation_name

if TYPE_CHECKING:
    from collections.abc import Iterable

    from quarry._types import NodeId
    from quarry.canvas.state import CanvasState
    from quarry.engine.duckdb_engine import AnalyticalEngine
    from quarry.observability.collector import StackCollector


@dataclass(frozen=True, slots=True)
class MaterializeOutcome:
    """What happened to one referenced cell.

    Attributes:
        status: ``ready``, ``skipped`` or ``failed``.
        node_id: The referenced cell.
        relation: Relation name the result is (or would be) registered under.
        rows: Rows registered (0 unless ready).
        reason: Why the reference was skipped or failed.

    """

    status: Literal["ready", "skipped", "failed"]
    node_id: NodeId
    relation: str
    rows: int = 0
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


async def materialize(
    engine: AnalyticalEngine,
    canvas: CanvasState,
    node_id: NodeId,
    collector: StackCollector | None = None,
) -> MaterializeOutcome:
    """Register ``node_id``'s stored result under its relation name."""
    relation = relation_name(node_id)
    node = canvas.find(node_id)

    if node is None:
        outcome = MaterializeOutcome("skipped", node_id, relation, reason="unknown node")
    elif node.kind == "note":
        outcome = MaterializeOutcome("skipped", node_id, relation, reason="note cells hold no data")
    elif node.result is None:
        outcome = MaterializeOutcome("skipped", node_id, relation, reason="no result yet")
    else:
        result = node.result
        try:
            records = result.records()
            await engine.create_table_from_records(relation, records, result.unique_columns)
        except (CanvasError, EngineError) as exc:
            outcome = MaterializeOutcome(
                "failed", node_id, relation,
                reason=f"Could not materialize {node_id!r}: {exc}",
            )
        else:
            outcome = MaterializeOutcome("ready", node_id, relation, rows=result.row_count)

    if collector is not None:
        collector.record_materialization(
            node_id, relation, status=outcome.status, rows=outcome.rows,
        )
    return outcome


async def materialize_all(
    engine: AnalyticalEngine,
    canvas: CanvasState,
    node_ids: Iterable[NodeId],
    collector: StackCollector | None = None,
) -> tuple[MaterializeOutcome, ...]:
    """Materialize references one after another, in the given order.

    Stops at the first failure; the outcomes gathered so far (including the
    failure) are returned.
    """
    outcomes: list[MaterializeOutcome] = []
    for node_id in node_ids:
        outcome = await materialize(engine, canvas, node_id, collector)
        outcomes.append(outcome)
        if not outcome.ok:
            break
    return tuple(outcomes)
