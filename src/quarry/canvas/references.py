"""Reference parser — finds ``{{cell-id}}`` markers in query text.

A query cell can read another cell's last result by naming it inside a
double-brace marker::

    SELECT * FROM {{sql-1}} WHERE answer = 42

The marker is replaced by a relation name derived from the id (hyphens
become underscores, since relation names cannot contain them) and the
referenced ids are returned in first-occurrence order so the caller can
materialize each one before running the rewritten query.

Parsing never fails: text that does not match the marker pattern is left
as-is and contributes no reference.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quarry._types import NodeId

MARKER_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_-]+)\s*\}\}")


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    """Query text with its dependency markers resolved.

    Attributes:
        references: Referenced node ids, first occurrence first, no duplicates.
        sql: The text with every marker replaced by its relation name.

    """

    references: tuple[NodeId, ...]
    sql: str


def relation_name(node_id: NodeId) -> str:
    """Relation name a node's result is materialized under."""
    return node_id.replace("-", "_")


def parse_references(text: str) -> ParsedQuery:
    """Extract referenced ids and rewrite markers to relation names."""
    seen: dict[NodeId, None] = {}

    def _substitute(match: re.Match[str]) -> str:
        node_id = match.group(1)
        seen.setdefault(node_id, None)
        return relation_name(node_id)

    sql = MARKER_PATTERN.sub(_substitute, text)
    return ParsedQuery(references=tuple(seen), sql=sql)
