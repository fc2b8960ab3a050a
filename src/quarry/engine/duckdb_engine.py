"""Analytical engine — DuckDB behind a narrow async interface.

The execution coordinator only needs three operations: ``init``, ``query``
and ``create_table_from_records``. ``AnalyticalEngine`` names that surface
so the coordinator can be given any implementation (tests use an in-memory
fake); ``DuckDBEngine`` is the real one.

DuckDB calls are blocking, so each runs in a worker thread via
``asyncio.to_thread`` on its own cursor. Cursors of one connection share
the same database, which lets several cells run at once without sharing a
cursor between threads.

Initialization is lazy and happens at most once: the first caller starts
an init task and overlapping callers await that same task.
"""

from __future__ import annotations

import asyncio
import datetime
import decimal
import json
import os
import re
import sys
import tempfile
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from quarry._errors import EngineError
from quarry.canvas.model import Result
from quarry.engine.samples import SAMPLE_STATEMENTS

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    import duckdb


class AnalyticalEngine(Protocol):
    """What the execution coordinator needs from a query engine."""

    async def init(self) -> None: ...

    async def query(self, sql: str) -> Result: ...

    async def create_table_from_records(
        self,
        name: str,
        records: Sequence[dict[str, Any]],
        columns: Sequence[str] | None = None,
    ) -> None: ...


def quote_identifier(name: str) -> str:
    """Double-quote an identifier for DuckDB."""
    return '"' + name.replace('"', '""') + '"'


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _json_default(value: Any) -> Any:
    """Encode scalar types DuckDB returns that JSON does not know."""
    if isinstance(value, decimal.Decimal):
        return float(value)
    if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


def table_name_for_file(path: Path) -> str:
    """Derive a table name from a file name (non-identifier chars -> ``_``)."""
    return re.sub(r"[^A-Za-z0-9_]", "_", path.stem)


_FILE_READERS: dict[str, str] = {
    ".csv": "read_csv_auto",
    ".parquet": "read_parquet",
    ".json": "read_json_auto",
}

# Files attached read-only as a whole database rather than read into a table.
_DATABASE_SUFFIXES = frozenset({".duckdb", ".db"})


class DuckDBEngine:
    """DuckDB-backed engine for query cells.

    Args:
        database: DuckDB database path, ``:memory:`` for an in-process database.
        sample_data: Create the sample customers/products/orders tables on init.
        query_timeout_seconds: Per-call time limit; 0 disables the limit.

    """

    def __init__(
        self,
        database: str = ":memory:",
        *,
        sample_data: bool = False,
        query_timeout_seconds: float = 30.0,
    ) -> None:
        self._database = database
        self._sample_data = sample_data
        self._timeout = query_timeout_seconds
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._init_task: asyncio.Task[None] | None = None
        # Attached catalogs, searched after the engine's own database.
        self._attached: list[str] = []
        self._search_path: str | None = None

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    async def init(self) -> None:
        """Open the database once; concurrent callers share one attempt."""
        if self._conn is not None:
            return
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(self._initialize())
        try:
            await asyncio.shield(self._init_task)
        except Exception:
            self._init_task = None
            raise

    async def _initialize(self) -> None:
        import duckdb

        def _open() -> duckdb.DuckDBPyConnection:
            conn = duckdb.connect(self._database)
            if self._sample_data:
                for statement in SAMPLE_STATEMENTS:
                    conn.execute(statement)
            return conn

        try:
            conn = await asyncio.to_thread(_open)
        except duckdb.Error as exc:
            raise EngineError(str(exc)) from exc
        self._conn = conn
        tables = "with sample data" if self._sample_data else "empty"
        print(f"  DuckDB ready ({self._database}, {tables})", file=sys.stderr)

    async def _call[T](self, fn: Callable[[duckdb.DuckDBPyConnection], T]) -> T:
        """Run ``fn`` against a fresh cursor in a worker thread."""
        import duckdb

        await self.init()
        assert self._conn is not None
        conn = self._conn
        search_path = self._search_path

        def _run() -> T:
            cursor = conn.cursor()
            try:
                # search_path is per connection and every cursor is a new one.
                if search_path is not None:
                    cursor.execute(f"SET search_path = {_quote_literal(search_path)}")
                return fn(cursor)
            finally:
                cursor.close()

        try:
            if self._timeout:
                return await asyncio.wait_for(asyncio.to_thread(_run), timeout=self._timeout)
            return await asyncio.to_thread(_run)
        except TimeoutError as exc:
            msg = f"Query timed out after {self._timeout:g}s"
            raise EngineError(msg) from exc
        except duckdb.Error as exc:
            raise EngineError(str(exc)) from exc

    async def query(self, sql: str) -> Result:
        """Execute one statement and return its columns and rows."""

        def _execute(cursor: duckdb.DuckDBPyConnection) -> Result:
            cursor.execute(sql)
            if cursor.description is None:
                return Result.of([], [])
            columns = [desc[0] for desc in cursor.description]
            return Result.of(columns, cursor.fetchall())

        return await self._call(_execute)

    async def create_table_from_records(
        self,
        name: str,
        records: Sequence[dict[str, Any]],
        columns: Sequence[str] | None = None,
    ) -> None:
        """Replace table ``name`` with the given records.

        Column order follows ``columns`` when given, otherwise the keys of the
        first record. With no records the table is created with VARCHAR
        columns so queries against it return an empty result.
        """
        column_names = list(columns) if columns is not None else list(records[0]) if records else []
        if not column_names:
            msg = f"Cannot create relation {name!r} without columns"
            raise EngineError(msg)
        table = quote_identifier(name)
        select_list = ", ".join(quote_identifier(c) for c in column_names)

        if not records:
            ddl = ", ".join(f"{quote_identifier(c)} VARCHAR" for c in column_names)

            def _create_empty(cursor: duckdb.DuckDBPyConnection) -> None:
                cursor.execute(f"CREATE OR REPLACE TABLE {table} ({ddl})")

            await self._call(_create_empty)
            return

        payload = json.dumps(list(records), default=_json_default)

        def _create(cursor: duckdb.DuckDBPyConnection) -> None:
            fd, path = tempfile.mkstemp(prefix=f"quarry-{uuid.uuid4().hex}-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                cursor.execute(
                    f"CREATE OR REPLACE TABLE {table} AS "
                    f"SELECT {select_list} FROM read_json_auto({_quote_literal(path)}, "
                    "format = 'array')"
                )
            finally:
                os.unlink(path)

        await self._call(_create)

    async def load_file(self, path: Path, table: str | None = None) -> list[str]:
        """Make a data file queryable. Returns the names of the new tables.

        CSV, Parquet and JSON files are read into one table named ``table``
        (default: derived from the file name). DuckDB database files are
        attached read-only; ``table`` then names the attached catalog.
        """
        suffix = path.suffix.lower()
        if suffix in _DATABASE_SUFFIXES:
            return await self.attach_database(path, table)
        reader = _FILE_READERS.get(suffix)
        if reader is None:
            msg = (
                f"Unsupported file type: {path.name} "
                "(expected .csv, .parquet, .json, .duckdb or .db)"
            )
            raise EngineError(msg)
        name = table or table_name_for_file(path)
        source = _quote_literal(str(path.resolve()))

        def _load(cursor: duckdb.DuckDBPyConnection) -> None:
            cursor.execute(
                f"CREATE OR REPLACE TABLE {quote_identifier(name)} AS "
                f"SELECT * FROM {reader}({source})"
            )

        await self._call(_load)
        print(f"  Loaded {path.name} as table: {name}", file=sys.stderr)
        return [name]

    async def attach_database(self, path: Path, alias: str | None = None) -> list[str]:
        """Attach a DuckDB database file read-only and return its table names.

        Its tables become queryable by bare name: the catalog is appended to
        the search path, after the engine's own database so new relations
        are still created there.
        """
        if not path.is_file():
            msg = f"Database file not found: {path}"
            raise EngineError(msg)
        catalog = alias or table_name_for_file(path)
        source = _quote_literal(str(path.resolve()))

        def _attach(cursor: duckdb.DuckDBPyConnection) -> tuple[str, list[str]]:
            cursor.execute(
                f"ATTACH IF NOT EXISTS {source} AS {quote_identifier(catalog)} (READ_ONLY)",
            )
            row = cursor.execute("SELECT current_database()").fetchone()
            assert row is not None
            tables = cursor.execute(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_catalog = ? AND table_schema = 'main' ORDER BY table_name",
                [catalog],
            ).fetchall()
            return str(row[0]), [str(t[0]) for t in tables]

        home, tables = await self._call(_attach)
        if catalog not in self._attached:
            self._attached.append(catalog)
        self._search_path = ",".join(
            f"{quote_identifier(name)}.main" for name in [home, *self._attached]
        )
        print(
            f"  Attached {path.name} as {catalog} (read-only): {', '.join(tables) or 'no tables'}",
            file=sys.stderr,
        )
        return tables

    async def list_tables(self) -> list[str]:
        """Names of user tables, sorted."""
        result = await self.query(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema NOT IN ('information_schema', 'pg_catalog') "
            "ORDER BY table_name"
        )
        return [str(row[0]) for row in result.rows]

    async def close(self) -> None:
        """Close the connection; the next call re-initializes."""
        conn, self._conn = self._conn, None
        self._init_task = None
        self._attached = []
        self._search_path = None
        if conn is not None:
            await asyncio.to_thread(conn.close)


# ---------------------------------------------------------------------------
# Process-wide engine
# ---------------------------------------------------------------------------

_engine_ref: DuckDBEngine | None = None


def get_engine(
    database: str = ":memory:",
    *,
    sample_data: bool = False,
    query_timeout_seconds: float = 30.0,
) -> DuckDBEngine:
    """Return the process-wide engine, creating it on first use.

    Arguments only apply to the first call; later calls return the same
    instance. Pass the result to the coordinator rather than importing it.
    """
    global _engine_ref  # noqa: PLW0603
    if _engine_ref is None:
        _engine_ref = DuckDBEngine(
            database,
            sample_data=sample_data,
            query_timeout_seconds=query_timeout_seconds,
        )
    return _engine_ref
