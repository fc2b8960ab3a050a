"""Quarry configuration.

QuarryConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class QuarryConfig:
    """Configuration for the relay server and notebook runtime.

    Attributes:
        root: Directory the configuration was loaded from. Always resolved to
              an absolute path on construction.
        host: Bind address for the relay server.
        port: Bind port for the relay server.
        default_room: Room used when a client connects without a path.
        relay_url: Base WebSocket URL sessions connect to (room is appended).
        debounce_ms: Inactivity window before local text/position edits are sent.
        preview_rows: Maximum rows carried by a broadcast preview.
        database: DuckDB database path (``:memory:`` for an in-process database).
        sample_data: Create the customers/products/orders sample tables on init.
        cascade: Re-run referencing query cells after a successful run.
        query_timeout_seconds: Upper bound for a single engine call (0 = none).
        queue_size: Per-connection outbound queue size in the relay.
        max_events: Ring buffer size of the observability event log.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 1234
    default_room: str = "default"
    relay_url: str = "ws://localhost:1234"
    debounce_ms: int = 300
    preview_rows: int = 5
    database: str = ":memory:"
    sample_data: bool = False
    cascade: bool = False
    query_timeout_seconds: float = 30.0
    queue_size: int = 256
    max_events: int = 10_000

    def __post_init__(self) -> None:
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())

    @property
    def debounce_seconds(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000

    @property
    def database_path(self) -> str:
        """Database location, relative paths resolved against root."""
        if self.database == ":memory:" or Path(self.database).is_absolute():
            return self.database
        return str(self.root / self.database)
