"""Shared type definitions for quarry."""

from collections.abc import Callable
from typing import Any, Literal

# Canvas node identifier (e.g. "sql-1")
type NodeId = str

# Variant tag of a canvas node
type NodeKind = Literal["query", "note", "chart"]

# Relay room name
type RoomName = str

# Relay connection identifier
type ClientID = str

# Message kinds that clients may send through the relay
type MessageKind = Literal["position", "edge", "preview", "node", "text"]

# A single cell value in a query result
type Scalar = Any

# Callback invoked with a decoded relay message
type MessageHandler = Callable[[dict[str, Any]], None]
