"""Startup banner for the relay.

Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quarry.config import QuarryConfig


# ---------------------------------------------------------------------------
# ANSI helpers: respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""


def format_banner(config: QuarryConfig, *, warnings: list[str] | None = None) -> str:
    """Render the relay banner as text."""
    from quarry import __version__

    url = f"ws://{config.host}:{config.port}"
    lines: list[str] = [
        "",
        f"  {_BOLD}Quarry{_RESET} {_DIM}v{__version__}{_RESET}  {_GREEN}[relay]{_RESET}",
        f"  {_DIM}{'-' * 43}{_RESET}",
        f"  {_DIM}├─{_RESET} rooms: {_DIM}{url}/<room>{_RESET} "
        f"(default {_DIM}{config.default_room}{_RESET})",
        f"  {_DIM}├─{_RESET} queue: {config.queue_size} frames per connection",
        f"  {_DIM}└─{_RESET} stats: {_DIM}http://{config.host}:{config.port}/_quarry/stats{_RESET}",
        "",
        f"  {_BOLD}{_CYAN}{url}{_RESET}",
    ]
    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)
    lines.append("")
    return "\n".join(lines)


def print_banner(config: QuarryConfig, *, warnings: list[str] | None = None) -> None:
    """Print the relay startup banner to stderr."""
    print(format_banner(config, warnings=warnings), file=sys.stderr)
