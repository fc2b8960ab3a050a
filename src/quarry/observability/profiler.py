"""Run profiler — measures per-stage latency of a query cell run.

Records the materialize / execute / propagate / broadcast stages of a run
and emits ``RunProfile`` events to the ``EventLog``.

Thread Safety:
    One profiler is created per run and used from that run's task only.

"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from quarry.observability.events import RunProfile, now_ns

if TYPE_CHECKING:
    from quarry.observability.log import EventLog

STAGES = ("materialize", "execute", "propagate", "broadcast")


@dataclass(slots=True)
class _Timer:
    """Accumulates timing for a named run stage."""

    name: str
    _start: float = 0.0
    elapsed_ms: float = 0.0

    def start(self) -> None:
        self._start = time.perf_counter()

    def stop(self) -> None:
        if self._start > 0:
            self.elapsed_ms += (time.perf_counter() - self._start) * 1000
            self._start = 0.0


class RunProfiler:
    """Records per-stage timing for a single cell run.

    Usage::

        profiler = RunProfiler(event_log, "sql-1")
        with profiler.stage("materialize"):
            ...
        with profiler.stage("execute"):
            ...
        profiler.finish()

    After ``finish()``, a ``RunProfile`` event is appended to the log and,
    when verbose, a one-line summary is printed to stderr.

    """

    __slots__ = ("_log", "_node_id", "_t0", "_timers", "_verbose")

    def __init__(self, log: EventLog, node_id: str, *, verbose: bool = False) -> None:
        self._log = log
        self._node_id = node_id
        self._verbose = verbose
        self._t0 = time.perf_counter()
        self._timers = {name: _Timer(name=name) for name in STAGES}

    def stage(self, name: str) -> _Stage:
        """Context manager timing one stage."""
        return _Stage(self._timers[name])

    def finish(self) -> RunProfile:
        """Emit the ``RunProfile`` event and return it."""
        profile = RunProfile(
            node_id=self._node_id,
            materialize_ms=self._timers["materialize"].elapsed_ms,
            execute_ms=self._timers["execute"].elapsed_ms,
            propagate_ms=self._timers["propagate"].elapsed_ms,
            broadcast_ms=self._timers["broadcast"].elapsed_ms,
            total_ms=(time.perf_counter() - self._t0) * 1000,
            timestamp_ns=now_ns(),
        )
        self._log.append(profile)
        if self._verbose:
            print(
                f"  [{profile.total_ms:.0f}ms] {profile.node_id} "
                f"(materialize: {profile.materialize_ms:.0f}ms, "
                f"execute: {profile.execute_ms:.0f}ms, "
                f"propagate: {profile.propagate_ms:.0f}ms, "
                f"broadcast: {profile.broadcast_ms:.0f}ms)",
                file=sys.stderr,
            )
        return profile


class _Stage:
    __slots__ = ("_timer",)

    def __init__(self, timer: _Timer) -> None:
        self._timer = timer

    def __enter__(self) -> None:
        self._timer.start()

    def __exit__(self, *exc: object) -> None:
        self._timer.stop()


def compute_aggregate_stats(log: EventLog, *, limit: int = 100) -> dict:
    """Compute latency percentiles from recent ``RunProfile`` events."""
    profiles = log.query(event_type=RunProfile, limit=limit)
    if not profiles:
        return {"count": 0}

    totals = sorted(p.total_ms for p in profiles)
    count = len(totals)

    def percentile(data: list[float], pct: float) -> float:
        idx = int(len(data) * pct / 100)
        return data[min(idx, len(data) - 1)]

    return {
        "count": count,
        "total_ms": {
            "p50": round(percentile(totals, 50), 1),
            "p95": round(percentile(totals, 95), 1),
            "p99": round(percentile(totals, 99), 1),
            "min": round(totals[0], 1),
            "max": round(totals[-1], 1),
        },
        "avg_by_stage_ms": {
            stage: round(sum(getattr(p, f"{stage}_ms") for p in profiles) / count, 1)
            for stage in STAGES
        },
    }
