"""Per-stage timing for the drawing pipeline.

Usage:
    profiler = PipelineProfiler()

    with profiler.stage("filtering"):
        filtered = bank.advance(t, raw)

    print(profiler.summary())
"""

from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class StageStats:
    """Timing statistics for one stage over the recent window."""
    name: str
    avg_ms: float
    max_ms: float
    p95_ms: float
    call_count: int


class PipelineProfiler:
    """Records the duration of named stages over a sliding window."""

    STAGES = ("classification", "filtering", "state_machine", "dispatch")

    def __init__(self, window_size: int = 240, enabled: bool = True):
        self._window_size = window_size
        self._timings: dict[str, deque[float]] = {}
        self._counts: dict[str, int] = {}
        self.enabled = enabled

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time the enclosed block under `name`."""
        if not self.enabled:
            yield
            return

        t0 = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            self._timings.setdefault(name, deque(maxlen=self._window_size)).append(elapsed_ms)
            self._counts[name] = self._counts.get(name, 0) + 1

    def get_stage_stats(self, name: str) -> Optional[StageStats]:
        timings = self._timings.get(name)
        if not timings:
            return None

        ordered = sorted(timings)
        n = len(ordered)
        return StageStats(
            name=name,
            avg_ms=sum(ordered) / n,
            max_ms=ordered[-1],
            p95_ms=ordered[min(n - 1, int(n * 0.95))],
            call_count=self._counts[name],
        )

    def summary(self) -> dict[str, dict]:
        """Stats for every stage that has run, known stages first."""
        names = [s for s in self.STAGES if s in self._timings]
        names += [s for s in self._timings if s not in self.STAGES]
        result = {}
        for name in names:
            stats = self.get_stage_stats(name)
            if stats is None:
                continue
            result[name] = {
                "avg_ms": round(stats.avg_ms, 3),
                "max_ms": round(stats.max_ms, 3),
                "p95_ms": round(stats.p95_ms, 3),
                "calls": stats.call_count,
            }
        return result

    def reset(self):
        self._timings.clear()
        self._counts.clear()
