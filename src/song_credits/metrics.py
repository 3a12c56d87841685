"""In-process counters for lookups and provider errors."""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Iterable
from typing import Any


class LookupMetrics:
    """Named counters, latency totals and per-source tallies.

    Thread-safe so one instance can be shared by concurrent lookups.
    """

    COUNTERS = (
        "total_requests",
        "cache_hits",
        "cache_misses",
        "successful_lookups",
        "failed_lookups",
    )

    def __init__(self) -> None:
        self._counters: Counter[str] = Counter({name: 0 for name in self.COUNTERS})
        self._source_counts: Counter[str] = Counter()
        self._api_error_counts: Counter[str] = Counter()
        self._total_latency_ms = 0.0
        self._lock = threading.Lock()

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def record_latency(self, latency_ms: float) -> None:
        with self._lock:
            self._total_latency_ms += max(0.0, latency_ms)

    def record_sources(self, sources: Iterable[str]) -> None:
        with self._lock:
            for source in sources:
                label = source.strip()
                if label:
                    self._source_counts[label] += 1

    def record_api_error(self, source: str, kind: str) -> None:
        key = f"{source.strip().lower()}:{kind.strip().lower()}"
        with self._lock:
            self._api_error_counts[key] += 1

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> dict[str, Any]:
        """Return a plain-dict copy of every counter."""
        with self._lock:
            total = self._counters["total_requests"]
            return {
                **dict(self._counters),
                "total_latency_ms": round(self._total_latency_ms, 2),
                "average_latency_ms": round(self._total_latency_ms / total, 2) if total else 0.0,
                "source_counts": dict(self._source_counts),
                "api_error_counts": dict(self._api_error_counts),
            }
