"""In-memory metrics for scorecard aggregation calls.

Provides rolling window latency and volume figures for the health endpoint.
Uses thread-safe collections for concurrent access.

Note: These metrics are ephemeral and reset on application restart. They
describe the service, never the scorecard data, and are not read back by
the engine.
"""

import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Optional

# Rolling window size (last N aggregation calls)
WINDOW_SIZE = 1000


@dataclass
class AggregationMetric:
    """Single aggregation call."""

    timestamp: float
    duration_ms: float
    operation: str
    techniques: int
    warnings: int


def _nearest_rank(ordered: list[float], fraction: float) -> float:
    return round(ordered[int(len(ordered) * fraction)], 2)


class MetricsCollector:
    """Thread-safe in-memory collector for aggregation calls."""

    def __init__(self, window_size: int = WINDOW_SIZE):
        self._calls: deque[AggregationMetric] = deque(maxlen=window_size)
        self._lock = Lock()
        self._total_calls = 0
        self._total_warnings = 0

    def record_aggregation(
        self,
        duration_ms: float,
        operation: str,
        techniques: int,
        warnings: int = 0,
    ) -> None:
        """Record a completed aggregation call.

        Args:
            duration_ms: Wall-clock duration in milliseconds
            operation: Which analysis ran (e.g. "metrics", "techniques")
            techniques: Number of technique records processed
            warnings: Reference data warnings raised by the call
        """
        metric = AggregationMetric(
            timestamp=time.time(),
            duration_ms=duration_ms,
            operation=operation,
            techniques=techniques,
            warnings=warnings,
        )
        with self._lock:
            self._calls.append(metric)
            self._total_calls += 1
            self._total_warnings += warnings

    def get_latency_stats(self) -> dict:
        """Average and percentile latency over the window, in milliseconds.

        Below 20 samples p95 is reported as the slowest call.
        """
        with self._lock:
            durations = sorted(c.duration_ms for c in self._calls)

        n = len(durations)
        if n == 0:
            return {"avg_ms": 0.0, "p50_ms": 0.0, "p95_ms": 0.0, "sample_size": 0}
        return {
            "avg_ms": round(sum(durations) / n, 2),
            "p50_ms": _nearest_rank(durations, 0.5),
            "p95_ms": _nearest_rank(durations, 0.95) if n >= 20 else durations[-1],
            "sample_size": n,
        }

    def get_call_counts(self) -> dict[str, int]:
        """Calls per analysis name within the rolling window."""
        with self._lock:
            counts: dict[str, int] = {}
            for call in self._calls:
                counts[call.operation] = counts.get(call.operation, 0) + 1
            return counts

    def get_all_stats(self) -> dict:
        """Get all metrics for the health endpoint."""
        latency = self.get_latency_stats()
        with self._lock:
            total_calls = self._total_calls
            total_warnings = self._total_warnings
            techniques = sum(c.techniques for c in self._calls)
        return {
            "latency": latency,
            "total_calls": total_calls,
            "total_warnings": total_warnings,
            "techniques_in_window": techniques,
            "calls_by_operation": self.get_call_counts(),
            "sample_size": latency["sample_size"],
        }


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        from scorecard.core.config import get_settings

        _metrics_collector = MetricsCollector(get_settings().metrics_window_size)
    return _metrics_collector


def record_aggregation(
    duration_ms: float, operation: str, techniques: int, warnings: int = 0
) -> None:
    """Convenience function to record an aggregation call."""
    get_metrics_collector().record_aggregation(
        duration_ms, operation, techniques, warnings
    )
