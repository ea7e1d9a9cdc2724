"""
Metrics collection for performance monitoring.

Tracks latencies, counters, and detection statistics
with efficient in-memory storage.
"""

import time
from collections import deque
from dataclasses import dataclass


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p95_us: int = 0
    p99_us: int = 0
    count: int = 0


@dataclass
class DetectionStats:
    """Round and opportunity statistics."""

    rounds_total: int = 0
    rounds_updated: int = 0
    rounds_unchanged: int = 0
    rounds_unavailable: int = 0
    rounds_abandoned: int = 0
    stale_pool_events: int = 0
    cycles_evaluated: int = 0
    cycles_skipped: int = 0
    computation_errors: int = 0
    opportunities_found: int = 0
    executions_successful: int = 0
    executions_reverted: int = 0
    total_net_profit: float = 0.0
    best_net_profit: float = 0.0
    best_profit_pct: float = 0.0

    @property
    def execution_success_rate(self) -> float:
        """Calculate execution success rate."""
        total = self.executions_successful + self.executions_reverted
        return self.executions_successful / total if total > 0 else 0.0


class MetricsCollector:
    """
    Collects and aggregates performance metrics.

    Features:
    - Rolling window latency tracking
    - Counter-based event tracking
    - Opportunity profit accumulation
    """

    def __init__(
        self,
        latency_window_size: int = 1000,
    ) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep for latency stats.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = {}
        self._stats = DetectionStats()
        self._start_time = time.time()

    def record_latency(self, name: str, latency_us: int) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "fetch", "optimize", "round").
            latency_us: Latency in microseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_us)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name.
            value: Amount to increment.
        """
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_round(
        self,
        status: str,
        evaluated: int = 0,
        skipped: int = 0,
        stale: int = 0,
        errors: int = 0,
    ) -> None:
        """
        Record the outcome of one detection round.

        Args:
            status: "updated", "block_unchanged", "unavailable" or "abandoned".
            evaluated: Cycles optimized.
            skipped: Cycles skipped for stale pools.
            stale: Pools that exhausted their retries.
            errors: Cycles that raised ComputationError.
        """
        self._stats.rounds_total += 1
        if status == "updated":
            self._stats.rounds_updated += 1
        elif status == "block_unchanged":
            self._stats.rounds_unchanged += 1
        elif status == "unavailable":
            self._stats.rounds_unavailable += 1
        elif status == "abandoned":
            self._stats.rounds_abandoned += 1

        self._stats.cycles_evaluated += evaluated
        self._stats.cycles_skipped += skipped
        self._stats.stale_pool_events += stale
        self._stats.computation_errors += errors

    def record_opportunity(self, net_profit: float, profit_pct: float) -> None:
        """
        Record an emitted opportunity.

        Args:
            net_profit: Net profit in base-asset units.
            profit_pct: Net profit as percentage of input.
        """
        self._stats.opportunities_found += 1
        self._stats.total_net_profit += net_profit

        if net_profit > self._stats.best_net_profit:
            self._stats.best_net_profit = net_profit
        if profit_pct > self._stats.best_profit_pct:
            self._stats.best_profit_pct = profit_pct

    def record_execution(self, executed: bool) -> None:
        """Record an execution gate outcome."""
        if executed:
            self._stats.executions_successful += 1
        else:
            self._stats.executions_reverted += 1

    def get_latency_stats(self, name: str) -> LatencyStats:
        """
        Get latency statistics for a metric.

        Args:
            name: Metric name.

        Returns:
            LatencyStats with aggregated values.
        """
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        sorted_samples = sorted(samples)
        n = len(sorted_samples)

        return LatencyStats(
            min_us=sorted_samples[0],
            max_us=sorted_samples[-1],
            avg_us=sum(sorted_samples) / n,
            p50_us=sorted_samples[n // 2],
            p95_us=sorted_samples[int(n * 0.95)],
            p99_us=sorted_samples[int(n * 0.99)] if n > 1 else sorted_samples[-1],
            count=n,
        )

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        """Get latency stats for all metrics."""
        return {name: self.get_latency_stats(name) for name in self._latencies}

    @property
    def stats(self) -> DetectionStats:
        """Get detection statistics."""
        return self._stats

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, object]:
        """
        Export all metrics as a dict.

        Returns:
            Dict representation of all metrics.
        """
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "latencies": {
                name: {
                    "min": stats.min_us,
                    "max": stats.max_us,
                    "avg": stats.avg_us,
                    "p50": stats.p50_us,
                    "p99": stats.p99_us,
                    "count": stats.count,
                }
                for name, stats in self.get_all_latency_stats().items()
            },
            "detection": {
                "rounds_total": self._stats.rounds_total,
                "rounds_updated": self._stats.rounds_updated,
                "rounds_unchanged": self._stats.rounds_unchanged,
                "rounds_unavailable": self._stats.rounds_unavailable,
                "rounds_abandoned": self._stats.rounds_abandoned,
                "stale_pool_events": self._stats.stale_pool_events,
                "cycles_evaluated": self._stats.cycles_evaluated,
                "cycles_skipped": self._stats.cycles_skipped,
                "computation_errors": self._stats.computation_errors,
                "opportunities_found": self._stats.opportunities_found,
                "total_net_profit": self._stats.total_net_profit,
                "best_net_profit": self._stats.best_net_profit,
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._stats = DetectionStats()
        self._start_time = time.time()
