"""
Status reporting for the monitoring loop.

Emits a one-line status periodically through logging and prints a
session summary at shutdown.
"""

import logging
import sys
from datetime import timedelta
from typing import TextIO

from cyclearb.state.liquidity import LiquidityStats
from cyclearb.telemetry.metrics import MetricsCollector
from cyclearb.utils.time import format_duration_us


logger = logging.getLogger(__name__)


class StatusReporter:
    """
    Text-based reporter for the detection loop.

    Outputs periodic status updates as log messages.
    """

    def __init__(
        self,
        metrics: MetricsCollector,
        interval_rounds: int = 30,
        output: TextIO | None = None,
    ) -> None:
        """
        Initialize status reporter.

        Args:
            metrics: Metrics collector instance.
            interval_rounds: Rounds between status lines.
            output: Stream for the final summary (default: stdout).
        """
        self._metrics = metrics
        self._interval = interval_rounds
        self._output = output or sys.stdout
        self._cycle_count = 0
        self._pool_count = 0
        self._liquidity: LiquidityStats | None = None

    def set_state(self, cycle_count: int = 0, pool_count: int = 0) -> None:
        """Update display state."""
        self._cycle_count = cycle_count
        self._pool_count = pool_count

    def set_liquidity(self, stats: LiquidityStats) -> None:
        """Update the latest liquidity distribution."""
        self._liquidity = stats

    @staticmethod
    def _format_uptime(seconds: float) -> str:
        """Format uptime as HH:MM:SS."""
        td = timedelta(seconds=int(seconds))
        hours, remainder = divmod(int(td.total_seconds()), 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    def get_status_line(self) -> str:
        """Get a single-line status update."""
        stats = self._metrics.stats
        round_latency = self._metrics.get_latency_stats("round")
        fetch_latency = self._metrics.get_latency_stats("fetch")

        line = (
            f"Rounds: {stats.rounds_updated}/{stats.rounds_total} "
            f"(skip {stats.rounds_unchanged}, n/a {stats.rounds_unavailable}, "
            f"abandoned {stats.rounds_abandoned}) | "
            f"Cycles: {stats.cycles_evaluated} eval/{stats.cycles_skipped} skipped | "
            f"Opp: {stats.opportunities_found} (best {stats.best_net_profit:+.6f}) | "
            f"Fetch: {format_duration_us(int(fetch_latency.avg_us))} | "
            f"Round: {format_duration_us(int(round_latency.avg_us))}"
        )
        if self._liquidity is not None:
            line += f" | Liquid: {self._liquidity.liquid_pools}/{self._liquidity.total_pools}"
        return line

    def maybe_report(self) -> bool:
        """
        Log a status line if the round count hit the interval.

        Returns:
            True if a line was logged.
        """
        rounds = self._metrics.stats.rounds_total
        if rounds == 0 or rounds % self._interval != 0:
            return False
        logger.info(self.get_status_line())
        return True

    def print_summary(self) -> None:
        """Print a final summary."""
        stats = self._metrics.stats
        uptime = self._format_uptime(self._metrics.uptime_seconds)
        out = self._output

        print("\n" + "=" * 50, file=out)
        print("  SESSION SUMMARY", file=out)
        print("=" * 50, file=out)
        print(f"  Uptime: {uptime}", file=out)
        print(f"  Pools monitored:  {self._pool_count}", file=out)
        print(f"  Cycles monitored: {self._cycle_count}", file=out)
        print(file=out)
        print("  ROUNDS:", file=out)
        print(f"    Total:       {stats.rounds_total:,}", file=out)
        print(f"    Updated:     {stats.rounds_updated:,}", file=out)
        print(f"    Unchanged:   {stats.rounds_unchanged:,}", file=out)
        print(f"    Unavailable: {stats.rounds_unavailable:,}", file=out)
        print(f"    Abandoned:   {stats.rounds_abandoned:,}", file=out)
        print(file=out)
        print("  OPPORTUNITIES:", file=out)
        print(f"    Found:       {stats.opportunities_found:,}", file=out)
        print(f"    Best net:    {stats.best_net_profit:+.6f}", file=out)
        print(f"    Best pct:    {stats.best_profit_pct:.4f}%", file=out)
        print(f"    Total net:   {stats.total_net_profit:+.6f}", file=out)
        if stats.executions_successful or stats.executions_reverted:
            print(file=out)
            print("  EXECUTION:", file=out)
            print(f"    Executed:     {stats.executions_successful:,}", file=out)
            print(f"    Reverted:     {stats.executions_reverted:,}", file=out)
            print(f"    Success rate: {stats.execution_success_rate:.1%}", file=out)
        if self._liquidity is not None and self._liquidity.total_pools:
            self._print_liquidity(self._liquidity)
        print("=" * 50, file=out)

    def _print_liquidity(self, liquidity: LiquidityStats) -> None:
        out = self._output
        print(file=out)
        print("  LIQUIDITY:", file=out)
        print(f"    Liquid pools: {liquidity.liquid_pools}/{liquidity.total_pools}", file=out)
        print(f"    Total:        {liquidity.total_liquidity:,.2f}", file=out)
        print(f"    Mean:         {liquidity.mean_liquidity:,.2f}", file=out)
        print(f"    Median:       {liquidity.median_liquidity:,.2f}", file=out)
        print(f"    Max:          {liquidity.max_liquidity:,.2f}", file=out)
        print(f"    Min:          {liquidity.min_liquidity:,.2f}", file=out)
        for pool_id, depth in liquidity.top_pools:
            print(f"      {pool_id}: {depth:,.2f}", file=out)
