"""
Unit tests for the event bus, metrics and status reporting.
"""

import io
from typing import Any

import pytest

from cyclearb.core.event_bus import Event, EventBus, EventType
from cyclearb.state.liquidity import analyze_liquidity
from cyclearb.telemetry.metrics import MetricsCollector
from cyclearb.telemetry.reporter import StatusReporter
from cyclearb.utils.time import LatencyTimer, format_duration_us
from tests.mocks.chain import make_snapshot
from tests.mocks.data import pool_addr


class TestEventBus:
    """Tests for EventBus."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self) -> None:
        """Test both handler kinds receive the event."""
        bus = EventBus()
        seen: list[str] = []

        def on_sync(event: Event[Any]) -> None:
            seen.append(f"sync:{event.payload}")

        async def on_async(event: Event[Any]) -> None:
            seen.append(f"async:{event.payload}")

        bus.subscribe_sync(EventType.OPPORTUNITY_FOUND, on_sync)
        bus.subscribe(EventType.OPPORTUNITY_FOUND, on_async)

        await bus.publish(Event(type=EventType.OPPORTUNITY_FOUND, payload="x"))

        assert seen == ["sync:x", "async:x"]
        assert bus.handler_count(EventType.OPPORTUNITY_FOUND) == 2

    @pytest.mark.asyncio
    async def test_handler_error_isolated(self) -> None:
        """Test a failing handler does not stop the others."""
        bus = EventBus()
        seen: list[int] = []

        def broken(event: Event[Any]) -> None:
            raise RuntimeError("handler bug")

        def working(event: Event[Any]) -> None:
            seen.append(event.payload)

        bus.subscribe_sync(EventType.POOL_STALE, broken, priority=10)
        bus.subscribe_sync(EventType.POOL_STALE, working)

        await bus.publish(Event(type=EventType.POOL_STALE, payload=1))

        assert seen == [1]

    def test_priority_order(self) -> None:
        """Test higher priority handlers run first."""
        bus = EventBus()
        order: list[str] = []

        bus.subscribe_sync(EventType.SHUTDOWN, lambda e: order.append("low"), priority=0)
        bus.subscribe_sync(EventType.SHUTDOWN, lambda e: order.append("high"), priority=5)

        bus.publish_sync(Event(type=EventType.SHUTDOWN, payload=None))

        assert order == ["high", "low"]

    def test_unsubscribe(self) -> None:
        """Test a removed handler no longer fires."""
        bus = EventBus()
        seen: list[object] = []

        def handler(event: Event[Any]) -> None:
            seen.append(event.payload)

        bus.subscribe_sync(EventType.CYCLE_SKIPPED, handler)
        assert bus.unsubscribe(EventType.CYCLE_SKIPPED, handler)
        assert not bus.unsubscribe(EventType.CYCLE_SKIPPED, handler)

        bus.publish_sync(Event(type=EventType.CYCLE_SKIPPED, payload=1))

        assert seen == []


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_record_round(self) -> None:
        """Test round outcomes are tallied by status."""
        metrics = MetricsCollector()

        metrics.record_round("updated", evaluated=4, skipped=2, stale=1, errors=1)
        metrics.record_round("block_unchanged")
        metrics.record_round("unavailable")
        metrics.record_round("abandoned")

        stats = metrics.stats
        assert stats.rounds_total == 4
        assert stats.rounds_updated == 1
        assert stats.rounds_unchanged == 1
        assert stats.rounds_unavailable == 1
        assert stats.rounds_abandoned == 1
        assert stats.cycles_evaluated == 4
        assert stats.cycles_skipped == 2
        assert stats.stale_pool_events == 1
        assert stats.computation_errors == 1

    def test_record_opportunity(self) -> None:
        """Test profit accumulation and best tracking."""
        metrics = MetricsCollector()

        metrics.record_opportunity(1.5, 0.3)
        metrics.record_opportunity(0.5, 0.9)

        stats = metrics.stats
        assert stats.opportunities_found == 2
        assert stats.total_net_profit == pytest.approx(2.0)
        assert stats.best_net_profit == pytest.approx(1.5)
        assert stats.best_profit_pct == pytest.approx(0.9)

    def test_record_execution(self) -> None:
        """Test execution success rate."""
        metrics = MetricsCollector()

        metrics.record_execution(True)
        metrics.record_execution(True)
        metrics.record_execution(False)

        assert metrics.stats.execution_success_rate == pytest.approx(2 / 3)

    def test_latency_window(self) -> None:
        """Test the rolling window keeps the newest samples."""
        metrics = MetricsCollector(latency_window_size=3)

        for value in (100, 200, 300, 400):
            metrics.record_latency("fetch", value)

        stats = metrics.get_latency_stats("fetch")
        assert stats.count == 3
        assert stats.min_us == 200
        assert stats.max_us == 400
        assert metrics.get_latency_stats("missing").count == 0

    def test_to_dict_and_reset(self) -> None:
        """Test export and reset."""
        metrics = MetricsCollector()
        metrics.increment_counter("rpc_errors", 2)
        metrics.record_latency("round", 1500)
        metrics.record_round("updated", evaluated=1)

        exported = metrics.to_dict()
        assert exported["counters"] == {"rpc_errors": 2}
        assert exported["detection"]["rounds_updated"] == 1  # type: ignore[index]

        metrics.reset()
        assert metrics.get_counter("rpc_errors") == 0
        assert metrics.stats.rounds_total == 0


class TestStatusReporter:
    """Tests for StatusReporter."""

    def test_status_line(self) -> None:
        """Test the status line reflects round counters."""
        metrics = MetricsCollector()
        metrics.record_round("updated", evaluated=6, skipped=2)
        metrics.record_round("block_unchanged")
        metrics.record_latency("round", 2500)
        reporter = StatusReporter(metrics)

        line = reporter.get_status_line()

        assert "Rounds: 1/2" in line
        assert "Cycles: 6 eval/2 skipped" in line
        assert "Round: 2.50ms" in line

    def test_maybe_report_interval(self) -> None:
        """Test status lines are only logged on the interval."""
        metrics = MetricsCollector()
        reporter = StatusReporter(metrics, interval_rounds=2)

        assert not reporter.maybe_report()
        metrics.record_round("updated")
        assert not reporter.maybe_report()
        metrics.record_round("updated")
        assert reporter.maybe_report()

    def test_summary(self) -> None:
        """Test the session summary."""
        metrics = MetricsCollector()
        metrics.record_round("updated")
        metrics.record_opportunity(117.3, 21.9)
        metrics.record_execution(False)
        out = io.StringIO()
        reporter = StatusReporter(metrics, output=out)
        reporter.set_state(cycle_count=6, pool_count=3)

        reporter.print_summary()
        text = out.getvalue()

        assert "SESSION SUMMARY" in text
        assert "Cycles monitored: 6" in text
        assert "Best net:    +117.300000" in text
        assert "Reverted:     1" in text

    def test_liquidity_reported(self) -> None:
        """Test liquidity stats reach the status line and the summary."""
        metrics = MetricsCollector()
        out = io.StringIO()
        reporter = StatusReporter(metrics, output=out)
        snapshot = make_snapshot(
            1, {pool_addr("p1"): (10_000.0, 20_000.0), pool_addr("p2"): (500.0, 9_000.0)}
        )

        reporter.set_liquidity(analyze_liquidity(snapshot, min_liquidity=1000.0))
        reporter.print_summary()
        text = out.getvalue()

        assert "Liquid: 1/2" in reporter.get_status_line()
        assert "LIQUIDITY:" in text
        assert "Liquid pools: 1/2" in text
        assert "Max:          30,000.00" in text
        assert f"{pool_addr('p1')}: 30,000.00" in text


class TestTimeUtils:
    """Tests for timing helpers."""

    def test_format_duration(self) -> None:
        assert format_duration_us(500) == "500μs"
        assert format_duration_us(1500) == "1.50ms"
        assert format_duration_us(1_500_000) == "1.50s"

    def test_latency_timer(self) -> None:
        """Test the timer records a non-negative latency."""
        with LatencyTimer() as timer:
            sum(range(1000))

        assert timer.latency_us >= 0
        assert timer.latency_ms == timer.latency_us / 1000.0
