"""
Main monitoring engine orchestrator.

Coordinates all system components and drives the block-paced
detection loop.
"""

import asyncio
import logging
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum

from cyclearb.chain.client import JsonRpcClient
from cyclearb.chain.rate_limiter import RateLimiter
from cyclearb.config.catalog import PoolCatalog, load_catalog
from cyclearb.config.settings import Settings
from cyclearb.core.errors import ComputationError, StaleRoundError
from cyclearb.core.event_bus import Event, EventBus, EventType
from cyclearb.core.types import (
    ArbitrageOpportunity,
    ChainReader,
    CyclePath,
    ExecutionGateway,
    OpportunitySink,
)
from cyclearb.execution.gate import ExecutionGate, GateConfig, SimulatedGateway
from cyclearb.state.liquidity import analyze_liquidity, illiquid_pools
from cyclearb.state.retry import RetryPolicy
from cyclearb.state.synchronizer import StateSynchronizer, SyncResult, SyncStatus
from cyclearb.strategy.cycles import CycleEnumerator
from cyclearb.strategy.graph import PoolGraph
from cyclearb.strategy.opportunity import OpportunityDetector
from cyclearb.strategy.optimizer import CostParams, ProfitOptimizer
from cyclearb.telemetry.logger import AsyncLogger, setup_logging
from cyclearb.telemetry.metrics import MetricsCollector
from cyclearb.telemetry.reporter import StatusReporter
from cyclearb.telemetry.sink import create_sink
from cyclearb.utils.math import format_profit
from cyclearb.utils.time import LatencyTimer, get_timestamp_us


logger = logging.getLogger(__name__)


class RoundStatus(str, Enum):
    """Outcome of one detection round."""

    UPDATED = "updated"
    BLOCK_UNCHANGED = "block_unchanged"
    UNAVAILABLE = "unavailable"
    ABANDONED = "abandoned"


@dataclass(slots=True)
class RoundReport:
    """What a round did."""

    status: RoundStatus
    block_number: int = 0
    changed: frozenset[str] = frozenset()
    stale: frozenset[str] = frozenset()
    evaluated: int = 0
    skipped: int = 0
    illiquid: frozenset[str] = frozenset()
    errors: int = 0
    opportunities: list[ArbitrageOpportunity] = field(default_factory=list)
    evaluated_cycles: tuple[CyclePath, ...] = ()
    latency_us: int = 0


def cost_params(settings: Settings) -> CostParams:
    """Cost model described by the settings."""
    return CostParams(
        transaction_cost=settings.transaction_cost,
        extra_hop_cost=settings.extra_hop_cost,
        gas_price_gwei=settings.gas_price_gwei,
        gas_units_3_hops=settings.gas_units_3_hops,
        gas_units_4_hops=settings.gas_units_4_hops,
    )


class ArbitrageEngine:
    """
    Main monitoring engine orchestrator.

    Manages the complete lifecycle of:
    - Pool catalog and graph construction
    - Cycle discovery
    - Block-aware reserve synchronization
    - Change-gated opportunity detection
    - Opportunity records and the optional execution gate
    """

    def __init__(
        self,
        settings: Settings,
        reader: ChainReader | None = None,
        sink: OpportunitySink | None = None,
        gateway: ExecutionGateway | None = None,
        catalog: PoolCatalog | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            settings: Application settings.
            reader: Chain reader; a JSON-RPC client on the configured
                endpoint when None.
            sink: Opportunity sink; opened from the configured path when None.
            gateway: Execution backend; a simulated gateway when None and
                execution is enabled.
            catalog: Pool catalog; loaded from settings when None.
        """
        self._settings = settings
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._is_shut_down = False

        self._reader = reader
        self._sink = sink
        self._gateway = gateway
        self._catalog = catalog

        # Core components (initialized in setup)
        self._client: JsonRpcClient | None = None
        self._graph: PoolGraph | None = None
        self._enumerator: CycleEnumerator | None = None
        self._optimizer: ProfitOptimizer | None = None
        self._detector: OpportunityDetector | None = None
        self._synchronizer: StateSynchronizer | None = None
        self._gate: ExecutionGate | None = None

        # Pools changed by the round in flight, deferred if it is abandoned
        self._round_changed: frozenset[str] = frozenset()

        # Infrastructure
        self._event_bus = EventBus()
        self._metrics = MetricsCollector()
        self._reporter: StatusReporter | None = None
        self._async_logger: AsyncLogger | None = None

    async def setup(self) -> None:
        """
        Initialize all components.

        Raises:
            ConfigError: On a malformed catalog, an unknown base asset or
                an unwritable opportunity log.
        """
        settings = self._settings

        self._async_logger = setup_logging(
            level=settings.log_level,
            log_file=settings.log_file,
        )

        logger.info("Initializing cycle arbitrage monitor...")

        # Pool graph
        catalog = self._catalog or load_catalog(settings.pool_catalog_path)
        self._graph = PoolGraph.build(catalog, default_fee=settings.dex_fee)
        logger.info(
            f"Pool graph: {self._graph.number_of_assets} assets, "
            f"{self._graph.number_of_pools} pools"
        )

        # Cycle discovery
        self._enumerator = CycleEnumerator(
            self._graph,
            base_asset=settings.base_asset,
            max_hops=settings.max_hops,
            strategy=settings.enumeration_strategy,
            large_graph_threshold=settings.large_graph_threshold,
            min_reserve=settings.min_reserve,
        )

        # Optimizer and detector
        self._optimizer = ProfitOptimizer(
            self._graph,
            cost=cost_params(settings),
            iterations=settings.ternary_search_iterations,
            min_reserve=settings.min_reserve,
        )
        self._detector = OpportunityDetector(self._optimizer)
        if self._enumerator.is_static:
            cycles = self._enumerator.enumerate()
            self._detector.add_cycles(cycles)
            for cycle in cycles:
                logger.info(f"Monitoring {cycle.label} ({cycle.hop_count} hops)")
            logger.info(f"Found {len(cycles)} cycles through {settings.base_asset}")

        # Chain access
        if self._reader is None:
            self._client = JsonRpcClient(
                endpoint=settings.rpc_endpoint,
                pools=self._graph.pools,
                timeout_seconds=settings.request_timeout_seconds,
                rate_limiter=RateLimiter(settings.rpc_requests_per_second),
            )
            self._reader = self._client

        self._synchronizer = StateSynchronizer(
            self._graph,
            self._reader,
            retry_policy=RetryPolicy(
                max_attempts=settings.max_retries,
                backoff_seconds=settings.retry_backoff_seconds,
            ),
        )

        # Output
        if self._sink is None:
            self._sink = create_sink(settings.opportunity_log_path)

        if settings.execution_enabled:
            gateway = self._gateway or SimulatedGateway(self._reader, self._graph)
            self._gate = ExecutionGate(
                gateway,
                GateConfig(slippage_tolerance=settings.slippage_tolerance),
            )
            logger.info("Execution gate enabled")

        self._reporter = StatusReporter(
            metrics=self._metrics,
            interval_rounds=settings.status_interval_rounds,
        )
        self._reporter.set_state(
            cycle_count=self._detector.cycle_count,
            pool_count=self._graph.number_of_pools,
        )

        logger.info("Engine initialization complete")

    # =========================================================================
    # Detection Round
    # =========================================================================

    async def run_round(self) -> RoundReport:
        """
        Run one poll-and-evaluate round.

        The poll and the cycle evaluation share the round budget. A round
        that overruns it is abandoned: nothing is written to the sink or
        handed to the execution gate.

        Returns:
            RoundReport describing the round.
        """
        budget = self._settings.round_budget
        self._round_changed = frozenset()

        with LatencyTimer() as timer:
            try:
                report = await self._bounded_round(budget)
            except StaleRoundError as e:
                logger.warning(f"Round abandoned: {e}")
                if self._round_changed:
                    pending = self._detector.defer(self._round_changed)  # type: ignore[union-attr]
                    logger.info(f"Deferred {pending} cycles to the next round")
                self._metrics.record_round(RoundStatus.ABANDONED.value)
                await self._publish(EventType.ROUND_ABANDONED, e)
                return RoundReport(
                    status=RoundStatus.ABANDONED,
                    block_number=e.block_number,
                    latency_us=timer.latency_us,
                )

            self._detector.settle(report.evaluated_cycles)  # type: ignore[union-attr]

            # Emission happens only once the round made its budget
            for opportunity in report.opportunities:
                self._emit(opportunity)
                await self._publish(EventType.OPPORTUNITY_FOUND, opportunity)

            if self._gate is not None:
                for opportunity in report.opportunities:
                    receipt = await self._gate.execute(opportunity)
                    self._metrics.record_execution(receipt.executed)
                    await self._publish(EventType.EXECUTION_COMPLETE, receipt)

        report.latency_us = timer.latency_us
        self._metrics.record_round(
            report.status.value,
            evaluated=report.evaluated,
            skipped=report.skipped,
            stale=len(report.stale),
            errors=report.errors,
        )
        if report.status is RoundStatus.UPDATED:
            self._metrics.record_latency("round", report.latency_us)
        if self._reporter:
            self._reporter.maybe_report()

        return report

    async def _bounded_round(self, budget: float) -> RoundReport:
        """Run the round body under the time budget."""
        try:
            return await asyncio.wait_for(self._round(), timeout=budget)
        except asyncio.TimeoutError as e:
            block = self._synchronizer.last_block if self._synchronizer else None
            raise StaleRoundError(block or 0, budget) from e

    async def _round(self) -> RoundReport:
        sync = await self._synchronizer.poll()  # type: ignore[union-attr]

        if sync.status is SyncStatus.UNAVAILABLE:
            await self._publish(EventType.DATA_UNAVAILABLE, sync)
            return RoundReport(status=RoundStatus.UNAVAILABLE, block_number=sync.block_number)

        if sync.status is SyncStatus.BLOCK_UNCHANGED:
            await self._publish(EventType.BLOCK_UNCHANGED, sync.block_number)
            return RoundReport(status=RoundStatus.BLOCK_UNCHANGED, block_number=sync.block_number)

        self._round_changed = sync.changed
        self._metrics.record_latency("fetch", int(sync.fetch_time_ms * 1000))

        if sync.stale:
            await self._publish(EventType.POOL_STALE, sync.stale)
        if sync.has_changes:
            await self._publish(EventType.RESERVES_CHANGED, sync)

        self._refresh_cycles(sync)

        illiquid = self._screen_liquidity(sync)
        affected = self._detector.affected_cycles(sync.changed, sync.stale, illiquid)  # type: ignore[union-attr]
        if affected.skipped:
            logger.debug(f"Skipped {len(affected.skipped)} cycles with stale pools")
        if affected.illiquid:
            logger.debug(f"Skipped {len(affected.illiquid)} cycles below minimum liquidity")
        if affected.skipped_count:
            await self._publish(EventType.CYCLE_SKIPPED, affected.skipped + affected.illiquid)

        opportunities, errors = await self._evaluate(affected.evaluate, sync)
        self._detector.record_results(len(affected.evaluate), opportunities, errors)  # type: ignore[union-attr]

        if affected.evaluate and not opportunities:
            await self._publish(EventType.NO_OPPORTUNITY, sync.block_number)

        return RoundReport(
            status=RoundStatus.UPDATED,
            block_number=sync.block_number,
            changed=sync.changed,
            stale=sync.stale,
            evaluated=len(affected.evaluate),
            skipped=affected.skipped_count,
            illiquid=illiquid,
            errors=errors,
            opportunities=opportunities,
            evaluated_cycles=affected.evaluate,
        )

    def _refresh_cycles(self, sync: SyncResult) -> None:
        """Pick up cycles found by reserve-dependent discovery."""
        if self._enumerator is None or self._enumerator.is_static:
            return
        added = self._detector.add_cycles(self._enumerator.enumerate(sync.snapshot))  # type: ignore[union-attr]
        if added:
            logger.info(f"Discovered {added} new candidate cycles at block {sync.block_number}")
            if self._reporter:
                self._reporter.set_state(
                    cycle_count=self._detector.cycle_count,  # type: ignore[union-attr]
                    pool_count=self._graph.number_of_pools,  # type: ignore[union-attr]
                )

    def _screen_liquidity(self, sync: SyncResult) -> frozenset[str]:
        """Report the liquidity distribution and flag pools below the threshold."""
        min_liquidity = self._settings.min_liquidity
        stats = analyze_liquidity(sync.snapshot, min_liquidity)
        if self._reporter:
            self._reporter.set_liquidity(stats)

        illiquid = illiquid_pools(sync.snapshot, min_liquidity)
        if illiquid:
            logger.debug(
                f"Liquidity analysis: {stats.liquid_pools}/{stats.total_pools} pools "
                f"above {min_liquidity}"
            )
        return illiquid

    async def _evaluate(
        self,
        cycles: tuple[CyclePath, ...],
        sync: SyncResult,
    ) -> tuple[list[ArbitrageOpportunity], int]:
        """
        Evaluate cycles concurrently against one snapshot.

        Returns:
            Opportunities in input order, and the number of cycles that
            failed with a ComputationError.
        """
        if not cycles:
            return [], 0

        detector = self._detector
        results = await asyncio.gather(
            *(
                asyncio.to_thread(detector.evaluate, cycle, sync.snapshot, sync.fetch_time_ms)  # type: ignore[union-attr]
                for cycle in cycles
            ),
            return_exceptions=True,
        )

        opportunities: list[ArbitrageOpportunity] = []
        errors = 0
        for cycle, result in zip(cycles, results):
            if isinstance(result, ComputationError):
                errors += 1
                logger.warning(f"Cycle {cycle.label or cycle.id} skipped: {result}")
            elif isinstance(result, BaseException):
                raise result
            elif result is not None:
                opportunities.append(result)

        return opportunities, errors

    def _emit(self, opportunity: ArbitrageOpportunity) -> None:
        """Record an opportunity in the sink, metrics and log."""
        self._sink.write(opportunity)  # type: ignore[union-attr]
        self._metrics.record_opportunity(opportunity.net_profit, opportunity.profit_percentage)

        result = opportunity.result
        logger.info(
            f"Opportunity at block {opportunity.block_number}: "
            f"{opportunity.cycle.label or opportunity.cycle.id} "
            f"in={result.optimal_input:.6f} out={result.final_output:.6f} "
            f"net={result.net_profit:+.6f} ({format_profit(result.profit_percentage)})"
        )

    async def _publish(self, event_type: EventType, payload: object) -> None:
        await self._event_bus.publish(
            Event(
                type=event_type,
                payload=payload,
                timestamp_us=get_timestamp_us(),
                source="engine",
            )
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def run(self, max_rounds: int | None = None) -> None:
        """
        Run the monitoring loop until shutdown.

        Args:
            max_rounds: Stop after this many rounds; unbounded when None.
        """
        self._running = True

        # Set up signal handlers
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        rounds = 0
        try:
            logger.info("Starting monitoring loop...")

            while not self._shutdown_event.is_set():
                report = await self.run_round()
                rounds += 1
                if max_rounds is not None and rounds >= max_rounds:
                    break

                # Pace polling to the block time
                remaining = self._settings.block_time_seconds - report.latency_us / 1_000_000
                if remaining > 0:
                    try:
                        await asyncio.wait_for(self._shutdown_event.wait(), timeout=remaining)
                    except asyncio.TimeoutError:
                        pass

        except Exception as e:
            logger.error(f"Engine error: {e}")
            raise

        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._running = False
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Gracefully shut down the engine."""
        if self._is_shut_down:
            return
        self._is_shut_down = True

        logger.info("Shutting down engine...")

        self._running = False
        self._shutdown_event.set()
        await self._publish(EventType.SHUTDOWN, None)

        if self._reporter:
            self._reporter.print_summary()

        if self._sink:
            self._sink.close()

        # Close chain client
        if self._client:
            await self._client.close()

        logger.info("Engine shutdown complete")

        # Stop async logger last so the lines above are flushed
        if self._async_logger:
            self._async_logger.stop()

    @property
    def is_running(self) -> bool:
        """Check if engine is running."""
        return self._running

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def detector(self) -> OpportunityDetector | None:
        return self._detector

    @property
    def synchronizer(self) -> StateSynchronizer | None:
        return self._synchronizer

    @property
    def graph(self) -> PoolGraph | None:
        return self._graph


@asynccontextmanager
async def create_engine(
    settings: Settings,
    reader: ChainReader | None = None,
    sink: OpportunitySink | None = None,
) -> AsyncIterator[ArbitrageEngine]:
    """
    Create and manage engine lifecycle.

    Usage:
        async with create_engine(settings) as engine:
            await engine.run()
    """
    engine = ArbitrageEngine(settings, reader=reader, sink=sink)

    try:
        await engine.setup()
        yield engine
    finally:
        await engine.shutdown()
