"""
Execution gate for detected opportunities.

The monitor never signs or sends transactions itself. It hands a cycle,
an input amount and a minimum acceptable output to a gateway backed by
a contract that re-reads reserves, recomputes the output and reverts
the whole multi-hop swap when the minimum is not met.
"""

import asyncio
import logging
from dataclasses import dataclass

from cyclearb.config.constants import DEFAULT_SLIPPAGE_TOLERANCE
from cyclearb.core.errors import NetworkError
from cyclearb.core.types import (
    ArbitrageOpportunity,
    ChainReader,
    ExecutionGateway,
    ExecutionReceipt,
    ExecutionRequest,
)
from cyclearb.state.synchronizer import reserve_snapshot_from_raw
from cyclearb.strategy.graph import PoolGraph
from cyclearb.strategy.optimizer import swap_output
from cyclearb.utils.time import LatencyTimer


logger = logging.getLogger(__name__)


REVERT_INSUFFICIENT_OUTPUT = "INSUFFICIENT_OUTPUT"


@dataclass
class GateConfig:
    """Execution gate configuration."""

    slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE


class SimulatedGateway:
    """
    Dry-run gateway with the revalidating contract's semantics.

    Re-reads current reserves, replays the hops with the constant-product
    formula and reverts atomically if the output falls short.
    """

    def __init__(self, reader: ChainReader, graph: PoolGraph) -> None:
        self._reader = reader
        self._graph = graph

    async def submit(self, request: ExecutionRequest) -> ExecutionReceipt:
        """
        Revalidate and "execute" a cycle.

        Raises:
            NetworkError: If current reserves cannot be read.
        """
        pool_ids = list(dict.fromkeys(pool_id for pool_id, _ in request.hops))
        raws = await asyncio.gather(*(self._reader.get_reserves(p) for p in pool_ids))
        reserves = {
            pool_id: reserve_snapshot_from_raw(self._graph, pool_id, raw, request.block_number)
            for pool_id, raw in zip(pool_ids, raws)
        }

        amount = request.amount_in
        for pool_id, direction in request.hops:
            reserve_in, reserve_out = reserves[pool_id].oriented(direction)
            amount = swap_output(reserve_in, reserve_out, amount, self._graph.pool(pool_id).fee)

        if amount < request.min_amount_out:
            return ExecutionReceipt(
                executed=False,
                revert_reason=(
                    f"{REVERT_INSUFFICIENT_OUTPUT}: {amount:.8f} < {request.min_amount_out:.8f}"
                ),
                amount_out=amount,
            )

        return ExecutionReceipt(executed=True, amount_out=amount)


class ExecutionGate:
    """
    Turns opportunities into execution requests and submits them.

    The minimum output is the detected output less the slippage
    tolerance, and never below the input plus the cycle cost so a
    filled request cannot lose money net of cost.
    """

    def __init__(self, gateway: ExecutionGateway, config: GateConfig | None = None) -> None:
        """
        Initialize execution gate.

        Args:
            gateway: Execution backend.
            config: Gate configuration.
        """
        self._gateway = gateway
        self._config = config or GateConfig()

        self._submitted = 0
        self._executed = 0
        self._reverted = 0

    def build_request(self, opportunity: ArbitrageOpportunity) -> ExecutionRequest:
        """Build the request for an opportunity."""
        result = opportunity.result
        min_out = max(
            result.final_output * (1.0 - self._config.slippage_tolerance),
            result.optimal_input + result.cost,
        )
        return ExecutionRequest(
            cycle_id=result.cycle.id,
            hops=result.cycle.key,
            amount_in=result.optimal_input,
            min_amount_out=min_out,
            block_number=opportunity.block_number,
        )

    async def execute(self, opportunity: ArbitrageOpportunity) -> ExecutionReceipt:
        """
        Submit an opportunity for execution.

        Submission failures are reported as a reverted receipt rather
        than raised, so the caller's round carries on.

        Args:
            opportunity: Qualifying opportunity.

        Returns:
            Executed-or-reverted receipt.
        """
        request = self.build_request(opportunity)
        self._submitted += 1

        with LatencyTimer() as timer:
            try:
                receipt = await self._gateway.submit(request)
            except NetworkError as e:
                receipt = ExecutionReceipt(executed=False, revert_reason=f"submission failed: {e}")

        label = opportunity.cycle.label or opportunity.cycle.id
        if receipt.executed:
            self._executed += 1
            logger.info(
                f"Executed {label}: in={request.amount_in:.6f} "
                f"out={receipt.amount_out:.6f} ({timer.latency_us}μs)"
            )
        else:
            self._reverted += 1
            logger.warning(f"Reverted {label}: {receipt.revert_reason}")

        return receipt

    @property
    def stats(self) -> dict[str, int]:
        return {
            "submitted": self._submitted,
            "executed": self._executed,
            "reverted": self._reverted,
        }
