"""Execution module: hand-off of opportunities to a revalidating executor."""

from cyclearb.execution.gate import ExecutionGate, GateConfig, SimulatedGateway


__all__ = [
    "ExecutionGate",
    "GateConfig",
    "SimulatedGateway",
]
