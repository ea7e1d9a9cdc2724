"""Telemetry module for logging, metrics, reporting and opportunity sinks."""

from cyclearb.telemetry.logger import AsyncLogger, setup_logging
from cyclearb.telemetry.metrics import MetricsCollector
from cyclearb.telemetry.reporter import StatusReporter
from cyclearb.telemetry.sink import CsvOpportunitySink, JsonlOpportunitySink, create_sink


__all__ = [
    "AsyncLogger",
    "CsvOpportunitySink",
    "JsonlOpportunitySink",
    "MetricsCollector",
    "StatusReporter",
    "create_sink",
    "setup_logging",
]
