"""
Append-only opportunity record sinks.

One record per emitted opportunity, written and flushed immediately so
a crash never loses a reported opportunity.
"""

import csv
import logging
from pathlib import Path
from typing import IO

import orjson

from cyclearb.core.errors import ConfigError
from cyclearb.core.types import ArbitrageOpportunity, OpportunitySink
from cyclearb.utils.time import format_timestamp_us


logger = logging.getLogger(__name__)


CSV_FIELDS: tuple[str, ...] = (
    "timestamp",
    "block_number",
    "cycle",
    "cycle_id",
    "optimal_input",
    "final_output",
    "gross_profit",
    "net_profit",
    "profit_percentage",
    "cost",
    "reserves",
    "fetch_time_ms",
    "iterations",
)


class CsvOpportunitySink:
    """CSV sink; the header is written once when the file is new or empty."""

    def __init__(self, path: Path) -> None:
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        needs_header = not path.exists() or path.stat().st_size == 0
        self._file: IO[str] = path.open("a", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._file, fieldnames=CSV_FIELDS)
        if needs_header:
            self._writer.writeheader()
            self._file.flush()
        self._count = 0

    def write(self, opportunity: ArbitrageOpportunity) -> None:
        record = opportunity.to_record()
        record["timestamp"] = format_timestamp_us(opportunity.timestamp_us, include_date=True)
        record["reserves"] = orjson.dumps(record["reserves"]).decode()
        self._writer.writerow(record)
        self._file.flush()
        self._count += 1

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.info(f"Wrote {self._count} opportunities to {self._path}")

    @property
    def count(self) -> int:
        return self._count


class JsonlOpportunitySink:
    """JSON Lines sink serialized with orjson."""

    def __init__(self, path: Path) -> None:
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file: IO[bytes] = path.open("ab")
        self._count = 0

    def write(self, opportunity: ArbitrageOpportunity) -> None:
        self._file.write(orjson.dumps(opportunity.to_record()) + b"\n")
        self._file.flush()
        self._count += 1

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.info(f"Wrote {self._count} opportunities to {self._path}")

    @property
    def count(self) -> int:
        return self._count


def create_sink(path: Path) -> OpportunitySink:
    """
    Open a sink chosen by file suffix.

    Args:
        path: Target file ending in .csv or .jsonl.

    Returns:
        Opened sink.

    Raises:
        ConfigError: On an unsupported suffix or an unwritable path.
    """
    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            return CsvOpportunitySink(path)
        if suffix == ".jsonl":
            return JsonlOpportunitySink(path)
    except OSError as e:
        raise ConfigError(f"Cannot open opportunity log {path}: {e}") from e
    raise ConfigError(f"Unsupported opportunity log format: {path}")
