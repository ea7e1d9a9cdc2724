"""
Unit tests for opportunity sinks.
"""

import csv
from pathlib import Path

import orjson
import pytest

from cyclearb.config.constants import JOE_MOE_POOL
from cyclearb.core.errors import ConfigError
from cyclearb.core.types import ArbitrageOpportunity, CyclePath, StateSnapshot
from cyclearb.strategy.opportunity import OpportunityDetector
from cyclearb.strategy.optimizer import ProfitOptimizer
from cyclearb.telemetry.sink import (
    CSV_FIELDS,
    CsvOpportunitySink,
    JsonlOpportunitySink,
    create_sink,
)


@pytest.fixture
def opportunity(
    optimizer: ProfitOptimizer,
    forward_cycle: CyclePath,
    scenario_a_snapshot: StateSnapshot,
) -> ArbitrageOpportunity:
    detector = OpportunityDetector(optimizer, [forward_cycle])
    result = detector.evaluate(forward_cycle, scenario_a_snapshot, fetch_time_ms=4.0)
    assert result is not None
    return result


class TestCsvSink:
    """Tests for CsvOpportunitySink."""

    def test_write_row(self, tmp_path: Path, opportunity: ArbitrageOpportunity) -> None:
        """Test one row per opportunity with the fixed header."""
        path = tmp_path / "logs" / "opps.csv"
        sink = CsvOpportunitySink(path)
        sink.write(opportunity)
        sink.close()

        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))

        assert sink.count == 1
        assert len(rows) == 1
        assert tuple(rows[0]) == CSV_FIELDS
        assert rows[0]["cycle"] == "WMNT -> MOE -> JOE -> WMNT"
        assert rows[0]["block_number"] == "100"
        assert float(rows[0]["net_profit"]) == pytest.approx(opportunity.net_profit)
        assert JOE_MOE_POOL in orjson.loads(rows[0]["reserves"])

    def test_header_written_once(
        self, tmp_path: Path, opportunity: ArbitrageOpportunity
    ) -> None:
        """Test reopening an existing log appends without a second header."""
        path = tmp_path / "opps.csv"
        for _ in range(2):
            sink = CsvOpportunitySink(path)
            sink.write(opportunity)
            sink.close()

        lines = path.read_text(encoding="utf-8").splitlines()

        assert len(lines) == 3
        assert lines[0].startswith("timestamp,block_number,cycle")
        assert not lines[2].startswith("timestamp")

    def test_close_idempotent(self, tmp_path: Path) -> None:
        """Test closing twice is harmless."""
        sink = CsvOpportunitySink(tmp_path / "opps.csv")
        sink.close()
        sink.close()


class TestJsonlSink:
    """Tests for JsonlOpportunitySink."""

    def test_write_lines(self, tmp_path: Path, opportunity: ArbitrageOpportunity) -> None:
        """Test one JSON object per line."""
        path = tmp_path / "opps.jsonl"
        sink = JsonlOpportunitySink(path)
        sink.write(opportunity)
        sink.write(opportunity)
        sink.close()

        records = [orjson.loads(line) for line in path.read_bytes().splitlines()]

        assert len(records) == 2
        assert records[0]["cycle_id"] == opportunity.cycle.id
        assert records[0]["fetch_time_ms"] == 4.0
        assert records[0]["reserves"][JOE_MOE_POOL] == [4231.12, 9876.54]


class TestCreateSink:
    """Tests for suffix-based sink selection."""

    def test_csv(self, tmp_path: Path) -> None:
        sink = create_sink(tmp_path / "opps.CSV")
        assert isinstance(sink, CsvOpportunitySink)
        sink.close()

    def test_jsonl(self, tmp_path: Path) -> None:
        sink = create_sink(tmp_path / "opps.jsonl")
        assert isinstance(sink, JsonlOpportunitySink)
        sink.close()

    def test_unsupported_suffix(self, tmp_path: Path) -> None:
        """Test unknown formats are a configuration error."""
        with pytest.raises(ConfigError, match="Unsupported"):
            create_sink(tmp_path / "opps.parquet")

    def test_unwritable_path(self, tmp_path: Path) -> None:
        """Test an unopenable path is a configuration error."""
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(ConfigError, match="Cannot open"):
            create_sink(blocker / "opps.csv")
