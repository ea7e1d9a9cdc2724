"""Mock implementations for testing."""

from tests.mocks.chain import MockChainReader, MockGateway, RecordingSink, make_snapshot


__all__ = [
    "MockChainReader",
    "MockGateway",
    "RecordingSink",
    "make_snapshot",
]
