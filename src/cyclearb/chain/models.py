"""
Pydantic models for JSON-RPC payloads.

These models provide type-safe parsing of node responses and ABI
decoding of the pair contract calls the monitor makes.
"""

from typing import Any

from pydantic import BaseModel, Field

from cyclearb.config.constants import ABI_WORD_HEX_LENGTH


class JsonRpcRequest(BaseModel):
    """Single JSON-RPC 2.0 request."""

    jsonrpc: str = "2.0"
    id: int
    method: str
    params: list[Any] = Field(default_factory=list)


class JsonRpcErrorData(BaseModel):
    """Error object of a failed JSON-RPC call."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """Single JSON-RPC 2.0 response."""

    jsonrpc: str = "2.0"
    id: int | None = None
    result: Any = None
    error: JsonRpcErrorData | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class ReservesResult(BaseModel):
    """Decoded return value of UniswapV2Pair.getReserves()."""

    reserve0: int = Field(ge=0)
    reserve1: int = Field(ge=0)
    block_timestamp_last: int = Field(default=0, ge=0, alias="blockTimestampLast")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_hex(cls, data: str) -> "ReservesResult":
        """
        Decode the ABI-encoded (uint112, uint112, uint32) tuple.

        Args:
            data: Hex string returned by eth_call.

        Raises:
            ValueError: If the payload is shorter than three words or not hex.
        """
        if not isinstance(data, str):
            raise ValueError(f"Expected hex string, got {type(data).__name__}")
        payload = data[2:] if data.startswith("0x") else data
        if len(payload) < 3 * ABI_WORD_HEX_LENGTH:
            raise ValueError(f"getReserves payload too short: {len(payload)} hex chars")

        words = [
            int(payload[i * ABI_WORD_HEX_LENGTH : (i + 1) * ABI_WORD_HEX_LENGTH], 16)
            for i in range(3)
        ]
        return cls(reserve0=words[0], reserve1=words[1], block_timestamp_last=words[2])

    def as_tuple(self) -> tuple[int, int, int]:
        return self.reserve0, self.reserve1, self.block_timestamp_last


def parse_quantity(value: str) -> int:
    """
    Parse a hex-encoded JSON-RPC quantity (e.g. block number).

    Raises:
        ValueError: If the value is not a 0x-prefixed hex string.
    """
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"Not a hex quantity: {value!r}")
    return int(value, 16)
