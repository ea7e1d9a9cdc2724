"""
Async JSON-RPC client for EVM chain reads.

Optimized for per-block reserve sweeps with:
- Connection pooling and keep-alive
- Fast JSON encoding and parsing with orjson
- Integrated client-side rate limiting
"""

import asyncio
import itertools
from collections.abc import Iterable
from typing import Any

import aiohttp
import orjson
from pydantic import ValidationError

from cyclearb.chain.models import JsonRpcRequest, JsonRpcResponse, ReservesResult, parse_quantity
from cyclearb.chain.rate_limiter import RateLimiter
from cyclearb.config.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    GET_RESERVES_SELECTOR,
    RPC_BLOCK_TAG_LATEST,
    RPC_METHOD_BLOCK_NUMBER,
    RPC_METHOD_CALL,
)
from cyclearb.core.errors import NetworkError
from cyclearb.core.types import Pool


class RpcError(NetworkError):
    """Error object returned by the node for a JSON-RPC call."""


class JsonRpcClient:
    """
    Async JSON-RPC client implementing the ChainReader protocol.

    Features:
    - Single session with connection pooling
    - Keep-alive for reduced latency
    - orjson for fast JSON handling
    - Reserves returned in the catalog's (token_a, token_b) order
    """

    def __init__(
        self,
        endpoint: str,
        pools: Iterable[Pool] = (),
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            endpoint: HTTP(S) JSON-RPC endpoint.
            pools: Pools whose reserves will be read. A pair contract
                reports reserves in (token0, token1) order with token0
                the lower address; pools declared the other way round
                are flipped.
            timeout_seconds: Total timeout per request.
            rate_limiter: Optional rate limiter instance.
        """
        self._endpoint = endpoint
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._rate_limiter = rate_limiter or RateLimiter()
        self._session: aiohttp.ClientSession | None = None
        self._ids = itertools.count(1)
        self._flipped: frozenset[str] = frozenset(
            pool.address for pool in pools if pool.token_a > pool.token_b
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=50,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
                force_close=False,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _request(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name.
            params: Positional parameters.

        Returns:
            The `result` member of the response.

        Raises:
            RpcError: On a JSON-RPC error object.
            NetworkError: On transport, HTTP or decoding errors.
        """
        await self._rate_limiter.acquire()

        request = JsonRpcRequest(id=next(self._ids), method=method, params=params or [])
        session = await self._get_session()

        try:
            async with session.post(self._endpoint, json=request.model_dump()) as response:
                return await self._handle_response(response)
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error calling {method}: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timeout calling {method}") from e

    async def _handle_response(self, response: aiohttp.ClientResponse) -> Any:
        """Parse and validate response."""
        body = await response.read()

        if response.status >= 400:
            raise NetworkError(
                f"HTTP {response.status}: {body[:200]!r}", code=response.status
            )

        try:
            parsed = JsonRpcResponse.model_validate(orjson.loads(body))
        except orjson.JSONDecodeError as e:
            raise NetworkError(f"Invalid JSON response: {e}") from e
        except ValidationError as e:
            raise NetworkError(f"Malformed JSON-RPC response: {e}") from e

        if parsed.error is not None:
            raise RpcError(parsed.error.message, code=parsed.error.code)

        return parsed.result

    # =========================================================================
    # Chain Reads
    # =========================================================================

    async def get_block_number(self) -> int:
        """
        Get the latest block height.

        Raises:
            NetworkError: On any failure.
        """
        result = await self._request(RPC_METHOD_BLOCK_NUMBER)
        try:
            return parse_quantity(result)
        except ValueError as e:
            raise NetworkError(f"Bad block number: {e}") from e

    async def get_reserves(self, pool_id: str) -> tuple[int, int, int]:
        """
        Get raw reserves of a pair in (token_a, token_b) order.

        Args:
            pool_id: Pair contract address.

        Returns:
            Tuple of (reserve_a, reserve_b, block_timestamp_last).

        Raises:
            NetworkError: On any failure, including undecodable output.
        """
        call = {"to": pool_id, "data": GET_RESERVES_SELECTOR}
        result = await self._request(RPC_METHOD_CALL, [call, RPC_BLOCK_TAG_LATEST])

        try:
            reserves = ReservesResult.from_hex(result)
        except ValueError as e:
            raise NetworkError(f"Undecodable getReserves output for {pool_id}: {e}") from e

        if pool_id in self._flipped:
            return reserves.reserve1, reserves.reserve0, reserves.block_timestamp_last
        return reserves.as_tuple()

    async def __aenter__(self) -> "JsonRpcClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
