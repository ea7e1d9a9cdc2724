"""Chain access module: JSON-RPC client, payload models and rate limiting."""

from cyclearb.chain.client import JsonRpcClient, RpcError
from cyclearb.chain.models import JsonRpcResponse, ReservesResult
from cyclearb.chain.rate_limiter import RateLimiter, TokenBucket


__all__ = [
    "JsonRpcClient",
    "JsonRpcResponse",
    "RateLimiter",
    "ReservesResult",
    "RpcError",
    "TokenBucket",
]
