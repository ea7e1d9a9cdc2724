"""
Pool catalog loading.

The catalog is the curated list of high-liquidity pools the monitor
watches. It is loaded once at startup from a JSON file, or taken from
the built-in Merchant Moe catalog on Mantle.
"""

import logging
import re
from pathlib import Path

import orjson
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from cyclearb.config.constants import (
    DEFAULT_TOKEN_DECIMALS,
    JOE_ADDRESS,
    JOE_MOE_POOL,
    JOE_WMNT_POOL,
    MOE_ADDRESS,
    MOE_WMNT_POOL,
    WMNT_ADDRESS,
)
from cyclearb.core.errors import ConfigError
from cyclearb.core.types import PoolKind


logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _normalize_address(value: str) -> str:
    if not _ADDRESS_RE.match(value):
        raise ValueError(f"Not a 20-byte hex address: {value!r}")
    return value.lower()


class AssetRecord(BaseModel):
    """Token entry of the catalog."""

    address: str
    symbol: str = Field(min_length=1)
    decimals: int = Field(default=DEFAULT_TOKEN_DECIMALS, ge=0, le=36)

    @field_validator("address", mode="after")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return _normalize_address(v)


class PoolRecord(BaseModel):
    """
    Pool entry of the catalog.

    Token references may be an asset address or an asset symbol. A
    missing fee falls back to the configured DEX fee.
    """

    pool_address: str = Field(
        validation_alias=AliasChoices("pool_address", "address", "pair_address"),
    )
    token_a: str = Field(min_length=1)
    token_b: str = Field(min_length=1)
    fee: float | None = Field(default=None, ge=0.0, lt=1.0)
    kind: PoolKind = PoolKind.CONSTANT_PRODUCT
    name: str = ""

    model_config = {"populate_by_name": True}

    @field_validator("pool_address", mode="after")
    @classmethod
    def validate_pool_address(cls, v: str) -> str:
        return _normalize_address(v)

    @field_validator("token_a", "token_b", mode="after")
    @classmethod
    def normalize_token_ref(cls, v: str) -> str:
        return v.lower() if v.startswith("0x") else v


class PoolCatalog(BaseModel):
    """Assets and pools the pool graph is built from."""

    assets: list[AssetRecord]
    pools: list[PoolRecord] = Field(min_length=1)


def default_catalog() -> PoolCatalog:
    """
    Built-in Merchant Moe catalog: WMNT, MOE and JOE with the three
    pools linking them.
    """
    return PoolCatalog(
        assets=[
            AssetRecord(address=WMNT_ADDRESS, symbol="WMNT"),
            AssetRecord(address=MOE_ADDRESS, symbol="MOE"),
            AssetRecord(address=JOE_ADDRESS, symbol="JOE"),
        ],
        pools=[
            PoolRecord(pool_address=MOE_WMNT_POOL, token_a="MOE", token_b="WMNT", name="MOE-WMNT"),
            PoolRecord(pool_address=JOE_MOE_POOL, token_a="JOE", token_b="MOE", name="JOE-MOE"),
            PoolRecord(pool_address=JOE_WMNT_POOL, token_a="JOE", token_b="WMNT", name="JOE-WMNT"),
        ],
    )


def load_catalog(path: Path | None = None) -> PoolCatalog:
    """
    Load and validate a pool catalog.

    Args:
        path: JSON catalog file, or None for the built-in catalog.

    Returns:
        Validated catalog.

    Raises:
        ConfigError: If the file is unreadable, not JSON, or invalid.
    """
    if path is None:
        logger.info("No pool catalog configured, using built-in Mantle catalog")
        return default_catalog()

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read pool catalog {path}: {e}") from e

    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ConfigError(f"Pool catalog {path} is not valid JSON: {e}") from e

    try:
        catalog = PoolCatalog.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid pool catalog {path}: {e}") from e

    logger.info(
        f"Loaded pool catalog {path}: {len(catalog.assets)} assets, {len(catalog.pools)} pools"
    )
    return catalog
