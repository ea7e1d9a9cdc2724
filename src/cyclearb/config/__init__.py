"""Configuration module for the cycle arbitrage monitor."""

from cyclearb.config.catalog import (
    AssetRecord,
    PoolCatalog,
    PoolRecord,
    default_catalog,
    load_catalog,
)
from cyclearb.config.constants import (
    DEFAULT_DEX_FEE,
    DEFAULT_TRANSACTION_COST,
    MANTLE_RPC_URL,
)
from cyclearb.config.settings import Settings, get_settings


__all__ = [
    "AssetRecord",
    "DEFAULT_DEX_FEE",
    "DEFAULT_TRANSACTION_COST",
    "MANTLE_RPC_URL",
    "PoolCatalog",
    "PoolRecord",
    "Settings",
    "default_catalog",
    "get_settings",
    "load_catalog",
]
