"""Data models for pool snapshots."""

from poolmath.models.pool import (
    PoolSnapshot,
    PoolType,
    TokenInfo,
    lookup_pool_type,
    resolve_pool_type,
)
from poolmath.models.types import ExactDecimal, normalize_address

__all__ = [
    "PoolSnapshot",
    "PoolType",
    "TokenInfo",
    "lookup_pool_type",
    "resolve_pool_type",
    "ExactDecimal",
    "normalize_address",
]
