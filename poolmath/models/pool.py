"""Pydantic models for pool snapshots.

A snapshot is the immutable view of pool state handed to the math engine
by whatever reads the chain or the subgraph. Field aliases follow the
subgraph's camelCase so its payloads validate directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from poolmath.errors import InvalidPoolSnapshot, UnsupportedPoolType
from poolmath.models.types import ExactDecimal, normalize_address

# Normalized weights must sum to one within this tolerance
WEIGHT_SUM_TOLERANCE = Decimal("0.000001")


class PoolType(str, Enum):
    """Invariant family a pool's math is solved with."""

    WEIGHTED = "Weighted"
    STABLE = "Stable"
    META_STABLE = "MetaStable"

    @property
    def is_stable_like(self) -> bool:
        return self in (PoolType.STABLE, PoolType.META_STABLE)


# Subgraph pool type names, lowercased, mapped to their invariant family
_POOL_TYPE_NAMES = {
    "weighted": PoolType.WEIGHTED,
    "investment": PoolType.WEIGHTED,
    "liquiditybootstrapping": PoolType.WEIGHTED,
    "stable": PoolType.STABLE,
    "metastable": PoolType.META_STABLE,
}


def lookup_pool_type(name: str | PoolType) -> PoolType | None:
    """Return the invariant family for a pool type name, or None."""
    if isinstance(name, PoolType):
        return name
    return _POOL_TYPE_NAMES.get(name.replace("_", "").lower())


def resolve_pool_type(name: str | PoolType) -> PoolType:
    """Resolve a pool type name to its invariant family.

    Raises:
        UnsupportedPoolType: If no solver handles this pool type
    """
    pool_type = lookup_pool_type(name)
    if pool_type is None:
        raise UnsupportedPoolType(f"No solver for pool type {name!r}")
    return pool_type


class TokenInfo(BaseModel):
    """A token held by the pool.

    Attributes:
        address: Token address (compared case-insensitively)
        decimals: Native decimals of the token, 0 to 18
        balance: Pool balance as a human decimal (e.g. "1000.5")
        price_rate: Rate applied on top of the balance (MetaStable pools
            hold yield-bearing tokens whose rate drifts above 1)
    """

    address: str
    decimals: int = Field(ge=0, le=18)
    balance: ExactDecimal = Field(ge=0)
    price_rate: ExactDecimal = Field(default=Decimal(1), gt=0, alias="priceRate")
    symbol: str | None = None

    model_config = {"frozen": True, "populate_by_name": True}


class PoolSnapshot(BaseModel):
    """Immutable view of a pool's state at one point in time."""

    id: str = ""
    pool_type: str = Field(alias="poolType")
    tokens: tuple[TokenInfo, ...] = Field(min_length=2)
    total_supply: ExactDecimal = Field(ge=0, alias="totalSupply")
    decimals: int = Field(default=18, ge=0, le=18, description="Decimals of the pool token")
    swap_fee: ExactDecimal = Field(ge=0, lt=1, alias="swapFee")
    amp: ExactDecimal | None = Field(default=None, gt=0)
    weights: tuple[ExactDecimal, ...] | None = None

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def _check_pool_parameters(self) -> PoolSnapshot:
        pool_type = lookup_pool_type(self.pool_type)
        if pool_type is PoolType.WEIGHTED:
            if self.weights is None:
                raise ValueError("weighted pools require weights")
            if len(self.weights) != len(self.tokens):
                raise ValueError(
                    f"expected {len(self.tokens)} weights, got {len(self.weights)}"
                )
            if any(w <= 0 for w in self.weights):
                raise ValueError("weights must be positive")
            if abs(sum(self.weights) - 1) > WEIGHT_SUM_TOLERANCE:
                raise ValueError(f"weights must sum to 1, got {sum(self.weights)}")
        elif pool_type is not None and pool_type.is_stable_like and self.amp is None:
            raise ValueError(f"{self.pool_type} pools require an amplification parameter")
        return self

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PoolSnapshot:
        """Validate a raw payload (e.g. parsed subgraph JSON).

        Raises:
            InvalidPoolSnapshot: If the payload violates the snapshot invariants
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as err:
            raise InvalidPoolSnapshot(str(err)) from err

    @property
    def kind(self) -> PoolType:
        """Invariant family of this pool (raises UnsupportedPoolType)."""
        return resolve_pool_type(self.pool_type)

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    def token_index(self, address: str) -> int | None:
        """Index of a token by address, case-insensitively."""
        wanted = normalize_address(address)
        for i, token in enumerate(self.tokens):
            if normalize_address(token.address) == wanted:
                return i
        return None
