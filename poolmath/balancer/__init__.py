"""Balancer weighted and stable pool join/exit math.

Pool types supported:
- Weighted product (Weighted, Investment, LiquidityBootstrapping)
- StableSwap (Stable, MetaStable)
"""

# Calculators
from .calculators import PoolCalculator, StablePoolCalculator, WeightedPoolCalculator

# Scaling helpers
from .scaling import (
    AMP_PRECISION,
    RoundingDirection,
    adjust_amplification,
    denormalize,
    parse_amount,
    scale_in,
    scale_out,
    swap_fee_bfp,
)

# Spot price
from .spot_price import stable_spot_price

__all__ = [
    "AMP_PRECISION",
    "PoolCalculator",
    "RoundingDirection",
    "StablePoolCalculator",
    "WeightedPoolCalculator",
    "adjust_amplification",
    "denormalize",
    "parse_amount",
    "scale_in",
    "scale_out",
    "stable_spot_price",
    "swap_fee_bfp",
]
