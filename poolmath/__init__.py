"""Balancer-style pool math: BPT for joins and exits, price impact, liquidity."""

from poolmath.calculator import (
    bpt_for_tokens_zero_price_impact,
    bpt_in_for_exact_token_out,
    bpt_in_for_exact_tokens_out,
    exact_bpt_in_for_token_out,
    exact_bpt_in_for_tokens_out,
    exact_tokens_in_for_bpt_out,
    get_calculator,
    proportional_amounts,
)
from poolmath.config import DEFAULT_CONFIG, PoolMathConfig
from poolmath.liquidity import total_liquidity
from poolmath.models import PoolSnapshot, PoolType, TokenInfo
from poolmath.price_impact import PriceImpactMode, price_impact
from poolmath.result import CalcResult, MathError, PriceImpactResult

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_CONFIG",
    "CalcResult",
    "MathError",
    "PoolMathConfig",
    "PoolSnapshot",
    "PoolType",
    "PriceImpactMode",
    "PriceImpactResult",
    "TokenInfo",
    "bpt_for_tokens_zero_price_impact",
    "bpt_in_for_exact_token_out",
    "bpt_in_for_exact_tokens_out",
    "exact_bpt_in_for_token_out",
    "exact_bpt_in_for_tokens_out",
    "exact_tokens_in_for_bpt_out",
    "get_calculator",
    "price_impact",
    "proportional_amounts",
    "total_liquidity",
    "__version__",
]
