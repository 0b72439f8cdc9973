"""Test helpers module for shared test utilities.

- factories: pool snapshot factory functions and token addresses
"""

from tests.helpers.factories import DAI, USDC, USDT, WETH, make_stable_pool, make_weighted_pool

__all__ = [
    "DAI",
    "USDC",
    "USDT",
    "WETH",
    "make_stable_pool",
    "make_weighted_pool",
]
