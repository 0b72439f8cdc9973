"""Marginal price between two stable pool tokens.

Local linearization of the StableSwap invariant at the current balances.
It values tokens that have no external price quote; it does not simulate
a trade and is never used to price one.
"""

from collections.abc import Sequence
from decimal import Decimal, localcontext

import structlog

from poolmath.balancer.stable_math import calculate_invariant
from poolmath.config import DEFAULT_CONFIG, PoolMathConfig
from poolmath.errors import InvariantConvergenceFailure
from poolmath.math.fixed_point import Bfp

logger = structlog.get_logger()

# Working precision for the final ratio of two exact integers
_PRICE_PRECISION = 50


def stable_spot_price(
    amp: int,
    balances: Sequence[Bfp],
    index_x: int,
    index_y: int,
    *,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> Decimal:
    """Price of token ``index_x`` in units of token ``index_y``.

    With ``a = 2 * amp`` and ``b = D - a * D`` at the converged invariant D:

        price = (2axy + ay^2 + by) / (2axy + ax^2 + bx)

    Args:
        amp: Adjusted amplification parameter
        balances: Scaled token balances
        index_x: Token being priced
        index_y: Reference token
        config: Supplies the Newton cap and the non-convergence policy

    Returns:
        The price, or ``config.fallback_spot_price`` if the invariant does
        not converge and ``config.raise_on_non_convergence`` is off

    Raises:
        ZeroTotalSupplyOrBalance: If any balance is zero
        IndexError: If an index is out of range
    """
    x = balances[index_x].value
    y = balances[index_y].value

    try:
        invariant = calculate_invariant(amp, balances, config.max_iterations).value
    except InvariantConvergenceFailure as err:
        if config.raise_on_non_convergence:
            raise
        logger.warning(
            "stable_spot_price_fallback",
            index_x=index_x,
            index_y=index_y,
            fallback=str(config.fallback_spot_price),
            error=str(err),
        )
        return config.fallback_spot_price

    a = 2 * amp
    b = invariant - a * invariant
    axy2 = 2 * a * x * y

    derivative_x = axy2 + a * y * y + b * y
    derivative_y = axy2 + a * x * x + b * x

    with localcontext() as ctx:
        ctx.prec = _PRICE_PRECISION
        return Decimal(derivative_x) / Decimal(derivative_y)
