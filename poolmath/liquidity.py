"""Total pool value in a reference currency."""

from collections.abc import Mapping
from decimal import Decimal, localcontext

import structlog

from poolmath.balancer.scaling import AmountLike, adjust_amplification, parse_amount, scale_in
from poolmath.balancer.spot_price import stable_spot_price
from poolmath.config import DEFAULT_CONFIG, PoolMathConfig
from poolmath.errors import ZeroTotalSupplyOrBalance
from poolmath.models.pool import PoolSnapshot, PoolType
from poolmath.models.types import normalize_address

logger = structlog.get_logger()

_VALUE_PRECISION = 50


def _known_prices(pool: PoolSnapshot, prices: Mapping[str, AmountLike]) -> list[Decimal | None]:
    """Reference price per pool token; missing or zero prices are None."""
    by_address = {normalize_address(address): price for address, price in prices.items()}
    known: list[Decimal | None] = []
    for token in pool.tokens:
        price = parse_amount(by_address.get(normalize_address(token.address)))
        known.append(price if price > 0 else None)
    return known


def total_liquidity(
    pool: PoolSnapshot,
    prices: Mapping[str, AmountLike],
    *,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> Decimal:
    """Value of everything the pool holds, in the currency of ``prices``.

    Weighted pools extrapolate from the priced tokens: their value divided
    by their share of the weight. Stable pools sum priced tokens and value
    the rest at the invariant's spot price against the first priced token.
    Returns 0 when no token has a price.

    Raises:
        UnsupportedPoolType: If the pool type has no solver
        InvalidAmount: If a price is negative or not a number
    """
    kind = pool.kind
    known = _known_prices(pool, prices)
    if all(price is None for price in known):
        logger.debug("liquidity_no_prices", pool_id=pool.id)
        return Decimal(0)

    with localcontext() as ctx:
        ctx.prec = _VALUE_PRECISION
        if kind is PoolType.WEIGHTED:
            return _weighted_liquidity(pool, known)
        return _stable_liquidity(pool, known, config)


def _weighted_liquidity(pool: PoolSnapshot, known: list[Decimal | None]) -> Decimal:
    weights = pool.weights or ()
    sum_value = Decimal(0)
    sum_weight = Decimal(0)
    for token, weight, price in zip(pool.tokens, weights, known):
        if price is None:
            continue
        sum_value += token.balance * price
        sum_weight += weight
    return sum_value / sum_weight * sum(weights, Decimal(0))


def _stable_liquidity(
    pool: PoolSnapshot,
    known: list[Decimal | None],
    config: PoolMathConfig,
) -> Decimal:
    ref_index = next(i for i, price in enumerate(known) if price is not None)
    ref_token = pool.tokens[ref_index]
    ref_price = known[ref_index]

    sum_value = sum(
        (token.balance * price for token, price in zip(pool.tokens, known) if price is not None),
        Decimal(0),
    )
    if all(price is not None for price in known):
        return sum_value

    amp = adjust_amplification(pool.amp)
    scaled_balances = [scale_in(t.balance, t.decimals, t.price_rate) for t in pool.tokens]
    for i, (token, price) in enumerate(zip(pool.tokens, known)):
        if price is not None:
            continue
        try:
            spot = stable_spot_price(amp, scaled_balances, i, ref_index, config=config)
        except ZeroTotalSupplyOrBalance as err:
            logger.debug("liquidity_spot_price_skipped", pool_id=pool.id, token=token.address, error=str(err))
            continue
        # Spot price is between rate-scaled units
        sum_value += token.balance * token.price_rate * spot / ref_token.price_rate * ref_price
    return sum_value
