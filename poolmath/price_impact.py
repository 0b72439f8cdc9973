"""Price impact of joins and exits.

Impact compares what an operation actually moves in BPT against what a
fee-less, perfectly proportional operation of the same token value would
move. Positive impact means the caller is worse off than proportional.
"""

from collections.abc import Sequence
from decimal import Decimal, localcontext
from enum import Enum

import structlog

from poolmath.balancer.scaling import AmountLike, RoundingDirection, normalize_amount, parse_amount
from poolmath.calculator import get_calculator
from poolmath.config import DEFAULT_CONFIG, PoolMathConfig
from poolmath.models.pool import PoolSnapshot
from poolmath.result import CalcResult, MathError, PriceImpactResult

logger = structlog.get_logger()

# Working precision for impact ratios
_RATIO_PRECISION = 50


class PriceImpactMode(str, Enum):
    """Which operation's impact to measure."""

    JOIN = "join"
    EXIT_PROPORTIONAL = "exit_proportional"
    EXIT_SINGLE_ASSET = "exit_single_asset"
    EXIT_EXACT_OUT = "exit_exact_out"


def price_impact(
    pool: PoolSnapshot,
    amounts: Sequence[AmountLike] = (),
    mode: PriceImpactMode = PriceImpactMode.JOIN,
    *,
    bpt_in: AmountLike = None,
    token_index: int | None = None,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> PriceImpactResult:
    """Signed price impact of a join or exit.

    Modes:
        JOIN: deposit exactly ``amounts``; impact = 1 - actual/baseline
        EXIT_EXACT_OUT: withdraw exactly ``amounts``; impact = actual/baseline - 1
        EXIT_SINGLE_ASSET: burn ``bpt_in`` for token ``token_index``; the
            implied token amount is valued against the baseline
        EXIT_PROPORTIONAL: burn ``bpt_in`` for proportional amounts

    Args:
        pool: Pool snapshot
        amounts: One human amount per token (JOIN and EXIT_EXACT_OUT)
        mode: Operation to measure
        bpt_in: BPT burned (EXIT_SINGLE_ASSET and EXIT_PROPORTIONAL)
        token_index: Token paid out (EXIT_SINGLE_ASSET)
        config: Thresholds and non-convergence policy

    Returns:
        PriceImpactResult; approximate if either side degraded

    Raises:
        ValueError: If the mode's required arguments are missing
        UnsupportedPoolType: If the pool type has no solver
    """
    mode = PriceImpactMode(mode)
    calc = get_calculator(pool, config)
    threshold = config.high_price_impact_threshold

    if mode in (PriceImpactMode.EXIT_SINGLE_ASSET, PriceImpactMode.EXIT_PROPORTIONAL):
        if bpt_in is None:
            raise ValueError(f"{mode.value} price impact requires bpt_in")
        actual = CalcResult.ok(normalize_amount(bpt_in, pool.decimals, RoundingDirection.ROUND_UP))

        if mode is PriceImpactMode.EXIT_SINGLE_ASSET:
            if token_index is None:
                raise ValueError("exit_single_asset price impact requires token_index")
            token_out = calc.exact_bpt_in_for_token_out(bpt_in, token_index)
            if token_out.is_approximate:
                return PriceImpactResult(Decimal(0), threshold, token_out.error, token_out.error_detail)
            baseline_amounts: Sequence[AmountLike] = [
                token_out.value if i == token_index else None for i in range(pool.token_count)
            ]
        else:
            baseline_amounts = calc.exact_bpt_in_for_tokens_out(bpt_in)
    else:
        baseline_amounts = amounts
        if mode is PriceImpactMode.JOIN:
            actual = calc.exact_tokens_in_for_bpt_out(amounts)
        else:
            actual = calc.bpt_in_for_exact_tokens_out(amounts)

    if all(parse_amount(amount) == 0 for amount in baseline_amounts):
        return PriceImpactResult(Decimal(0), threshold)
    if actual.is_approximate:
        return PriceImpactResult(Decimal(0), threshold, actual.error, actual.error_detail)

    baseline = calc.bpt_for_tokens_zero_price_impact(baseline_amounts)
    if baseline.is_approximate:
        return PriceImpactResult(Decimal(0), threshold, baseline.error, baseline.error_detail)
    if baseline.amount == 0:
        logger.debug("price_impact_zero_baseline", pool_id=pool.id, mode=mode.value)
        return PriceImpactResult(
            Decimal(0),
            threshold,
            MathError.ZERO_TOTAL_SUPPLY_OR_BALANCE,
            "Zero price impact baseline is zero",
        )

    with localcontext() as ctx:
        ctx.prec = _RATIO_PRECISION
        ratio = actual.amount / baseline.amount
        value = 1 - ratio if mode is PriceImpactMode.JOIN else ratio - 1
    return PriceImpactResult(value, threshold)
