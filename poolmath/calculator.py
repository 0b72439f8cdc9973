"""Public join/exit operations over any supported pool.

The pool type is resolved once per call and the matching calculator is
built from the snapshot; nothing is cached between calls.

Example:
    pool = PoolSnapshot.from_payload(payload)
    result = exact_tokens_in_for_bpt_out(pool, ["10", "10"])
    if result.is_valid:
        print(result.value)
"""

from collections.abc import Sequence

from poolmath.balancer.calculators import PoolCalculator, StablePoolCalculator, WeightedPoolCalculator
from poolmath.balancer.scaling import AmountLike
from poolmath.config import DEFAULT_CONFIG, PoolMathConfig
from poolmath.models.pool import PoolSnapshot, PoolType
from poolmath.result import CalcResult

_CALCULATORS: dict[PoolType, type[PoolCalculator]] = {
    PoolType.WEIGHTED: WeightedPoolCalculator,
    PoolType.STABLE: StablePoolCalculator,
    PoolType.META_STABLE: StablePoolCalculator,
}


def get_calculator(pool: PoolSnapshot, config: PoolMathConfig = DEFAULT_CONFIG) -> PoolCalculator:
    """Build the calculator for the pool's invariant family.

    Raises:
        UnsupportedPoolType: If no calculator handles the pool type
    """
    return _CALCULATORS[pool.kind](pool, config)


def exact_tokens_in_for_bpt_out(
    pool: PoolSnapshot,
    amounts: Sequence[AmountLike],
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> CalcResult:
    """BPT minted for depositing exactly ``amounts``."""
    return get_calculator(pool, config).exact_tokens_in_for_bpt_out(amounts)


def bpt_in_for_exact_tokens_out(
    pool: PoolSnapshot,
    amounts: Sequence[AmountLike],
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> CalcResult:
    """BPT burned to withdraw exactly ``amounts``."""
    return get_calculator(pool, config).bpt_in_for_exact_tokens_out(amounts)


def bpt_in_for_exact_token_out(
    pool: PoolSnapshot,
    amount: AmountLike,
    token_index: int,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> CalcResult:
    return get_calculator(pool, config).bpt_in_for_exact_token_out(amount, token_index)


def exact_bpt_in_for_token_out(
    pool: PoolSnapshot,
    bpt_amount: AmountLike,
    token_index: int,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> CalcResult:
    return get_calculator(pool, config).exact_bpt_in_for_token_out(bpt_amount, token_index)


def exact_bpt_in_for_tokens_out(
    pool: PoolSnapshot,
    bpt_amount: AmountLike,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Proportional withdrawal for ``bpt_amount``, no fee, rounded down."""
    return get_calculator(pool, config).exact_bpt_in_for_tokens_out(bpt_amount)


def proportional_amounts(
    pool: PoolSnapshot,
    token_index: int,
    amount: AmountLike,
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Deposit amounts for every token that match ``amount`` of one token."""
    return get_calculator(pool, config).proportional_amounts(token_index, amount)


def bpt_for_tokens_zero_price_impact(
    pool: PoolSnapshot,
    amounts: Sequence[AmountLike],
    config: PoolMathConfig = DEFAULT_CONFIG,
) -> CalcResult:
    return get_calculator(pool, config).bpt_for_tokens_zero_price_impact(amounts)
