"""Per-pool-type join/exit calculators.

A calculator binds one pool snapshot to the math of its invariant family.
Amounts go in and come out as human decimal strings; everything in between
is 18-decimal fixed point. Rounding always favors the pool: BPT minted and
tokens paid out round down, BPT burned rounds up.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog

from poolmath.config import DEFAULT_CONFIG, PoolMathConfig
from poolmath.errors import InvalidAmount, InvariantConvergenceFailure, ZeroTotalSupplyOrBalance
from poolmath.math.fixed_point import Bfp
from poolmath.models.pool import PoolSnapshot, PoolType
from poolmath.result import CalcResult, MathError

from . import stable_math, weighted_math
from .scaling import (
    AmountLike,
    RoundingDirection,
    adjust_amplification,
    denormalize,
    format_units,
    scale_in,
    scale_out,
    swap_fee_bfp,
    to_native_units,
)

logger = structlog.get_logger()


class PoolCalculator:
    """Join/exit operations shared by every pool type.

    Subclasses provide the invariant math through the ``_calc_*`` hooks.
    """

    def __init__(self, pool: PoolSnapshot, config: PoolMathConfig = DEFAULT_CONFIG) -> None:
        self.pool = pool
        self.kind: PoolType = pool.kind
        self.config = config
        self.swap_fee = swap_fee_bfp(pool.swap_fee)
        self.scaled_balances = [
            scale_in(token.balance, token.decimals, token.price_rate) for token in pool.tokens
        ]
        self.scaled_total_supply = scale_in(pool.total_supply, pool.decimals)

    # -------------------------------------------------------------------------
    # Invariant hooks
    # -------------------------------------------------------------------------

    def _calc_bpt_out_given_exact_tokens_in(self, amounts: list[Bfp]) -> Bfp:
        raise NotImplementedError

    def _calc_bpt_in_given_exact_tokens_out(self, amounts: list[Bfp]) -> Bfp:
        raise NotImplementedError

    def _calc_token_out_given_exact_bpt_in(self, token_index: int, bpt_in: Bfp) -> Bfp:
        raise NotImplementedError

    def _calc_bpt_zero_price_impact(self, amounts: list[Bfp]) -> Bfp:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_index(self, token_index: int) -> None:
        if not 0 <= token_index < self.pool.token_count:
            raise IndexError(
                f"token_index {token_index} out of range for {self.pool.token_count} tokens"
            )

    def _scale_amounts(self, amounts: Sequence[AmountLike]) -> list[Bfp]:
        """Scale one amount per token, padding missing trailing amounts with zero."""
        if len(amounts) > self.pool.token_count:
            raise InvalidAmount(
                f"Got {len(amounts)} amounts for a pool of {self.pool.token_count} tokens"
            )
        padded = list(amounts) + [None] * (self.pool.token_count - len(amounts))
        return [
            scale_in(amount, token.decimals, token.price_rate)
            for amount, token in zip(padded, self.pool.tokens)
        ]

    def _single_amount(self, token_index: int, amount: AmountLike) -> list[AmountLike]:
        return [amount if i == token_index else None for i in range(self.pool.token_count)]

    def _run(
        self,
        operation: str,
        compute: Callable[[], Bfp],
        decimals: int,
        price_rate: AmountLike,
        rounding: RoundingDirection,
    ) -> CalcResult:
        """Run one computation, degrading recoverable numeric failures to zero."""
        try:
            value = compute()
        except ZeroTotalSupplyOrBalance as err:
            logger.debug(
                "pool_has_no_liquidity",
                pool_id=self.pool.id,
                operation=operation,
                error=str(err),
            )
            return CalcResult.degraded(
                format_units(0, decimals), MathError.ZERO_TOTAL_SUPPLY_OR_BALANCE, str(err)
            )
        except InvariantConvergenceFailure as err:
            if self.config.raise_on_non_convergence:
                raise
            logger.warning(
                "stable_invariant_did_not_converge",
                pool_id=self.pool.id,
                operation=operation,
                max_iterations=self.config.max_iterations,
                error=str(err),
            )
            return CalcResult.degraded(
                format_units(0, decimals), MathError.INVARIANT_CONVERGENCE_FAILURE, str(err)
            )
        return CalcResult.ok(scale_out(value, decimals, price_rate, rounding))

    # -------------------------------------------------------------------------
    # Joins
    # -------------------------------------------------------------------------

    def exact_tokens_in_for_bpt_out(self, amounts: Sequence[AmountLike]) -> CalcResult:
        """BPT minted for depositing exactly ``amounts`` (one per token)."""
        scaled = self._scale_amounts(amounts)
        return self._run(
            "exact_tokens_in_for_bpt_out",
            lambda: self._calc_bpt_out_given_exact_tokens_in(scaled),
            self.pool.decimals,
            None,
            RoundingDirection.ROUND_DOWN,
        )

    def proportional_amounts(self, token_index: int, amount: AmountLike) -> list[str]:
        """Amounts of every token matching ``amount`` of one token proportionally.

        The fixed token is truncated to its decimals; the others are inputs
        to the pool and round up.
        """
        self._check_index(token_index)
        fixed = self.pool.tokens[token_index]
        fixed_native = to_native_units(amount, fixed.decimals, RoundingDirection.ROUND_DOWN)
        fixed_balance = to_native_units(fixed.balance, fixed.decimals, RoundingDirection.ROUND_DOWN)

        result = []
        for i, token in enumerate(self.pool.tokens):
            if i == token_index:
                native = fixed_native
            elif fixed_balance == 0:
                native = 0
            else:
                balance = to_native_units(token.balance, token.decimals, RoundingDirection.ROUND_DOWN)
                native = -(-balance * fixed_native // fixed_balance)
            result.append(format_units(native, token.decimals))

        if fixed_balance == 0:
            logger.debug("proportional_amounts_empty_balance", pool_id=self.pool.id, token_index=token_index)
        return result

    # -------------------------------------------------------------------------
    # Exits
    # -------------------------------------------------------------------------

    def bpt_in_for_exact_tokens_out(self, amounts: Sequence[AmountLike]) -> CalcResult:
        """BPT burned to withdraw exactly ``amounts`` (one per token)."""
        scaled = self._scale_amounts(amounts)
        return self._run(
            "bpt_in_for_exact_tokens_out",
            lambda: self._calc_bpt_in_given_exact_tokens_out(scaled),
            self.pool.decimals,
            None,
            RoundingDirection.ROUND_UP,
        )

    def bpt_in_for_exact_token_out(self, amount: AmountLike, token_index: int) -> CalcResult:
        """BPT burned to withdraw exactly ``amount`` of a single token."""
        self._check_index(token_index)
        return self.bpt_in_for_exact_tokens_out(self._single_amount(token_index, amount))

    def exact_bpt_in_for_token_out(self, bpt_amount: AmountLike, token_index: int) -> CalcResult:
        """Single token paid out for burning exactly ``bpt_amount``."""
        self._check_index(token_index)
        token = self.pool.tokens[token_index]
        bpt_in = scale_in(bpt_amount, self.pool.decimals)
        if bpt_in.value == 0:
            return CalcResult.ok(format_units(0, token.decimals))
        return self._run(
            "exact_bpt_in_for_token_out",
            lambda: self._calc_token_out_given_exact_bpt_in(token_index, bpt_in),
            token.decimals,
            token.price_rate,
            RoundingDirection.ROUND_DOWN,
        )

    def exact_bpt_in_for_tokens_out(self, bpt_amount: AmountLike) -> list[str]:
        """Proportional amounts paid out for burning ``bpt_amount``, without fee.

        Raises:
            InvalidAmount: If bpt_amount exceeds the total supply
        """
        bpt_in = scale_in(bpt_amount, self.pool.decimals)
        supply = self.scaled_total_supply.value
        if bpt_in.value > supply:
            raise InvalidAmount(f"BPT amount {bpt_amount} exceeds the total supply")
        if supply == 0:
            logger.debug("pool_has_no_liquidity", pool_id=self.pool.id, operation="exact_bpt_in_for_tokens_out")
            return [format_units(0, token.decimals) for token in self.pool.tokens]

        result = []
        for token in self.pool.tokens:
            balance = to_native_units(token.balance, token.decimals, RoundingDirection.ROUND_DOWN)
            result.append(format_units(balance * bpt_in.value // supply, token.decimals))
        return result

    # -------------------------------------------------------------------------
    # Price impact baseline
    # -------------------------------------------------------------------------

    def bpt_for_tokens_zero_price_impact(self, amounts: Sequence[AmountLike]) -> CalcResult:
        """BPT a fee-less, proportional operation worth ``amounts`` would move."""
        scaled = self._scale_amounts(amounts)
        return self._run(
            "bpt_for_tokens_zero_price_impact",
            lambda: self._calc_bpt_zero_price_impact(scaled),
            self.pool.decimals,
            None,
            RoundingDirection.ROUND_DOWN,
        )


class WeightedPoolCalculator(PoolCalculator):
    """Weighted product pools (Weighted, Investment, LiquidityBootstrapping)."""

    def __init__(self, pool: PoolSnapshot, config: PoolMathConfig = DEFAULT_CONFIG) -> None:
        super().__init__(pool, config)
        self.weights = [Bfp.from_decimal(w) for w in pool.weights or ()]

    def _calc_bpt_out_given_exact_tokens_in(self, amounts: list[Bfp]) -> Bfp:
        return weighted_math.calc_bpt_out_given_exact_tokens_in(
            self.scaled_balances, self.weights, amounts, self.scaled_total_supply, self.swap_fee
        )

    def _calc_bpt_in_given_exact_tokens_out(self, amounts: list[Bfp]) -> Bfp:
        return weighted_math.calc_bpt_in_given_exact_tokens_out(
            self.scaled_balances, self.weights, amounts, self.scaled_total_supply, self.swap_fee
        )

    def _calc_token_out_given_exact_bpt_in(self, token_index: int, bpt_in: Bfp) -> Bfp:
        return weighted_math.calc_token_out_given_exact_bpt_in(
            self.scaled_balances[token_index],
            self.weights[token_index],
            bpt_in,
            self.scaled_total_supply,
            self.swap_fee,
        )

    def _calc_bpt_zero_price_impact(self, amounts: list[Bfp]) -> Bfp:
        return weighted_math.bpt_for_tokens_zero_price_impact(
            self.scaled_balances, self.weights, amounts, self.scaled_total_supply
        )


class StablePoolCalculator(PoolCalculator):
    """StableSwap pools (Stable and MetaStable).

    MetaStable tokens carry a price rate, which is folded into the scaled
    balances and amounts so the invariant sees rate-adjusted values.
    """

    def __init__(self, pool: PoolSnapshot, config: PoolMathConfig = DEFAULT_CONFIG) -> None:
        super().__init__(pool, config)
        self.amp = adjust_amplification(pool.amp)

    def _calc_bpt_out_given_exact_tokens_in(self, amounts: list[Bfp]) -> Bfp:
        return stable_math.calc_bpt_out_given_exact_tokens_in(
            self.amp,
            self.scaled_balances,
            amounts,
            self.scaled_total_supply,
            self.swap_fee,
            self.config.max_iterations,
        )

    def _calc_bpt_in_given_exact_tokens_out(self, amounts: list[Bfp]) -> Bfp:
        return stable_math.calc_bpt_in_given_exact_tokens_out(
            self.amp,
            self.scaled_balances,
            amounts,
            self.scaled_total_supply,
            self.swap_fee,
            self.config.max_iterations,
        )

    def _calc_token_out_given_exact_bpt_in(self, token_index: int, bpt_in: Bfp) -> Bfp:
        return stable_math.calc_token_out_given_exact_bpt_in(
            self.amp,
            self.scaled_balances,
            token_index,
            bpt_in,
            self.scaled_total_supply,
            self.swap_fee,
            self.config.max_iterations,
        )

    def _calc_bpt_zero_price_impact(self, amounts: list[Bfp]) -> Bfp:
        # The zero-impact formula takes native-decimal balances and amounts
        decimals = [token.decimals for token in self.pool.tokens]
        return stable_math.bpt_for_tokens_zero_price_impact(
            self.amp,
            [denormalize(b, d) for b, d in zip(self.scaled_balances, decimals)],
            decimals,
            [denormalize(a, d) for a, d in zip(amounts, decimals)],
            self.scaled_total_supply,
            self.config.max_iterations,
        )
