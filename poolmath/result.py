"""Typed results for pool math operations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from poolmath.config import HIGH_PRICE_IMPACT_THRESHOLD


class MathError(Enum):
    """Recoverable numeric conditions behind a degraded result."""

    INVARIANT_CONVERGENCE_FAILURE = "invariant_convergence_failure"
    ZERO_TOTAL_SUPPLY_OR_BALANCE = "zero_total_supply_or_balance"


@dataclass(frozen=True)
class CalcResult:
    """Result of a BPT or token amount calculation.

    The value is always a decimal string that can be rendered. When the
    computation degraded (the invariant did not converge, or the pool is
    empty) ``error`` says why and the value is a best-effort sentinel.

    Examples:
        result = CalcResult.ok("20000.000000000000000000")
        assert result.is_valid

        result = CalcResult.degraded("0.000000", MathError.ZERO_TOTAL_SUPPLY_OR_BALANCE)
        assert result.is_approximate
    """

    value: str
    error: MathError | None = None
    error_detail: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def is_approximate(self) -> bool:
        return self.error is not None

    @property
    def amount(self) -> Decimal:
        return Decimal(self.value)

    @classmethod
    def ok(cls, value: str) -> CalcResult:
        return cls(value=value)

    @classmethod
    def degraded(cls, value: str, error: MathError, detail: str | None = None) -> CalcResult:
        return cls(value=value, error=error, error_detail=detail)


@dataclass(frozen=True)
class PriceImpactResult:
    """Signed price impact of a join or exit.

    Attributes:
        value: ``1 - actual/baseline`` for joins, ``actual/baseline - 1`` for
            exits. Positive means the caller gets less than a proportional,
            fee-less operation would give.
        threshold: The caller's "high impact" boundary this result is
            classified against by default.
        error: Set when either side of the ratio was degraded.
    """

    value: Decimal
    threshold: Decimal = HIGH_PRICE_IMPACT_THRESHOLD
    error: MathError | None = None
    error_detail: str | None = None

    @property
    def magnitude(self) -> Decimal:
        """Non-negative impact for display (favorable impact shows as 0)."""
        return max(self.value, Decimal(0))

    @property
    def is_approximate(self) -> bool:
        return self.error is not None

    def is_high(self, threshold: Decimal | None = None) -> bool:
        """True when the impact reaches ``threshold`` (default: ``self.threshold``)."""
        limit = self.threshold if threshold is None else threshold
        return self.magnitude >= limit
