"""Rounding never favors the caller.

Fixed-point BPT results are compared with the same formulas evaluated at
80 significant digits: BPT minted must never exceed the exact value and
BPT burned must never fall below it.
"""

import random
from decimal import Decimal, localcontext

import pytest

from poolmath.balancer import stable_math, weighted_math
from poolmath.balancer.scaling import AMP_PRECISION
from poolmath.math.fixed_point import ONE_18, Bfp

NO_FEE = Bfp(0)
_PRECISION = 80

_rng = random.Random(8_020_2024)


def _random_balances(n: int) -> list[int]:
    return [_rng.randint(10**3, 10**7) * ONE_18 + _rng.randint(0, ONE_18) for _ in range(n)]


def _random_amounts(balances: list[int]) -> list[int]:
    return [_rng.randint(0, b // 5) for b in balances]


WEIGHTED_CASES = [
    (w, balances, _random_amounts(balances))
    for w in ("0.5", "0.8", "0.2", "0.65")
    for balances in (_random_balances(2) for _ in range(10))
]

STABLE_CASES = [
    (_rng.randint(1, 2000) * AMP_PRECISION, balances, _random_amounts(balances))
    for balances in (_random_balances(_rng.choice((2, 3))) for _ in range(40))
]


def _weighted_invariant_ratio(balances: list[int], weights: list[Decimal], new_balances: list[int]) -> Decimal:
    ratio = Decimal(1)
    for b, w, nb in zip(balances, weights, new_balances):
        ratio *= (Decimal(nb) / Decimal(b)) ** w
    return ratio


def _exact_stable_invariant(amp: int, balances: list[int]) -> Decimal:
    """Root of D^(n+1) / (n^n * P) + (ann - 1) * D - ann * S, by Newton from D = S."""
    n = len(balances)
    ann = Decimal(amp * n) / AMP_PRECISION
    s = Decimal(sum(balances))
    p = Decimal(1)
    for b in balances:
        p *= b
    d = s
    for _ in range(200):
        d_p = d ** (n + 1) / (Decimal(n) ** n * p)
        f = d_p + (ann - 1) * d - ann * s
        df = (n + 1) * d_p / d + ann - 1
        d_next = d - f / df
        if abs(d_next - d) < Decimal("1e-40"):
            return d_next
        d = d_next
    return d


class TestWeightedRoundingDirection:
    """Weighted joins and exits against the exact closed form."""

    @pytest.mark.parametrize(("w", "balances", "amounts"), WEIGHTED_CASES)
    def test_bpt_out_never_above_exact(self, w: str, balances: list[int], amounts: list[int]) -> None:
        weights = [Decimal(w), 1 - Decimal(w)]
        supply = sum(balances)
        bpt = weighted_math.calc_bpt_out_given_exact_tokens_in(
            [Bfp(b) for b in balances],
            [Bfp.from_decimal(x) for x in weights],
            [Bfp(a) for a in amounts],
            Bfp(supply),
            NO_FEE,
        )
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            new_balances = [b + a for b, a in zip(balances, amounts)]
            exact = supply * (_weighted_invariant_ratio(balances, weights, new_balances) - 1)
            assert Decimal(bpt.value) <= exact

    @pytest.mark.parametrize(("w", "balances", "amounts"), WEIGHTED_CASES)
    def test_bpt_in_never_below_exact(self, w: str, balances: list[int], amounts: list[int]) -> None:
        weights = [Decimal(w), 1 - Decimal(w)]
        supply = sum(balances)
        bpt = weighted_math.calc_bpt_in_given_exact_tokens_out(
            [Bfp(b) for b in balances],
            [Bfp.from_decimal(x) for x in weights],
            [Bfp(a) for a in amounts],
            Bfp(supply),
            NO_FEE,
        )
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            new_balances = [b - a for b, a in zip(balances, amounts)]
            exact = supply * (1 - _weighted_invariant_ratio(balances, weights, new_balances))
            assert Decimal(bpt.value) >= exact


class TestStableRoundingDirection:
    """Stable joins and exits against an 80-digit invariant solve."""

    @pytest.mark.parametrize(("amp", "balances", "amounts"), STABLE_CASES)
    def test_bpt_out_never_above_exact(self, amp: int, balances: list[int], amounts: list[int]) -> None:
        supply = sum(balances)
        bpt = stable_math.calc_bpt_out_given_exact_tokens_in(
            amp, [Bfp(b) for b in balances], [Bfp(a) for a in amounts], Bfp(supply), NO_FEE
        )
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            before = _exact_stable_invariant(amp, balances)
            after = _exact_stable_invariant(amp, [b + a for b, a in zip(balances, amounts)])
            assert Decimal(bpt.value) <= supply * (after / before - 1)

    @pytest.mark.parametrize(("amp", "balances", "amounts"), STABLE_CASES)
    def test_bpt_in_never_below_exact(self, amp: int, balances: list[int], amounts: list[int]) -> None:
        supply = sum(balances)
        bpt = stable_math.calc_bpt_in_given_exact_tokens_out(
            amp, [Bfp(b) for b in balances], [Bfp(a) for a in amounts], Bfp(supply), NO_FEE
        )
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            before = _exact_stable_invariant(amp, balances)
            after = _exact_stable_invariant(amp, [b - a for b, a in zip(balances, amounts)])
            assert Decimal(bpt.value) >= supply * (1 - after / before)
