"""Tests for join and exit price impact."""

from decimal import Decimal

import pytest

from poolmath.config import PoolMathConfig
from poolmath.errors import InvalidAmount
from poolmath.models import PoolSnapshot
from poolmath.price_impact import PriceImpactMode, price_impact
from poolmath.result import MathError, PriceImpactResult
from tests.helpers import make_stable_pool, make_weighted_pool


class TestJoinImpact:
    """Impact of exact-in joins."""

    def test_proportional_weighted_join_is_near_zero(self, weighted_pool: PoolSnapshot) -> None:
        result = price_impact(weighted_pool, ["10", "10"])
        assert abs(result.value) < Decimal("1e-9")
        assert not result.is_high()

    def test_proportional_stable_join_is_zero(self, stable_pool: PoolSnapshot) -> None:
        result = price_impact(stable_pool, ["10000", "10000"])
        assert result.value == 0
        assert not result.is_approximate

    def test_single_sided_weighted_join(self, weighted_pool: PoolSnapshot) -> None:
        """20 of one token mints about 9.54 BPT against a 10 BPT baseline."""
        result = price_impact(weighted_pool, ["20", "0"])
        assert Decimal("0.04") < result.value < Decimal("0.05")
        assert result.is_high()

    def test_single_sided_stable_join_is_small(self, stable_pool: PoolSnapshot) -> None:
        result = price_impact(stable_pool, ["20000", "0"])
        assert 0 < result.value < Decimal("0.005")

    def test_fee_increases_impact(self) -> None:
        no_fee = price_impact(make_weighted_pool(), ["20", "0"])
        with_fee = price_impact(make_weighted_pool(swap_fee="0.01"), ["20", "0"])
        assert with_fee.value > no_fee.value

    def test_zero_amounts_have_no_impact(self, weighted_pool: PoolSnapshot) -> None:
        result = price_impact(weighted_pool, ["0", "0"])
        assert result.value == 0
        assert not result.is_approximate

    def test_mode_accepts_string(self, weighted_pool: PoolSnapshot) -> None:
        assert price_impact(weighted_pool, ["20", "0"], "join") == price_impact(weighted_pool, ["20", "0"])


class TestExitImpact:
    """Impact of the three exit shapes."""

    def test_exact_out_proportional_is_near_zero(self, weighted_pool: PoolSnapshot) -> None:
        result = price_impact(weighted_pool, ["10", "10"], PriceImpactMode.EXIT_EXACT_OUT)
        assert abs(result.value) < Decimal("1e-9")

    def test_exact_out_single_sided_stable(self, stable_pool: PoolSnapshot) -> None:
        result = price_impact(stable_pool, ["20000", "0"], PriceImpactMode.EXIT_EXACT_OUT)
        assert 0 < result.value < Decimal("0.005")

    def test_exact_out_draining_a_balance_with_fee_raises(self) -> None:
        with pytest.raises(InvalidAmount):
            price_impact(
                make_stable_pool(swap_fee="0.01"), ["999000", "0"], PriceImpactMode.EXIT_EXACT_OUT
            )

    def test_proportional_exit_has_no_impact(self, weighted_pool: PoolSnapshot) -> None:
        result = price_impact(weighted_pool, mode=PriceImpactMode.EXIT_PROPORTIONAL, bpt_in="10")
        assert result.value == 0

    def test_single_asset_exit(self, weighted_pool: PoolSnapshot) -> None:
        """Burning 10 BPT pays 19 of one token, worth only 9.5 BPT at spot."""
        result = price_impact(
            weighted_pool, mode=PriceImpactMode.EXIT_SINGLE_ASSET, bpt_in="10", token_index=0
        )
        assert Decimal("0.05") < result.value < Decimal("0.06")

    def test_zero_bpt_single_asset_exit(self, weighted_pool: PoolSnapshot) -> None:
        result = price_impact(
            weighted_pool, mode=PriceImpactMode.EXIT_SINGLE_ASSET, bpt_in="0", token_index=1
        )
        assert result.value == 0

    def test_bpt_exit_requires_bpt_in(self, weighted_pool: PoolSnapshot) -> None:
        with pytest.raises(ValueError):
            price_impact(weighted_pool, mode=PriceImpactMode.EXIT_PROPORTIONAL)

    def test_single_asset_exit_requires_token_index(self, weighted_pool: PoolSnapshot) -> None:
        with pytest.raises(ValueError):
            price_impact(weighted_pool, mode=PriceImpactMode.EXIT_SINGLE_ASSET, bpt_in="1")


class TestDegradedImpact:
    """Degraded calculations make the impact approximate."""

    def test_non_convergence_propagates(self) -> None:
        pool = make_stable_pool(balances=("1", "1000"))
        result = price_impact(pool, ["1", "0"], config=PoolMathConfig(max_iterations=1))
        assert result.value == 0
        assert result.is_approximate
        assert result.error is MathError.INVARIANT_CONVERGENCE_FAILURE

    def test_empty_pool(self) -> None:
        result = price_impact(make_weighted_pool(total_supply="0"), ["1", "1"])
        assert result.error is MathError.ZERO_TOTAL_SUPPLY_OR_BALANCE


class TestHighImpactThreshold:
    """Classification against the configured threshold."""

    def test_threshold_comes_from_config(self, weighted_pool: PoolSnapshot) -> None:
        config = PoolMathConfig(high_price_impact_threshold=Decimal("0.5"))
        result = price_impact(weighted_pool, ["20", "0"], config=config)
        assert result.threshold == Decimal("0.5")
        assert not result.is_high()
        assert result.is_high(Decimal("0.01"))

    def test_favorable_impact_shows_as_zero(self) -> None:
        result = PriceImpactResult(Decimal("-0.02"))
        assert result.magnitude == 0
        assert not result.is_high()

    def test_boundary_is_high(self) -> None:
        assert PriceImpactResult(Decimal("0.01")).is_high()
