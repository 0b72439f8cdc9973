"""Tests for pool snapshot models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from poolmath.errors import InvalidPoolSnapshot, UnsupportedPoolType
from poolmath.models import PoolSnapshot, PoolType, TokenInfo, lookup_pool_type, resolve_pool_type
from tests.helpers import DAI, USDC, make_stable_pool, make_weighted_pool


def _payload(**overrides: object) -> dict:
    payload = {
        "id": "0xpool",
        "poolType": "Weighted",
        "totalSupply": "100",
        "swapFee": "0.003",
        "weights": ["0.5", "0.5"],
        "tokens": [
            {"address": DAI.upper(), "decimals": 18, "balance": "100", "priceRate": "1"},
            {"address": USDC, "decimals": 6, "balance": "100"},
        ],
    }
    payload.update(overrides)
    return payload


class TestPoolTypeResolution:
    """Subgraph pool type names map to invariant families."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Weighted", PoolType.WEIGHTED),
            ("Investment", PoolType.WEIGHTED),
            ("LiquidityBootstrapping", PoolType.WEIGHTED),
            ("Stable", PoolType.STABLE),
            ("MetaStable", PoolType.META_STABLE),
            ("metastable", PoolType.META_STABLE),
        ],
    )
    def test_known_names(self, name: str, expected: PoolType) -> None:
        assert resolve_pool_type(name) is expected

    def test_unknown_name_raises(self) -> None:
        with pytest.raises(UnsupportedPoolType):
            resolve_pool_type("Element")

    def test_lookup_returns_none_for_unknown(self) -> None:
        assert lookup_pool_type("Element") is None

    def test_stable_like(self) -> None:
        assert PoolType.META_STABLE.is_stable_like
        assert not PoolType.WEIGHTED.is_stable_like


class TestPoolSnapshotValidation:
    """Snapshot invariants are enforced at construction."""

    def test_from_payload_accepts_subgraph_names(self) -> None:
        pool = PoolSnapshot.from_payload(_payload())
        assert pool.total_supply == Decimal(100)
        assert pool.swap_fee == Decimal("0.003")
        assert pool.tokens[1].price_rate == Decimal(1)
        assert pool.kind is PoolType.WEIGHTED

    def test_float_values_stay_exact(self) -> None:
        pool = PoolSnapshot.from_payload(_payload(swapFee=0.1))
        assert pool.swap_fee == Decimal("0.1")

    def test_snapshot_is_immutable(self) -> None:
        pool = make_weighted_pool()
        with pytest.raises(ValidationError):
            pool.swap_fee = Decimal("0.5")  # type: ignore[misc]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"tokens": [{"address": DAI, "decimals": 18, "balance": "1"}]},
            {"swapFee": "1"},
            {"swapFee": "-0.1"},
            {"totalSupply": "-1"},
            {"weights": None},
            {"weights": ["0.5"]},
            {"weights": ["0.6", "0.6"]},
            {"weights": ["1", "0"]},
            {"tokens": [
                {"address": DAI, "decimals": 19, "balance": "1"},
                {"address": USDC, "decimals": 6, "balance": "1"},
            ]},
            {"tokens": [
                {"address": DAI, "decimals": 18, "balance": "-1"},
                {"address": USDC, "decimals": 6, "balance": "1"},
            ]},
            {"tokens": [
                {"address": DAI, "decimals": 18, "balance": "abc"},
                {"address": USDC, "decimals": 6, "balance": "1"},
            ]},
        ],
    )
    def test_invalid_payload_raises(self, overrides: dict) -> None:
        with pytest.raises(InvalidPoolSnapshot):
            PoolSnapshot.from_payload(_payload(**overrides))

    def test_stable_requires_amp(self) -> None:
        with pytest.raises(InvalidPoolSnapshot):
            PoolSnapshot.from_payload(_payload(poolType="Stable", weights=None))

    def test_invalid_snapshot_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            PoolSnapshot.from_payload(_payload(swapFee="2"))

    def test_unknown_pool_type_is_deferred_to_resolution(self) -> None:
        """Unsupported types still parse; the math refuses them."""
        pool = PoolSnapshot.from_payload(_payload(poolType="Element"))
        with pytest.raises(UnsupportedPoolType):
            _ = pool.kind


class TestPoolSnapshotHelpers:
    """Lookup helpers."""

    def test_token_index_is_case_insensitive(self) -> None:
        pool = PoolSnapshot.from_payload(_payload())
        assert pool.token_index(DAI) == 0
        assert pool.token_index(USDC.upper()) == 1
        assert pool.token_index("0xmissing") is None

    def test_token_count(self) -> None:
        assert make_stable_pool(balances=("1", "2", "3")).token_count == 3

    def test_token_info_defaults(self) -> None:
        token = TokenInfo(address=DAI, decimals=18, balance="1")
        assert token.price_rate == Decimal(1)
        assert token.symbol is None
