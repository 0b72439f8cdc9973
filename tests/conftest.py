"""Pytest configuration and fixtures."""

from collections.abc import Iterator

import pytest
import structlog

from poolmath.models import PoolSnapshot
from tests.helpers.factories import make_stable_pool, make_weighted_pool


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo any structlog configuration a test (e.g. the CLI) installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def weighted_pool() -> PoolSnapshot:
    """50/50 weighted pool, balances [100, 100], supply 100, no fee."""
    return make_weighted_pool()


@pytest.fixture
def stable_pool() -> PoolSnapshot:
    """Two-token stable pool, balances [1M, 1M], amp 100, supply 2M, no fee."""
    return make_stable_pool()
