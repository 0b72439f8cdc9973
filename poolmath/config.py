"""Configuration for pool math calculations."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

# Newton iteration cap shared by every stable invariant solve
STABLE_MAX_ITERATIONS = 255

# Impact at or above 1% is shown as "high" by default
HIGH_PRICE_IMPACT_THRESHOLD = Decimal("0.01")


@dataclass(frozen=True)
class PoolMathConfig:
    """Centralized configuration for pool math policy.

    Attributes:
        max_iterations: Step cap for the stable invariant Newton solves.
        high_price_impact_threshold: Impact at or above this value is
            classified as high by ``PriceImpactResult.is_high``.
        fallback_spot_price: Price returned by the spot price estimator when
            the invariant cannot be computed.
        raise_on_non_convergence: If True, ``InvariantConvergenceFailure``
            propagates to the caller. If False, results degrade to a
            sentinel value flagged as approximate.
    """

    max_iterations: int = STABLE_MAX_ITERATIONS
    high_price_impact_threshold: Decimal = HIGH_PRICE_IMPACT_THRESHOLD
    fallback_spot_price: Decimal = Decimal(1)
    raise_on_non_convergence: bool = False

    @classmethod
    def from_env(cls) -> PoolMathConfig:
        """Build a config from environment variables.

        - POOLMATH_MAX_ITERATIONS (default: 255)
        - POOLMATH_HIGH_PRICE_IMPACT_THRESHOLD (default: 0.01)
        - POOLMATH_RAISE_ON_NON_CONVERGENCE (default: false)
        """
        return cls(
            max_iterations=int(os.environ.get("POOLMATH_MAX_ITERATIONS", STABLE_MAX_ITERATIONS)),
            high_price_impact_threshold=Decimal(
                os.environ.get("POOLMATH_HIGH_PRICE_IMPACT_THRESHOLD", str(HIGH_PRICE_IMPACT_THRESHOLD))
            ),
            raise_on_non_convergence=os.environ.get(
                "POOLMATH_RAISE_ON_NON_CONVERGENCE", "false"
            ).lower()
            in ("true", "1", "yes"),
        )


# Default configuration instance
DEFAULT_CONFIG = PoolMathConfig()
