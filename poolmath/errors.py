"""Pool math error classes.

Input contract violations (bad amounts, bad snapshots, unknown pool types)
propagate to the caller. Numeric conditions (non-convergence, empty pools)
are raised by the solvers and recovered into degraded results by the
public calculators.
"""


class PoolMathError(Exception):
    """Base error for pool math operations."""

    pass


class InvalidAmount(PoolMathError, ValueError):
    """Amount does not parse as a finite, non-negative decimal."""

    pass


class InvalidPoolSnapshot(PoolMathError, ValueError):
    """Pool snapshot violates its structural invariants."""

    pass


class UnsupportedPoolType(PoolMathError):
    """No solver exists for the pool's type."""

    pass


class InvalidFeeError(PoolMathError):
    """Swap fee must be in range [0, 1)."""

    pass


class InvalidScalingFactorError(PoolMathError):
    """Decimals must be in [0, 18] and price rates positive."""

    pass


class InvariantConvergenceFailure(PoolMathError):
    """Newton iteration for the stable invariant exceeded its step cap."""

    pass


class ZeroTotalSupplyOrBalance(PoolMathError):
    """Pool has no supply or an empty token balance."""

    pass
