"""Mathematical primitives for pool math.

- Bfp: 18-decimal fixed-point arithmetic (Balancer-style)
"""

from poolmath.math.fixed_point import ONE_18, Bfp, LogExpMathError

__all__ = ["Bfp", "LogExpMathError", "ONE_18"]
