"""18-decimal fixed-point arithmetic for pool math.

Values are plain integers scaled by 10^18, with every multiplication and
division taking an explicit rounding direction. Powers go through a
log/exp decomposition that reproduces Balancer's on-chain LogExpMath
bit for bit, so weighted pool results match the contracts:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/master/pkg/solidity-utils/contracts/math/LogExpMath.sol
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

__all__ = [
    "Bfp",
    "LogExpMathError",
    "ONE_18",
    "pow_raw",
    "exp",
]

ONE_18 = 10**18
ONE_20 = 10**20
ONE_36 = 10**36

# e^130 and e^-41 bound what exp() can represent
MAX_NATURAL_EXPONENT = 130 * ONE_18
MIN_NATURAL_EXPONENT = -41 * ONE_18

# ln() switches to 36-digit precision inside (0.9, 1.1)
LN_36_LOWER_BOUND = ONE_18 - 10**17
LN_36_UPPER_BOUND = ONE_18 + 10**17

MILD_EXPONENT_BOUND = 2**254 // ONE_20

# (x, e^x) pairs used for digit extraction. The first table is at 18
# decimals and holds the two huge powers; the second is at 20 decimals.
_POWERS_18 = (
    (128 * ONE_18, 38877084059945950922200000000000000000000000000000000000),
    (64 * ONE_18, 6235149080811616882910000000),
)
_POWERS_20 = (
    (32 * ONE_20, 7896296018268069516100000000000000),
    (16 * ONE_20, 888611052050787263676000000),
    (8 * ONE_20, 298095798704172827474000),
    (4 * ONE_20, 5459815003314423907810),
    (2 * ONE_20, 738905609893065022723),
    (ONE_20, 271828182845904523536),
    (ONE_20 // 2, 164872127070012814685),
    (ONE_20 // 4, 128402541668774148407),
    (ONE_20 // 8, 113314845306682631683),
    (ONE_20 // 16, 106449445891785942956),
)


class LogExpMathError(ArithmeticError):
    """Argument outside the range the log/exp decomposition supports."""


def _tdiv(a: int, b: int) -> int:
    """Integer division truncating toward zero, like the EVM does."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _ln(a: int) -> int:
    """Natural log of an 18-decimal value, at 18 decimals."""
    if a < ONE_18:
        return -_ln(ONE_18 * ONE_18 // a)

    total = 0
    for x, e_x in _POWERS_18:
        if a >= e_x * ONE_18:
            a //= e_x
            total += x

    # Continue at 20 decimals for the remaining digits
    total *= 100
    a *= 100
    for x, e_x in _POWERS_20:
        if a >= e_x:
            a = a * ONE_20 // e_x
            total += x

    # ln(a) = 2 * atanh(z) with z = (a - 1) / (a + 1)
    z = (a - ONE_20) * ONE_20 // (a + ONE_20)
    z_squared = z * z // ONE_20
    term = z
    series = z
    for k in (3, 5, 7, 9, 11):
        term = term * z_squared // ONE_20
        series += term // k

    return (total + 2 * series) // 100


def _ln_36(x: int) -> int:
    """Natural log at 36 decimals, accurate for x close to one."""
    x *= ONE_18
    z = _tdiv((x - ONE_36) * ONE_36, x + ONE_36)
    z_squared = _tdiv(z * z, ONE_36)
    term = z
    series = z
    for k in range(3, 16, 2):
        term = _tdiv(term * z_squared, ONE_36)
        series += _tdiv(term, k)
    return 2 * series


def exp(x: int) -> int:
    """e^x for an 18-decimal exponent, at 18 decimals."""
    if not MIN_NATURAL_EXPONENT <= x <= MAX_NATURAL_EXPONENT:
        raise LogExpMathError(f"exponent {x} outside [{MIN_NATURAL_EXPONENT}, {MAX_NATURAL_EXPONENT}]")

    if x < 0:
        return ONE_18 * ONE_18 // exp(-x)

    first_factor = 1
    for power, e_power in _POWERS_18:
        if x >= power:
            x -= power
            first_factor = e_power
            break

    x *= 100
    product = ONE_20
    # The two smallest table entries are left to the Taylor series
    for power, e_power in _POWERS_20[:-2]:
        if x >= power:
            x -= power
            product = product * e_power // ONE_20

    series = ONE_20 + x
    term = x
    for k in range(2, 13):
        term = term * x // ONE_20 // k
        series += term

    return product * series // ONE_20 * first_factor // 100


def pow_raw(x: int, y: int) -> int:
    """x^y for non-negative 18-decimal operands, before error correction."""
    if y == 0:
        return ONE_18
    if x == 0:
        return 0
    if x >> 255:
        raise LogExpMathError(f"base {x} does not fit a signed 256-bit word")
    if y >= MILD_EXPONENT_BOUND:
        raise LogExpMathError(f"exponent {y} exceeds {MILD_EXPONENT_BOUND}")

    if LN_36_LOWER_BOUND < x < LN_36_UPPER_BOUND:
        ln_36_x = _ln_36(x)
        whole = _tdiv(ln_36_x, ONE_18)
        fraction = ln_36_x - whole * ONE_18
        log_x_times_y = whole * y + _tdiv(fraction * y, ONE_18)
    else:
        log_x_times_y = _ln(x) * y
    log_x_times_y = _tdiv(log_x_times_y, ONE_18)

    if not MIN_NATURAL_EXPONENT <= log_x_times_y <= MAX_NATURAL_EXPONENT:
        raise LogExpMathError(f"y * ln(x) = {log_x_times_y} outside exp() range")
    return exp(log_x_times_y)


@dataclass(frozen=True, order=True)
class Bfp:
    """Unsigned 18-decimal fixed-point number.

    ``Bfp(1_500_000_000_000_000_000)`` is 1.5. Results that would go
    negative are clamped to zero, mirroring the unsigned contract math.
    """

    value: int

    ONE = ONE_18
    # Relative error bound of pow_raw (10^-14), applied on both sides
    MAX_POW_RELATIVE_ERROR = 10_000

    @classmethod
    def one(cls) -> Bfp:
        return cls(ONE_18)

    @classmethod
    def from_int(cls, i: int) -> Bfp:
        """Whole number of units, e.g. ``Bfp.from_int(2)`` is 2.0."""
        return cls(i * ONE_18)

    @classmethod
    def from_decimal(cls, d: Decimal) -> Bfp:
        """Scale a non-negative decimal by 10^18 (half-up)."""
        if d < 0:
            raise ValueError(f"Bfp requires a non-negative value, got {d}")
        return cls(int((d * ONE_18).quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def to_decimal(self) -> Decimal:
        return Decimal(f"{self.value}E-18")

    def add(self, other: Bfp) -> Bfp:
        return Bfp(self.value + other.value)

    def sub(self, other: Bfp) -> Bfp:
        return Bfp(max(0, self.value - other.value))

    def complement(self) -> Bfp:
        """1 - self, clamped to zero."""
        return Bfp(max(0, ONE_18 - self.value))

    def mul_down(self, other: Bfp) -> Bfp:
        return Bfp(self.value * other.value // ONE_18)

    def mul_up(self, other: Bfp) -> Bfp:
        product = self.value * other.value
        if product == 0:
            return Bfp(0)
        return Bfp((product - 1) // ONE_18 + 1)

    def div_down(self, other: Bfp) -> Bfp:
        if other.value == 0:
            raise ZeroDivisionError("Bfp division by zero")
        return Bfp(self.value * ONE_18 // other.value)

    def div_up(self, other: Bfp) -> Bfp:
        if other.value == 0:
            raise ZeroDivisionError("Bfp division by zero")
        numerator = self.value * ONE_18
        if numerator == 0:
            return Bfp(0)
        return Bfp((numerator - 1) // other.value + 1)

    def _pow_error(self, raw: int) -> int:
        product = raw * self.MAX_POW_RELATIVE_ERROR
        return (((product - 1) // ONE_18 + 1) if product > 0 else 0) + 1

    def pow_down(self, exponent: Bfp) -> Bfp:
        """self^exponent, biased low by the pow error bound."""
        if exponent.value == ONE_18 or self.value == ONE_18:
            return self if exponent.value == ONE_18 else Bfp(ONE_18)
        raw = pow_raw(self.value, exponent.value)
        return Bfp(max(0, raw - self._pow_error(raw)))

    def pow_up(self, exponent: Bfp) -> Bfp:
        """self^exponent, biased high by the pow error bound."""
        if exponent.value == ONE_18 or self.value == ONE_18:
            return self if exponent.value == ONE_18 else Bfp(ONE_18)
        if exponent.value == 2 * ONE_18:
            return self.mul_up(self)
        raw = pow_raw(self.value, exponent.value)
        return Bfp(raw + self._pow_error(raw))

    def __str__(self) -> str:
        return str(self.to_decimal())
