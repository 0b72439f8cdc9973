"""Fixed-point scaling between human amounts and pool math.

Every amount that enters the invariant math is converted to 18-decimal
fixed point here, and every result leaves through ``scale_out``. The
direction of rounding is part of each call: amounts flowing into the pool
round up, amounts flowing out round down, so rounding never pays the
caller at the pool's expense.

All conversions are exact rational arithmetic on integers; Decimal is only
used to parse and to print.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from poolmath.errors import InvalidAmount, InvalidFeeError, InvalidScalingFactorError
from poolmath.math.fixed_point import ONE_18, Bfp

# The on-chain stable invariant keeps the amplification parameter at three
# extra digits of precision
AMP_PRECISION = 1000

# Fixed-point precision of all pool math
FIXED_POINT_DECIMALS = 18


class RoundingDirection(str, Enum):
    """Rounding applied when an amount crosses the scaling boundary."""

    ROUND_UP = "up"
    ROUND_DOWN = "down"


AmountLike = str | int | Decimal | None


def parse_amount(amount: AmountLike) -> Decimal:
    """Parse a human decimal amount.

    ``None`` and empty strings are treated as zero.

    Raises:
        InvalidAmount: If the amount is not a finite, non-negative decimal
    """
    if amount is None:
        return Decimal(0)
    if isinstance(amount, bool):
        raise InvalidAmount(f"Amount must be a decimal, got {amount!r}")
    if isinstance(amount, Decimal):
        value = amount
    else:
        text = str(amount).strip()
        if not text:
            return Decimal(0)
        try:
            value = Decimal(text)
        except InvalidOperation as err:
            raise InvalidAmount(f"Amount is not a decimal number: {amount!r}") from err

    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {amount!r}")
    if value < 0:
        raise InvalidAmount(f"Amount cannot be negative: {amount!r}")
    return value


def _check_decimals(decimals: int) -> None:
    if not 0 <= decimals <= FIXED_POINT_DECIMALS:
        raise InvalidScalingFactorError(f"Decimals must be in [0, 18], got {decimals}")


def _rate_ratio(price_rate: AmountLike) -> tuple[int, int]:
    """Exact (numerator, denominator) of a price rate, defaulting to 1."""
    if price_rate is None:
        return 1, 1
    try:
        rate = parse_amount(price_rate)
    except InvalidAmount as err:
        raise InvalidScalingFactorError(f"Invalid price rate: {price_rate!r}") from err
    if rate == 0:
        raise InvalidScalingFactorError("Price rate must be positive")
    return rate.as_integer_ratio()


def _div(numerator: int, denominator: int, rounding: RoundingDirection) -> int:
    if rounding is RoundingDirection.ROUND_UP:
        return -(-numerator // denominator)
    return numerator // denominator


def to_native_units(amount: AmountLike, decimals: int, rounding: RoundingDirection) -> int:
    """Integer amount in the token's smallest unit (e.g. "1.5", 6 -> 1500000)."""
    _check_decimals(decimals)
    numerator, denominator = parse_amount(amount).as_integer_ratio()
    return _div(numerator * 10**decimals, denominator, rounding)


def format_units(value: int, decimals: int) -> str:
    """Render an integer of smallest units as a human decimal string."""
    sign = "-" if value < 0 else ""
    digits = str(abs(value)).rjust(decimals + 1, "0")
    if decimals == 0:
        return sign + digits
    return f"{sign}{digits[:-decimals]}.{digits[-decimals:]}"


def scale_in(amount: AmountLike, decimals: int, price_rate: AmountLike = None) -> Bfp:
    """Scale a human amount into 18-decimal fixed point, rounding up.

    The amount is read at the token's native ``decimals`` (extra digits
    round up), re-based to 18 decimals and multiplied by ``price_rate``.

    ``scale_out(scale_in(x), ..., ROUND_DOWN)`` gives ``x`` back exactly
    whenever ``price_rate * 10**(18 - decimals) >= 1``. Below that (an
    18-decimal token with a rate under 1) one scaled wei spans several
    native units and the round trip can read back up to ``1 / price_rate``
    wei high.

    Raises:
        InvalidAmount: If the amount does not parse
        InvalidScalingFactorError: If decimals or the price rate are invalid
    """
    native = to_native_units(amount, decimals, RoundingDirection.ROUND_UP)
    rate_num, rate_den = _rate_ratio(price_rate)
    scaled = native * 10 ** (FIXED_POINT_DECIMALS - decimals) * rate_num
    return Bfp(_div(scaled, rate_den, RoundingDirection.ROUND_UP))


def scale_out(
    amount: Bfp | int,
    decimals: int,
    price_rate: AmountLike,
    rounding: RoundingDirection,
) -> str:
    """Scale an 18-decimal result back to a human amount string.

    Divides by ``price_rate``, re-bases to ``decimals`` and rounds in the
    given direction. The string always carries ``decimals`` fractional
    digits, e.g. ``scale_out(Bfp(1_500_000_000_000_000_000), 6, None,
    RoundingDirection.ROUND_DOWN) == "1.500000"``.
    """
    _check_decimals(decimals)
    raw = amount.value if isinstance(amount, Bfp) else amount
    rate_num, rate_den = _rate_ratio(price_rate)
    native = _div(
        raw * rate_den,
        rate_num * 10 ** (FIXED_POINT_DECIMALS - decimals),
        RoundingDirection(rounding),
    )
    return format_units(native, decimals)


def normalize_amount(amount: AmountLike, decimals: int, rounding: RoundingDirection) -> str:
    """Round a human amount to the token's decimals and render it."""
    return format_units(to_native_units(amount, decimals, rounding), decimals)


def denormalize(amount: Bfp | int, decimals: int) -> int:
    """18-decimal value re-based to native decimals, truncating."""
    _check_decimals(decimals)
    raw = amount.value if isinstance(amount, Bfp) else amount
    return raw // 10 ** (FIXED_POINT_DECIMALS - decimals)


def upscale(native: int, decimals: int) -> Bfp:
    """Native-decimal integer re-based to 18 decimals (exact)."""
    _check_decimals(decimals)
    return Bfp(native * 10 ** (FIXED_POINT_DECIMALS - decimals))


def adjust_amplification(amp: AmountLike) -> int:
    """Amplification parameter at the precision the invariant expects.

    Every stable math call takes the adjusted value, never the raw one.
    """
    numerator, denominator = parse_amount(amp).as_integer_ratio()
    return numerator * AMP_PRECISION // denominator


def swap_fee_bfp(swap_fee: AmountLike) -> Bfp:
    """Validate a swap fee and convert it to fixed point.

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1)
    """
    fee = parse_amount(swap_fee)
    if fee >= 1:
        raise InvalidFeeError(f"Swap fee must be in range [0, 1), got {swap_fee}")
    numerator, denominator = fee.as_integer_ratio()
    return Bfp(numerator * ONE_18 // denominator)
