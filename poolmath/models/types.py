"""Shared type definitions for pool snapshot models."""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BeforeValidator


def validate_decimal(value: Any) -> Decimal:
    """Coerce a subgraph-style number into an exact Decimal.

    Floats go through ``str`` so that ``0.1`` stays ``Decimal("0.1")``.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as err:
            raise ValueError(f"Not a decimal number: {value!r}") from err
    else:
        raise ValueError(f"Decimal must be string or number, got {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Decimal must be finite: {value!r}")
    return result


# Exact decimal accepted as string, int, float or Decimal
ExactDecimal = Annotated[Decimal, BeforeValidator(validate_decimal)]


def normalize_address(address: str) -> str:
    """Normalize a token address for case-insensitive comparison."""
    return address.strip().lower()
