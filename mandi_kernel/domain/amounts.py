"""
Decimal coercion and rounding for money and quantities.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for monetary
      values; round_quantity() the only one for weight/crate/box quantities.
    - No floats: to_decimal() rejects float input outright.

Failure modes:
    - TypeError from to_decimal() on float or non-numeric input.
    - decimal.InvalidOperation on a malformed numeric string.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

MONEY_DECIMAL_PLACES = 2
QUANTITY_DECIMAL_PLACES = 3
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an int, str or Decimal into a Decimal.

    Floats are refused: a binary float cannot represent most rupee amounts
    exactly and silently accepting one would defeat round_money().
    """
    if isinstance(value, bool):
        raise TypeError(f"Expected a numeric value, got {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        return Decimal(value.strip())
    raise TypeError(f"Expected int, str or Decimal, got {type(value).__name__}")


def round_money(
    value: Any,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    This is the ONLY sanctioned rounding function for money in the kernel.
    """
    return to_decimal(value).quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def round_quantity(
    value: Any,
    decimal_places: int = QUANTITY_DECIMAL_PLACES,
) -> Decimal:
    """Round a weight/crate/box quantity to the specified decimal places."""
    return to_decimal(value).quantize(
        Decimal(1).scaleb(-decimal_places), rounding=DEFAULT_ROUNDING
    )
