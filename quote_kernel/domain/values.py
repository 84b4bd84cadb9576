"""
Money and quantity helpers for the quote kernel.

All monetary arithmetic is Decimal. Amounts are rounded to cents with
ROUND_HALF_UP when they enter the accumulator and again when the quote is
assembled; intermediate values (raw premiums, per-km products) keep full
precision until then.

Floats are rejected outright: ``Decimal(0.1)`` carries binary noise into
prices. Callers that hold floats convert through ``str`` first, which is
what ``to_decimal`` does for ints and strings.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Convert an int, str or Decimal to Decimal.

    Raises:
        TypeError: If value is a float or bool.
        ValueError: If value is not a finite number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"Expected Decimal, int or str, got {type(value).__name__}: {value!r}"
        )
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round_money(value: Decimal | int | str) -> Decimal:
    """Round to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_half_up_int(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, half up."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    """Clamp value into [lower, upper]."""
    if lower > upper:
        raise ValueError(f"Invalid bounds: {lower} > {upper}")
    return max(lower, min(value, upper))


def sum_money(amounts) -> Decimal:
    """Sum Decimals and round the total to cents."""
    return round_money(sum(amounts, ZERO))
