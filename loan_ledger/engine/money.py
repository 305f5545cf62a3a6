"""Exact decimal helpers for currency values."""

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# Fixed arithmetic context so every computation path yields the same digits.
LEDGER_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)


def to_decimal(value: Any) -> Decimal:
    """Convert a numeric value to ``Decimal`` without binary float noise.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.

    Raises
    ------
    TypeError
        If the value is not a number or numeric string (``bool`` included).
    ValueError
        If the value cannot be parsed or is not finite.
    """
    if isinstance(value, bool):
        raise TypeError("booleans are not amounts")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}") from None
    else:
        raise TypeError(f"unsupported numeric type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def round2(value: Any) -> Decimal:
    """Round to cents, half away from zero."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP, context=LEDGER_CONTEXT)
