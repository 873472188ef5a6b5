"""Money helpers using fixed micro-unit Decimal precision."""

from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_FLOOR, localcontext
from typing import Union

from autonomy.errors import InvalidInputError


AmountLike = Union[Decimal, int, float, str]

AMOUNT_QUANT = Decimal("0.000001")

# Significant digits available when quantizing; about 1e43 at micro-unit scale
MAX_PRECISION = 50


def _to_decimal(value: AmountLike) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError("Amount must be a number, not a boolean")
    if isinstance(value, Decimal):
        dec = value
    else:
        try:
            # str() keeps floats like 0.1 from dragging binary noise along
            dec = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidInputError(f"Invalid amount: {value!r}")
    if not dec.is_finite():
        raise InvalidInputError(f"Amount must be finite, got {value!r}")
    return dec


def _quantize(value: AmountLike, rounding: str) -> Decimal:
    dec = _to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = MAX_PRECISION
        try:
            return dec.quantize(AMOUNT_QUANT, rounding=rounding)
        except InvalidOperation:
            raise InvalidInputError(f"Amount is too large: {value!r}")


def to_amount(value: AmountLike) -> Decimal:
    """Convert a spend amount to Decimal, rounding up (conservative)."""
    return _quantize(value, ROUND_CEILING)


def to_limit(value: AmountLike) -> Decimal:
    """Convert a policy limit to Decimal, rounding down (conservative)."""
    return _quantize(value, ROUND_FLOOR)


def format_amount(value: Decimal) -> str:
    """Render an amount without trailing zeros or exponent notation.

    >>> format_amount(Decimal("25.000000"))
    '25'
    >>> format_amount(Decimal("10.500000"))
    '10.5'
    """
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")


def format_usd(value: Decimal) -> str:
    """Format an amount as a dollar string, e.g. ``$25`` or ``$0.01``."""
    return f"${format_amount(value)}"
