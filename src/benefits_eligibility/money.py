"""Fixed-point money helpers shared by every calculation stage."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .errors import InvalidInput

CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any, field: str, allow_negative: bool = False) -> Decimal:
    """
    Parse a monetary or rate value into a Decimal.

    Floats go through ``str`` first so binary representation noise
    (0.1 + 0.2 style) never enters the calculation.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput("value is required", field=field)
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput(f"not a number: {value!r}", field=field)
    if not result.is_finite():
        raise InvalidInput(f"not a finite number: {value!r}", field=field)
    if result < 0 and not allow_negative:
        raise InvalidInput(f"must be >= 0, got {result}", field=field)
    return result


def optional_decimal(value: Any, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    return to_decimal(value, field)


def round_cents(value: Decimal) -> Decimal:
    """Round half-up to the cent. Only applied where a figure is stored."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value: Optional[Decimal]) -> Optional[str]:
    """Canonical string form used in serialized snapshots."""
    if value is None:
        return None
    return str(round_cents(value))
