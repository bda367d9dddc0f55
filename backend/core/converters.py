from decimal import Decimal
from typing import Any, Optional


def as_decimal(value: Any) -> Decimal:
    """Convert DB / JSON numbers to Decimal without passing through binary float repr."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_quantity(value: Optional[Decimal]) -> str:
    """Human readable quantity: no exponent, no trailing zeros ("100", "7.5")."""
    d = as_decimal(value)
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")

