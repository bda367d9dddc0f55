from decimal import Decimal, InvalidOperation
from typing import Any

from core.converters import as_decimal
from core.exceptions import InvalidQuantityError

# Fractional digits accepted on input (movement quantities, BOM multipliers).
INPUT_PLACES = 4
# Fractional digits kept by the ledger; a 4dp multiplier times a 4dp quantity fits exactly.
LEDGER_PLACES = 8
# Integer digits that fit the columns: stock_movements Numeric(20, 8), bill_of_materials Numeric(10, 4).
MOVEMENT_INTEGER_DIGITS = 12
MULTIPLIER_INTEGER_DIGITS = 6


def _too_large(q: Decimal, max_integer_digits: int) -> bool:
    return q != 0 and q.adjusted() >= max_integer_digits


def parse_quantity(
    field: str,
    value: Any,
    *,
    positive: bool = True,
    max_integer_digits: int = MOVEMENT_INTEGER_DIGITS,
) -> Decimal:
    """Validate a caller supplied quantity and return it as an exact Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        q = as_decimal(value)
    except (InvalidOperation, ValueError):
        raise InvalidQuantityError(field, value, "not a number")
    if not q.is_finite():
        raise InvalidQuantityError(field, value, "not a finite number")
    if positive and q <= 0:
        raise InvalidQuantityError(field, value, "must be greater than 0")
    if _too_large(q, max_integer_digits):
        raise InvalidQuantityError(field, value, f"must have at most {max_integer_digits} integer digits")
    if q.as_tuple().exponent < -INPUT_PLACES:
        try:
            exact = q == q.quantize(Decimal(1).scaleb(-INPUT_PLACES))
        except InvalidOperation:
            exact = False
        if not exact:
            raise InvalidQuantityError(field, value, f"at most {INPUT_PLACES} decimal places are supported")
    return q


def check_ledger_quantity(field: str, value: Decimal) -> Decimal:
    """Reject a derived quantity (multiplier x quantity) the ledger column cannot hold."""
    if _too_large(value, MOVEMENT_INTEGER_DIGITS):
        raise InvalidQuantityError(field, value, f"must have at most {MOVEMENT_INTEGER_DIGITS} integer digits")
    return value
