"""Numeric parsing and currency rounding shared by the ledger and CRUD routes.

Dashboard forms send numbers as JSON numbers, numeric strings, empty strings
or null. Everything monetary is rounded half-up to two decimals from the exact
binary value before it is stored.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from workshop.exceptions import ValidationError

CENT = Decimal("0.01")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _to_number(value: Any, field: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid number")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a valid number")
    return number


def parse_number(value: Any, field: str) -> float:
    """Blank input is 0; anything else must be a finite number."""
    if _is_blank(value):
        return 0.0
    return _to_number(value, field)


def parse_nullable_number(value: Any, field: str) -> Optional[float]:
    """Blank input is None; anything else must be a finite number."""
    if _is_blank(value):
        return None
    return _to_number(value, field)


def round_currency(value: Any = 0) -> float:
    """Round half-up to 2 decimals, e.g. 1.005 -> 1.0 and 2.675 -> 2.67 like the dashboard does."""
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        number = 0.0
    if not math.isfinite(number):
        number = 0.0
    return float(Decimal(number).quantize(CENT, rounding=ROUND_HALF_UP))


def format_quantity(quantity: float) -> str:
    """Whole quantities print bare, fractional ones with 2 decimals."""
    quantity = float(quantity)
    if quantity.is_integer():
        return str(int(quantity))
    return str(Decimal(quantity).quantize(CENT, rounding=ROUND_HALF_UP))
