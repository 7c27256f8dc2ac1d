"""
Money parsing and formatting.

Amounts are stored as integer cents. At the API boundary they travel as
decimal strings with at most two fraction digits ("12.50"). Floats are
accepted only when their shortest repr has at most two fraction digits.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidRequest

CENT = Decimal("0.01")
HUNDRED = Decimal(100)

# Largest amount accepted on input: 99,999,999.99
MAX_AMOUNT_CENTS = 9_999_999_999

# Largest quantity accepted on a single sale, purchase or adjustment line
MAX_QUANTITY = 1_000_000


def to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidRequest(f"{field} must be a decimal amount", {"field": field})
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, (int, float, str)):
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidRequest(f"{field} must be a decimal amount", {"field": field})
    else:
        raise InvalidRequest(f"{field} must be a decimal amount", {"field": field})

    if not dec.is_finite():
        raise InvalidRequest(f"{field} must be a finite amount", {"field": field})
    return dec


def parse_money(value: Any, field: str, *, allow_negative: bool = False) -> int:
    """Parse a decimal amount into integer cents, rejecting sub-cent precision."""
    dec = to_decimal(value, field)
    if dec.as_tuple().exponent < -2 and dec != dec.quantize(CENT):
        raise InvalidRequest(f"{field} must have at most two decimal places", {"field": field})
    if dec < 0 and not allow_negative:
        raise InvalidRequest(f"{field} must not be negative", {"field": field})

    cents = int((dec * HUNDRED).to_integral_value())
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise InvalidRequest(f"{field} is too large", {"field": field})
    return cents


def format_money(cents: int | None) -> str:
    """Format integer cents as a two-digit decimal string."""
    value = Decimal(cents or 0) / HUNDRED
    return str(value.quantize(CENT))


def percent_of(amount_cents: int, percent: Decimal) -> int:
    """Percentage of an amount, rounded half-up to the cent."""
    return int((Decimal(amount_cents) * percent / HUNDRED).quantize(Decimal(1), rounding=ROUND_HALF_UP))
