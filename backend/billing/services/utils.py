from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    if val is None or val == "":
        return ZERO
    try:
        return Decimal(str(val))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidOperation(f"Not a monetary value: {val!r}") from exc


def q2(amount) -> Decimal:
    """Quantize to cents using half-up rounding."""
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def as_date(value) -> Optional[date]:
    """Normalize date/datetime/ISO strings to a date, None stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
