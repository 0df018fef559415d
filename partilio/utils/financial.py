# partilio/utils/financial.py
import calendar
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

from partilio.core.errors import InvalidInputError

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """Convert without rounding; floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError(f"Invalid monetary value: {value!r}")


def round_money(value: Number) -> Decimal:
    """Round to cents, half-up (2.345 -> 2.35, never banker's rounding)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Number]) -> Decimal:
    total = ZERO
    for v in values:
        total += to_decimal(v)
    return round_money(total)


def percentage_change(previous: Number, current: Number) -> float:
    previous = to_decimal(previous)
    current = to_decimal(current)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    change = (current - previous) / previous * HUNDRED
    return float(change.quantize(CENT, rounding=ROUND_HALF_UP))


def require_positive(value: Number, field: str) -> Decimal:
    amount = round_money(value)
    if amount <= 0:
        raise InvalidInputError(f"{field} must be greater than zero")
    return amount


# ────────────────────────────────────────────────────────────────────────────────
# CALENDAR HELPERS
# ────────────────────────────────────────────────────────────────────────────────
def clamp_day(year: int, month: int, day: int) -> date:
    """Day `day` of the month, or the month's last day when it is shorter."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(day, 1), last_day))


def shift_month(year: int, month: int, offset: int):
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_name(month: int) -> str:
    return calendar.month_name[month]
