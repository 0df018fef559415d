from datetime import date
from decimal import Decimal

import pytest

from partilio.core.errors import InvalidInputError
from partilio.utils.financial import (
    clamp_day,
    percentage_change,
    require_positive,
    round_money,
    shift_month,
    sum_money,
    to_decimal,
)


def test_round_money_is_half_up():
    assert round_money("2.345") == Decimal("2.35")
    assert round_money("2.344") == Decimal("2.34")
    assert round_money(0.125) == Decimal("0.13")


def test_to_decimal_avoids_float_noise():
    assert to_decimal(0.1) == Decimal("0.1")


def test_to_decimal_rejects_garbage():
    with pytest.raises(InvalidInputError):
        to_decimal("abc")


def test_sum_money():
    assert sum_money(["0.10", 0.2, Decimal("0.30")]) == Decimal("0.60")


def test_require_positive():
    assert require_positive("10", "amount") == Decimal("10.00")
    with pytest.raises(InvalidInputError) as exc:
        require_positive("-1", "amount")
    assert "amount" in exc.value.message


@pytest.mark.parametrize(
    "previous, current, expected",
    [(100, 150, 50.0), (200, 100, -50.0), (0, 10, 100.0), (0, 0, 0.0), (3, 4, 33.33)],
)
def test_percentage_change(previous, current, expected):
    assert percentage_change(previous, current) == expected


def test_shift_month_crosses_years():
    assert shift_month(2025, 12, 1) == (2026, 1)
    assert shift_month(2025, 1, -1) == (2024, 12)
    assert shift_month(2025, 3, -14) == (2024, 1)


def test_clamp_day():
    assert clamp_day(2025, 2, 31) == date(2025, 2, 28)
    assert clamp_day(2024, 2, 30) == date(2024, 2, 29)
    assert clamp_day(2025, 4, 15) == date(2025, 4, 15)
