from decimal import Decimal
from types import SimpleNamespace

import pytest

from partilio.core.errors import InvalidInputError, SplitValidationError
from partilio.utils.splits import calculate_splits, validate_splits


def share(payer_id, percentage):
    return SimpleNamespace(payer_id=payer_id, percentage=Decimal(str(percentage)))


def test_even_split_sums_to_amount():
    result = calculate_splits(Decimal("100.00"), [share("a", 50), share("b", 50)])
    assert [s.amount for s in result] == [Decimal("50.00"), Decimal("50.00")]


def test_rounding_drift_goes_to_largest_percentage():
    result = calculate_splits(
        Decimal("100.00"), [share("a", "33.33"), share("b", "33.34"), share("c", "33.33")]
    )
    amounts = {s.payer_id: s.amount for s in result}
    assert amounts == {"a": Decimal("33.33"), "b": Decimal("33.34"), "c": Decimal("33.33")}
    assert sum(amounts.values()) == Decimal("100.00")


def test_drift_tie_broken_by_lowest_payer_id():
    # 50.005 rounds up twice; the extra cent comes off payer "a"
    result = calculate_splits(Decimal("100.01"), [share("b", 50), share("a", 50)])
    assert [(s.payer_id, s.amount) for s in result] == [("b", Decimal("50.01")), ("a", Decimal("50.00"))]


def test_output_keeps_input_order():
    result = calculate_splits(Decimal("90"), [share("z", 30), share("a", 70)])
    assert [s.payer_id for s in result] == ["z", "a"]
    assert [s.amount for s in result] == [Decimal("27.00"), Decimal("63.00")]


def test_accepts_dicts():
    result = calculate_splits("20", [{"payer_id": "a", "percentage": 25}, {"payer_id": "b", "percentage": 75}])
    assert [s.amount for s in result] == [Decimal("5.00"), Decimal("15.00")]


@pytest.mark.parametrize("percentages", [(50, 49.99), (50, 50.01), (60, 60)])
def test_percentages_off_100_are_rejected_with_total(percentages):
    with pytest.raises(SplitValidationError) as exc:
        calculate_splits(Decimal("100"), [share("a", percentages[0]), share("b", percentages[1])])
    assert exc.value.total == sum(Decimal(str(p)) for p in percentages)
    assert "must sum to 100" in exc.value.message


def test_empty_split_set_is_rejected():
    with pytest.raises(SplitValidationError):
        calculate_splits(Decimal("100"), [])


def test_duplicate_payer_is_rejected():
    validation = validate_splits([share("a", 50), share("a", 50)])
    assert not validation.is_valid
    assert "only once" in validation.message


def test_non_positive_percentage_is_rejected():
    validation = validate_splits([share("a", 0), share("b", 100)])
    assert not validation.is_valid


def test_non_positive_amount_is_rejected():
    with pytest.raises(InvalidInputError):
        calculate_splits(Decimal("0"), [share("a", 100)])


def test_custom_tolerance():
    assert validate_splits([share("a", "49.95"), share("b", 50)], tolerance="0.1").is_valid
    assert not validate_splits([share("a", "49.95"), share("b", 50)]).is_valid


def test_drift_goes_to_strictly_largest_split():
    # 3.333 + 3.333 + 3.334 all round to 3.33, leaving one cent over
    result = calculate_splits(Decimal("10.00"), [share("a", "33.33"), share("b", "33.33"), share("c", "33.34")])
    assert [s.amount for s in result] == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]


def test_drift_tie_compares_integer_ids_numerically():
    result = calculate_splits(Decimal("100.01"), [share(10, 50), share(9, 50)])
    assert [(s.payer_id, s.amount) for s in result] == [(10, Decimal("50.01")), (9, Decimal("50.00"))]


@pytest.mark.parametrize("payers", range(1, 21))
@pytest.mark.parametrize("amount", ["0.01", "100.00", "1000.01", "999.99"])
def test_shares_always_sum_to_amount(payers, amount):
    each = (Decimal("100") / payers).quantize(Decimal("0.01"))
    percentages = [each] * (payers - 1) + [Decimal("100") - each * (payers - 1)]
    result = calculate_splits(Decimal(amount), [share(i, p) for i, p in enumerate(percentages)])
    assert sum(s.amount for s in result) == Decimal(amount)
    assert len(result) == payers


def test_sum_within_tolerance_is_valid():
    assert validate_splits([share("a", 50), share("b", "49.999")]).is_valid


def test_rejection_message_cites_actual_sum():
    validation = validate_splits([share("a", 50), share("b", "49.99")])
    assert not validation.is_valid
    assert "99.99" in validation.message
    assert validation.total == Decimal("99.99")


@pytest.mark.parametrize("percentage", [None, "abc"])
def test_unreadable_percentage_is_reported_not_raised(percentage):
    validation = validate_splits([{"payer_id": "a", "percentage": percentage}])
    assert not validation.is_valid
    assert "percentage" in validation.message

    with pytest.raises(SplitValidationError):
        calculate_splits(Decimal("10"), [{"payer_id": "a", "percentage": percentage}])
