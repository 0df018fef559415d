# partilio/utils/splits.py
"""
Cost split calculator.

Distributes an amount across payers by percentage so that the shares add up
to the amount exactly, to the cent.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

from partilio.core.errors import InvalidInputError, SplitValidationError
from partilio.utils.financial import HUNDRED, Number, require_positive, round_money, to_decimal

DEFAULT_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class SplitShare:
    payer_id: Any
    percentage: Decimal


@dataclass(frozen=True)
class SplitAmount:
    payer_id: Any
    percentage: Decimal
    amount: Decimal


@dataclass(frozen=True)
class SplitValidation:
    is_valid: bool
    message: str
    total: Optional[Decimal] = None


def _format_total(total: Decimal) -> str:
    text = f"{total.normalize():f}"
    return text if "." in text else f"{text}.00"


def _as_shares(splits: Iterable[Any]) -> List[SplitShare]:
    """Accept dicts, schemas or ORM rows with payer_id / percentage."""
    shares = []
    for split in splits:
        if isinstance(split, dict):
            payer_id, percentage = split.get("payer_id"), split.get("percentage")
        else:
            payer_id, percentage = split.payer_id, split.percentage
        if percentage is None:
            raise SplitValidationError("Every split needs a percentage")
        try:
            value = to_decimal(percentage)
        except InvalidInputError:
            raise SplitValidationError(f"Invalid split percentage: {percentage}")
        if not value.is_finite():
            raise SplitValidationError(f"Invalid split percentage: {percentage}")
        shares.append(SplitShare(payer_id=payer_id, percentage=value))
    return shares


def validate_splits(splits: Iterable[Any], tolerance: Number = DEFAULT_TOLERANCE) -> SplitValidation:
    try:
        shares = _as_shares(splits)
    except SplitValidationError as exc:
        return SplitValidation(False, exc.message)
    tolerance = to_decimal(tolerance)

    if not shares:
        return SplitValidation(False, "A divided expense needs at least one split")

    for share in shares:
        if share.percentage <= 0:
            return SplitValidation(False, f"Split percentage must be greater than zero (got {share.percentage})")

    payer_ids = [str(share.payer_id) for share in shares]
    if len(set(payer_ids)) != len(payer_ids):
        return SplitValidation(False, "Each payer can appear only once in a split")

    total = sum((share.percentage for share in shares), Decimal("0"))
    # Strict bound: 99.99 and 100.01 fall outside a 0.01 tolerance
    if abs(total - HUNDRED) >= tolerance:
        return SplitValidation(
            False,
            f"Split percentages must sum to 100 (got {_format_total(total)})",
            total,
        )

    return SplitValidation(True, "Splits are valid", total)


def _id_lower(left: Any, right: Any) -> bool:
    try:
        return left < right
    except TypeError:
        return str(left) < str(right)


def _drift_target(shares: Sequence[SplitShare]) -> int:
    """Index of the split that absorbs rounding drift: largest percentage, then lowest payer id."""
    best = 0
    for index, share in enumerate(shares[1:], start=1):
        current = shares[best]
        if share.percentage > current.percentage:
            best = index
        elif share.percentage == current.percentage and _id_lower(share.payer_id, current.payer_id):
            best = index
    return best


def calculate_splits(
    amount: Number,
    splits: Iterable[Any],
    tolerance: Number = DEFAULT_TOLERANCE,
) -> List[SplitAmount]:
    """
    Compute each payer's share of `amount`.

    Every share is rounded half-up to cents; whatever the rounding leaves over
    (``amount - sum(shares)``) is added to a single split so the result always
    sums to `amount`. Output keeps the input order.

    Raises:
        SplitValidationError: the split set is empty, has duplicates,
            non-positive percentages or does not sum to 100.
        InvalidInputError: `amount` is not positive.
    """
    shares = _as_shares(splits)
    validation = validate_splits(shares, tolerance)
    if not validation.is_valid:
        raise SplitValidationError(validation.message, validation.total)

    amount = require_positive(amount, "Amount")

    rounded = [round_money(amount * share.percentage / HUNDRED) for share in shares]
    drift = amount - sum(rounded, Decimal("0.00"))
    if drift:
        rounded[_drift_target(shares)] += drift

    return [
        SplitAmount(payer_id=share.payer_id, percentage=share.percentage, amount=value)
        for share, value in zip(shares, rounded)
    ]
