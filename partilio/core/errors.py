# partilio/core/errors.py
from decimal import Decimal
from typing import Optional


class PartilioError(Exception):
    """Base class for domain errors raised by the expense core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(PartilioError):
    """Malformed dates, non-positive amounts, bad installment counts."""


class SplitValidationError(PartilioError):
    """Percentages off 100, duplicate payers or an empty split set."""

    def __init__(self, message: str, total: Optional[Decimal] = None):
        super().__init__(message)
        self.total = total
