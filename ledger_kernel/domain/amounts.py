"""Decimal coercion and rounding shared by the engines and calculators."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ledger_kernel.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field: str) -> Decimal:
    """Convert int/float/str/Decimal to a finite Decimal.

    Floats go through ``str()`` so 0.1 becomes Decimal("0.1"), not its
    binary expansion.

    Raises:
        ValidationError: For None, booleans, non-numeric strings, NaN and
            infinities.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(field, value, "a numeric value is required")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(field, value, "not a number") from exc
    if not result.is_finite():
        raise ValidationError(field, value, "must be a finite number")
    return result


def non_negative(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < ZERO:
        raise ValidationError(field, value, "must not be negative")
    return amount


def percentage(value: Any, field: str) -> Decimal:
    """A rate expressed as a percentage in [0, 100]."""
    rate = to_decimal(value, field)
    if rate < ZERO or rate > HUNDRED:
        raise ValidationError(field, value, "rate must be between 0 and 100")
    return rate


def round_money(amount: Decimal) -> Decimal:
    """Quantize to cents, half-up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
