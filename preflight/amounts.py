"""
amounts.py - Base-unit amounts and input guards

Ledger amounts are unsigned integers in a token's smallest unit. Human
amounts are Decimals; conversion to base units floors (never rounds up, so a
caller can never be charged more than they typed).
"""

from __future__ import annotations
from decimal import Decimal, ROUND_FLOOR
from typing import Union

from .core import ValidationError, _require_int

AmountLike = Union[int, str, Decimal]


def to_base_units(amount: AmountLike, decimals: int) -> int:
    """
    Convert a human amount to base units, flooring any excess precision.

    Example:
        to_base_units("1.5", 9)          # 1_500_000_000
        to_base_units("0.0000000019", 9) # 1
    """
    if isinstance(amount, float):
        raise ValidationError("amount must be int, str, or Decimal; floats lose precision")
    _require_int(decimals, "decimals")
    if decimals < 0:
        raise ValidationError(f"decimals cannot be negative, got {decimals}")

    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert base units to a human Decimal amount."""
    _require_int(amount, "amount")
    _require_int(decimals, "decimals")
    return Decimal(amount).scaleb(-decimals)


def assert_positive_amount(value: int, label: str) -> None:
    """Raise ValidationError unless value > 0."""
    _require_int(value, label)
    if value <= 0:
        raise ValidationError(f"{label} must be greater than zero.")


def assert_non_negative_amount(value: int, label: str) -> None:
    """Raise ValidationError if value < 0."""
    _require_int(value, label)
    if value < 0:
        raise ValidationError(f"{label} cannot be negative.")
