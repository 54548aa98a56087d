"""
quotes.py - Premium and payout bounds with slippage

A buy is submitted with a maximum premium and a close with a minimum payout.
Both bounds are derived from the expected amount and a slippage tolerance in
basis points, floored like the ledger does.

    max_bound = amount * (10_000 + slippage_bps) // 10_000
    min_bound = amount * (10_000 - slippage_bps) // 10_000
"""

from __future__ import annotations
from dataclasses import dataclass

from .amounts import assert_positive_amount
from .core import BPS_DENOMINATOR, ValidationError, _require_int


@dataclass(frozen=True, slots=True)
class BuyQuote:
    expected_premium: int
    max_premium: int


@dataclass(frozen=True, slots=True)
class CloseQuote:
    expected_payout: int
    min_payout: int


def _validate_slippage(slippage_bps: int) -> None:
    _require_int(slippage_bps, "slippage_bps")
    if slippage_bps < 0:
        raise ValidationError("slippage_bps cannot be negative.")


def apply_slippage_bps(amount: int, slippage_bps: int) -> int:
    """Raise an amount by slippage_bps (upper bound for payments)."""
    _validate_slippage(slippage_bps)
    return amount * (BPS_DENOMINATOR + slippage_bps) // BPS_DENOMINATOR


def apply_min_slippage_bps(amount: int, slippage_bps: int) -> int:
    """Lower an amount by slippage_bps (lower bound for receipts)."""
    _validate_slippage(slippage_bps)
    if slippage_bps > BPS_DENOMINATOR:
        raise ValidationError(f"slippage_bps cannot exceed {BPS_DENOMINATOR} for a minimum bound.")
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def build_buy_quote(quantity: int, premium_per_contract: int, max_slippage_bps: int) -> BuyQuote:
    """
    Quote a buy: expected premium and the maximum premium to submit.

    Example:
        build_buy_quote(10, 1_000, 50)  # BuyQuote(10_000, 10_050)
    """
    assert_positive_amount(quantity, "quantity")
    assert_positive_amount(premium_per_contract, "premium_per_contract")
    expected = quantity * premium_per_contract
    return BuyQuote(expected_premium=expected, max_premium=apply_slippage_bps(expected, max_slippage_bps))


def build_close_quote(expected_payout: int, max_slippage_bps: int) -> CloseQuote:
    """Quote a close: expected payout and the minimum payout to accept."""
    assert_positive_amount(expected_payout, "expected_payout")
    return CloseQuote(
        expected_payout=expected_payout,
        min_payout=apply_min_slippage_bps(expected_payout, max_slippage_bps),
    )
