"""
settlement.py - Proportional settlement for partial unwinds

When a writer unwinds part of their unsold exposure, the outstanding loans
backing the position are repaid in proportion to the unwound quantity, and
only then is the matching share of collateral released.

=== PRORATION ===

    ratio               = unwind_qty / written_quantity
    proportional_X      = aggregate_X * unwind_qty // written_quantity
    proportional_owed   = proportional_principal + proportional_interest + proportional_fees
    collateral_share    = collateral_deposited * unwind_qty // written_quantity
    returnable          = max(0, collateral_share - proportional_owed)

Each figure is floored independently and never rescaled, so rounding loss
falls on the protocol, never on the writer. A position with nothing written
prorates to zero.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .accrual import LoanBreakdown, calculate_loan_breakdown
from .core import (
    AccrualConfig, DEFAULT_ACCRUAL_CONFIG,
    InvalidUnwindQuantity, LoanRecord, WriterPosition,
    _require_int, saturating_sub,
)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True, slots=True)
class LoanTotals:
    """Aggregate of current loan obligations across a set of loans."""
    count: int
    principal: int
    interest: int
    fees: int
    owed: int


@dataclass(frozen=True, slots=True)
class UnwindObligation:
    """
    Obligation triggered by unwinding part of a writer position.

    Ephemeral: exists for one preflight call and is never persisted. Keeps
    the per-loan breakdown so callers can render obligations per liquidity
    provider.
    """
    unwind_qty: int
    written_quantity: int
    loans: Tuple[LoanBreakdown, ...]
    totals: LoanTotals
    proportional_principal: int
    proportional_interest: int
    proportional_fees: int
    proportional_total_owed: int
    proportional_collateral_share: int
    returnable_collateral: int


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def validate_unwind_quantity(position: WriterPosition, unwind_qty: int) -> None:
    """
    Reject unwind quantities the ledger would refuse.

    Raises:
        InvalidUnwindQuantity: if unwind_qty <= 0 or exceeds unsold quantity.
    """
    _require_int(unwind_qty, "unwind_qty")
    if unwind_qty <= 0:
        raise InvalidUnwindQuantity("unwind_qty must be > 0", unwind_qty, position.unsold_quantity)
    if unwind_qty > position.unsold_quantity:
        raise InvalidUnwindQuantity(
            f"unwind_qty ({unwind_qty}) exceeds writer unsold quantity "
            f"({position.unsold_quantity})",
            unwind_qty,
            position.unsold_quantity,
        )


def prorate(total: int, numerator: int, denominator: int) -> int:
    """total * numerator // denominator, or 0 when the denominator is 0."""
    if denominator == 0:
        return 0
    return total * numerator // denominator


def aggregate_loans(breakdowns: Iterable[LoanBreakdown]) -> LoanTotals:
    """Sum principal, total interest, total fees, and total owed."""
    count = principal = interest = fees = owed = 0
    for item in breakdowns:
        count += 1
        principal += item.principal
        interest += item.total_interest
        fees += item.total_protocol_fees
        owed += item.total_owed
    return LoanTotals(count=count, principal=principal, interest=interest, fees=fees, owed=owed)


def select_settling_loans(
    loans: Iterable[LoanRecord],
    vault_address: Optional[str] = None,
) -> List[LoanRecord]:
    """
    Keep active loans, optionally only those drawn from one vault.

    Status is always re-checked, even when the reader claims to pre-filter.
    """
    return [
        loan for loan in loans
        if loan.is_active and (vault_address is None or loan.owner_vault == vault_address)
    ]


def calculate_unwind_obligation(
    position: WriterPosition,
    loans: Sequence[LoanRecord],
    protocol_fee_bps: int,
    now: int,
    unwind_qty: int,
    vault_address: Optional[str] = None,
    config: AccrualConfig = DEFAULT_ACCRUAL_CONFIG,
) -> UnwindObligation:
    """
    Compute the proportional obligation and collateral entitlement of an unwind.

    PURE FUNCTION - All inputs explicit, no LedgerView.

    Args:
        position: Writer position being unwound
        loans: Candidate loans (inactive or foreign-vault loans are skipped)
        protocol_fee_bps: Vault protocol fee rate
        now: Current discrete time marker
        unwind_qty: Quantity to unwind (0 < unwind_qty <= unsold)
        vault_address: Restrict to loans drawn from this vault
        config: Rate denominators

    Returns:
        UnwindObligation with per-loan breakdown and proportional figures.

    Raises:
        InvalidUnwindQuantity: no partial result is produced.

    Example:
        # Unwinding half of the written quantity repays half of every loan
        obligation = calculate_unwind_obligation(position, loans, 50, now, 500_000)
        obligation.proportional_total_owed
    """
    validate_unwind_quantity(position, unwind_qty)

    breakdowns = tuple(
        calculate_loan_breakdown(loan, protocol_fee_bps, now, config)
        for loan in select_settling_loans(loans, vault_address)
    )
    totals = aggregate_loans(breakdowns)

    written = position.written_quantity
    proportional_principal = prorate(totals.principal, unwind_qty, written)
    proportional_interest = prorate(totals.interest, unwind_qty, written)
    proportional_fees = prorate(totals.fees, unwind_qty, written)
    # Summed after flooring each component
    proportional_total_owed = proportional_principal + proportional_interest + proportional_fees

    collateral_share = prorate(position.collateral_deposited, unwind_qty, written)

    return UnwindObligation(
        unwind_qty=unwind_qty,
        written_quantity=written,
        loans=breakdowns,
        totals=totals,
        proportional_principal=proportional_principal,
        proportional_interest=proportional_interest,
        proportional_fees=proportional_fees,
        proportional_total_owed=proportional_total_owed,
        proportional_collateral_share=collateral_share,
        returnable_collateral=saturating_sub(collateral_share, proportional_total_owed),
    )
