"""
accrual.py - Discrete-time interest and protocol fee accrual

Projects what the settlement authority will book on a loan's next update.
Interest accrues per time unit (slot) against principal at the loan's rate;
the protocol fee accrues the same way at the vault's fee rate.

Key Formulas:
    elapsed      = max(0, now - last_update_time)
    new_interest = principal * rate_bps * elapsed // bps_denominator // units_per_year
    new_fees     = principal * fee_bps  * elapsed // bps_denominator // units_per_year

Each division floors on its own, in that order, to match the ledger's
integer arithmetic. Interest and fees are floored separately; accruing the
combined rate and splitting afterwards can disagree with the ledger by one
base unit.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from .core import AccrualConfig, DEFAULT_ACCRUAL_CONFIG, LoanRecord, _require_u64


@dataclass(frozen=True, slots=True)
class Accrual:
    """Accrual deltas since a loan's last update. Add to stored figures for totals."""
    interest: int
    fees: int


@dataclass(frozen=True, slots=True)
class LoanBreakdown:
    """
    Current obligation of one loan at a given time marker.

    Stored figures come straight from the snapshot; newly_accrued_* are the
    projected deltas; total_* are stored + delta.
    """
    loan_address: str
    principal: int
    accrued_interest: int
    accrued_protocol_fees: int
    newly_accrued_interest: int
    newly_accrued_protocol_fees: int
    total_interest: int
    total_protocol_fees: int
    total_owed: int


def calculate_elapsed(last_update_time: int, now: int) -> int:
    """Time units elapsed since last update, never negative."""
    return now - last_update_time if now > last_update_time else 0


def _accrue_at_rate(principal: int, rate_bps: int, elapsed: int, config: AccrualConfig) -> int:
    if elapsed == 0:
        return 0
    return principal * rate_bps * elapsed // config.bps_denominator // config.units_per_year


def calculate_accrual(
    loan: LoanRecord,
    protocol_fee_bps: int,
    now: int,
    config: AccrualConfig = DEFAULT_ACCRUAL_CONFIG,
) -> Accrual:
    """
    Calculate interest and protocol fees accrued since the loan's last update.

    PURE FUNCTION - All inputs explicit, no hidden state. The loan is not
    modified.

    Args:
        loan: Loan snapshot
        protocol_fee_bps: Vault protocol fee rate in basis points
        now: Current discrete time marker
        config: Rate denominators (must match the on-chain program)

    Returns:
        Accrual deltas. Exactly Accrual(0, 0) when no time has elapsed.

    Example:
        # 10% APR, 0.5% fee, one full year
        loan = LoanRecord("L1", "V1", 1_000_000, 0, 0, 1000, 0)
        calculate_accrual(loan, 50, UNITS_PER_YEAR)  # Accrual(100_000, 5_000)
    """
    _require_u64(protocol_fee_bps, "protocol_fee_bps")
    _require_u64(now, "now")

    elapsed = calculate_elapsed(loan.last_update_time, now)
    return Accrual(
        interest=_accrue_at_rate(loan.principal, loan.rate_bps, elapsed, config),
        fees=_accrue_at_rate(loan.principal, protocol_fee_bps, elapsed, config),
    )


def project_loan_totals(
    loan: LoanRecord,
    protocol_fee_bps: int,
    now: int,
    config: AccrualConfig = DEFAULT_ACCRUAL_CONFIG,
) -> Tuple[int, int]:
    """Return (total_interest, total_protocol_fees) as of now."""
    accrual = calculate_accrual(loan, protocol_fee_bps, now, config)
    return (
        loan.accrued_interest + accrual.interest,
        loan.accrued_protocol_fees + accrual.fees,
    )


def calculate_loan_breakdown(
    loan: LoanRecord,
    protocol_fee_bps: int,
    now: int,
    config: AccrualConfig = DEFAULT_ACCRUAL_CONFIG,
) -> LoanBreakdown:
    """
    Build the per-loan obligation view used for rendering and aggregation.

    PURE FUNCTION - All inputs explicit.
    """
    accrual = calculate_accrual(loan, protocol_fee_bps, now, config)
    total_interest = loan.accrued_interest + accrual.interest
    total_fees = loan.accrued_protocol_fees + accrual.fees

    return LoanBreakdown(
        loan_address=loan.address,
        principal=loan.principal,
        accrued_interest=loan.accrued_interest,
        accrued_protocol_fees=loan.accrued_protocol_fees,
        newly_accrued_interest=accrual.interest,
        newly_accrued_protocol_fees=accrual.fees,
        total_interest=total_interest,
        total_protocol_fees=total_fees,
        total_owed=loan.principal + total_interest + total_fees,
    )
