"""
funding.py - Two-tier funding waterfall for unwind repayment

Repayment draws on the position's collateral reserve first and falls back to
the writer's wallet for the remainder:

    1) Collateral reserve (always drawn first)
    2) Wallet fallback (only for what the reserve cannot cover)

Two distinct gaps are reported:
    shortfall                   - obligation the two tiers together cannot cover
    collateral_vault_shortfall  - entitled collateral the reserve cannot hand back
                                  after repayment (drives the top-up prompt)

No I/O here; every input is a literal.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import ValidationError, _require_int, saturating_sub
from .settlement import UnwindObligation


@dataclass(frozen=True, slots=True)
class FundingResolution:
    """Outcome of running an obligation through the funding waterfall."""
    collateral_vault_available: int
    wallet_fallback_available: int
    wallet_fallback_required: int
    total_available: int
    shortfall: int
    can_repay_fully: bool
    collateral_vault_shortfall: int
    needs_wallet_top_up: bool


def _require_amount(value: int, label: str) -> None:
    _require_int(value, label)
    if value < 0:
        raise ValidationError(f"{label} cannot be negative, got {value}")


def resolve_funding(
    proportional_total_owed: int,
    returnable_collateral: int,
    collateral_vault_balance: int,
    wallet_fallback_balance: int,
) -> FundingResolution:
    """
    Resolve how an unwind obligation is funded.

    PURE FUNCTION - All inputs explicit.

    Args:
        proportional_total_owed: Obligation to repay for this unwind
        returnable_collateral: Collateral the writer is entitled to get back
        collateral_vault_balance: Raw balance of the collateral reserve
        wallet_fallback_balance: Raw balance of the writer's repayment account

    Returns:
        FundingResolution. shortfall == 0 iff the reserve and the wallet
        together cover the obligation.

    Raises:
        ValidationError: if any amount is negative.
    """
    _require_amount(proportional_total_owed, "proportional_total_owed")
    _require_amount(returnable_collateral, "returnable_collateral")
    _require_amount(collateral_vault_balance, "collateral_vault_balance")
    _require_amount(wallet_fallback_balance, "wallet_fallback_balance")

    wallet_fallback_required = saturating_sub(proportional_total_owed, collateral_vault_balance)
    total_available = collateral_vault_balance + wallet_fallback_balance
    shortfall = saturating_sub(proportional_total_owed, total_available)

    collateral_vault_shortfall = saturating_sub(returnable_collateral, collateral_vault_balance)
    needs_wallet_top_up = (
        collateral_vault_shortfall > 0 and wallet_fallback_balance < collateral_vault_shortfall
    )

    return FundingResolution(
        collateral_vault_available=collateral_vault_balance,
        wallet_fallback_available=wallet_fallback_balance,
        wallet_fallback_required=wallet_fallback_required,
        total_available=total_available,
        shortfall=shortfall,
        can_repay_fully=shortfall == 0,
        collateral_vault_shortfall=collateral_vault_shortfall,
        needs_wallet_top_up=needs_wallet_top_up,
    )


def resolve_obligation_funding(
    obligation: UnwindObligation,
    collateral_vault_balance: int,
    wallet_fallback_balance: int,
) -> FundingResolution:
    """Run an UnwindObligation through resolve_funding()."""
    return resolve_funding(
        proportional_total_owed=obligation.proportional_total_owed,
        returnable_collateral=obligation.returnable_collateral,
        collateral_vault_balance=collateral_vault_balance,
        wallet_fallback_balance=wallet_fallback_balance,
    )
