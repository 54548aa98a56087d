"""
addresses.py - Canonical account resolution with caller overrides

Every account a preflight needs has a canonical address derived from its
seeds. The resolver always derives it and lets the caller override, so the
rest of the engine sees one plain address per account and can still tell
whether an override diverged from the canonical value.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional

from .core import AddressDeriver


@dataclass(frozen=True, slots=True)
class ResolvedAccount:
    address: str
    canonical: str

    @property
    def overridden(self) -> bool:
        return self.address != self.canonical


@dataclass(frozen=True, slots=True)
class UnwindAccounts:
    """Accounts an unwind preflight reads and a request builder needs downstream."""
    vault: ResolvedAccount
    writer_position: ResolvedAccount
    writer_repayment_account: ResolvedAccount
    collateral_vault: str


def resolve_account(override: Optional[str], derive: Callable[..., str], *seeds: str) -> ResolvedAccount:
    """Derive the canonical address and apply the override if one is given."""
    canonical = derive(*seeds)
    return ResolvedAccount(address=override or canonical, canonical=canonical)


def resolve_unwind_accounts(
    deriver: AddressDeriver,
    pool: str,
    writer: str,
    underlying_mint: str,
    collateral_vault: str,
    writer_position: Optional[str] = None,
    writer_repayment_account: Optional[str] = None,
    vault: Optional[str] = None,
) -> UnwindAccounts:
    """
    Resolve the accounts for an unwind.

    Args:
        deriver: Address derivation collaborator
        pool: Option pool address
        writer: Writer wallet
        underlying_mint: Mint of the pool's underlying (seeds vault and repayment account)
        collateral_vault: Collateral reserve recorded on the pool
        writer_position, writer_repayment_account, vault: Optional overrides
    """
    return UnwindAccounts(
        vault=resolve_account(vault, deriver.derive_vault, underlying_mint),
        writer_position=resolve_account(
            writer_position, deriver.derive_writer_position, pool, writer
        ),
        writer_repayment_account=resolve_account(
            writer_repayment_account, deriver.derive_token_account, writer, underlying_mint
        ),
        collateral_vault=collateral_vault,
    )
