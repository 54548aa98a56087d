"""
lender.py - Withdrawal sizing for liquidity providers

A lender can withdraw their deposit plus unclaimed interest, but never more
than the vault currently holds uncommitted to loans:

    available     = max(0, total_liquidity - total_loans)
    withdraw_all  = min(deposited + unclaimed_interest, available)
    claim_only    = min(unclaimed_interest, available)
"""

from __future__ import annotations
import asyncio
import logging
from typing import Tuple

from .core import (
    LedgerReader, LenderPosition, MissingRecordError, ValidationError, Vault,
)

logger = logging.getLogger(__name__)


def calculate_withdrawable(position: LenderPosition, vault: Vault) -> int:
    """PURE FUNCTION - Largest full withdrawal the vault can honor now."""
    user_max = position.deposited + position.unclaimed_interest
    return min(user_max, vault.available_liquidity)


def calculate_claimable_interest(position: LenderPosition, vault: Vault) -> int:
    """PURE FUNCTION - Largest interest-only claim the vault can honor now."""
    return min(position.unclaimed_interest, vault.available_liquidity)


async def _load_lender(
    reader: LedgerReader,
    position_address: str,
    vault_address: str,
) -> Tuple[LenderPosition, Vault]:
    position, vault = await asyncio.gather(
        reader.fetch_lender_position(position_address),
        reader.fetch_vault(vault_address),
    )
    if position is None:
        raise MissingRecordError("lender position", position_address, "deposit first")
    if vault is None:
        raise MissingRecordError("vault", vault_address)
    return position, vault


async def preview_withdraw_all(reader: LedgerReader, position_address: str, vault_address: str) -> int:
    """
    Size a withdraw-everything request.

    Raises:
        MissingRecordError: position or vault absent.
        ValidationError: nothing is withdrawable right now.
    """
    position, vault = await _load_lender(reader, position_address, vault_address)
    amount = calculate_withdrawable(position, vault)
    if amount <= 0:
        raise ValidationError("No withdrawable balance available right now.")
    logger.debug("Withdrawable for %s: %d", position_address, amount)
    return amount


async def preview_withdraw_interest(reader: LedgerReader, position_address: str, vault_address: str) -> int:
    """Size an interest-only claim. Same failure modes as preview_withdraw_all()."""
    position, vault = await _load_lender(reader, position_address, vault_address)
    amount = calculate_claimable_interest(position, vault)
    if amount <= 0:
        raise ValidationError("No claimable interest available right now.")
    return amount
