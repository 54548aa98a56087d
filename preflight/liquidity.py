"""
liquidity.py - Selection of liquidity records attached to a request

A buy fills against writer positions the request references explicitly.
The on-chain fill loop walks those positions in order; a settled, liquidated,
or empty position still counts in the pool aggregate but cannot supply
inventory, and referencing one makes the fill fail (ghost liquidity).

Selection rules:
    1. Keep only active positions (not settled, not liquidated, unsold > 0)
    2. Sort ascending by unsold quantity (smallest first)
    3. Truncate to the request's account cap

Smallest-first exhausts small positions before touching large ones, which
leaves fewer partially-filled positions behind and bounds how many accounts
one request must touch. Anything past the cap is omitted; callers needing
more split into sequential requests against freshly re-selected state.

Selection is not stable between calls: liquidity can move between the
selection shown in a preview and the one used to build a request.
"""

from __future__ import annotations
import logging
from typing import Iterable, List, Optional

from .core import (
    LedgerReader, RemainingAccount, ValidationError, WriterPosition,
    _require_int,
)
from .settlement import select_settling_loans

logger = logging.getLogger(__name__)


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def _validate_cap(cap: int) -> None:
    _require_int(cap, "cap")
    if cap < 0:
        raise ValidationError(f"cap cannot be negative, got {cap}")


def filter_active_positions(positions: Iterable[WriterPosition]) -> List[WriterPosition]:
    """Drop positions that cannot supply inventory, preserving order."""
    active = []
    for position in positions:
        if position.has_integrity_violation:
            logger.warning(
                "Writer position %s reports unsold_quantity=%d above written_quantity=%d",
                position.address, position.unsold_quantity, position.written_quantity,
            )
        if not position.is_active:
            logger.debug(
                "Filtering out inactive writer position: %s, is_settled=%s, "
                "is_liquidated=%s, unsold_quantity=%d",
                position.address, position.is_settled, position.is_liquidated,
                position.unsold_quantity,
            )
            continue
        active.append(position)
    return active


def sum_unsold(positions: Iterable[WriterPosition]) -> int:
    return sum(p.unsold_quantity for p in positions)


def select_fill_positions(positions: Iterable[WriterPosition], cap: int) -> List[WriterPosition]:
    """
    Filter, order smallest-first, and cap the positions a buy should reference.

    PURE FUNCTION - ties keep their input order (stable sort).

    Example:
        unsold [5, 0, 2 (settled), 3] with cap=10 -> [3, 5]
    """
    _validate_cap(cap)
    ordered = sorted(filter_active_positions(positions), key=lambda p: p.unsold_quantity)
    return ordered[:cap]


def to_remaining_accounts(positions: Iterable[WriterPosition]) -> List[RemainingAccount]:
    """Every fill account is writable; none sign."""
    return [RemainingAccount(address=p.address, writable=True, signer=False) for p in positions]


# =============================================================================
# ADAPTERS - the only functions here that read the ledger
# =============================================================================

async def select_buy_fill_accounts(
    reader: LedgerReader,
    pool: str,
    cap: int,
) -> List[RemainingAccount]:
    """
    Fetch a pool's writer positions and select the fill accounts for a buy.

    Args:
        reader: Ledger reader
        pool: Option pool address
        cap: Maximum number of accounts the request may reference

    Returns:
        Ordered remaining accounts, at most cap entries.
    """
    _validate_cap(cap)
    positions = await reader.fetch_writer_positions_for_pool(pool)
    selected = select_fill_positions(positions, cap)
    logger.debug(
        "Selected %d of %d writer positions for pool %s (cap=%d)",
        len(selected), len(positions), pool, cap,
    )
    return to_remaining_accounts(selected)


async def select_unwind_loan_accounts(
    reader: LedgerReader,
    vault_owner: str,
    cap: int,
    vault_address: Optional[str] = None,
) -> List[str]:
    """
    Return the addresses of a maker's active loans, capped.

    No ordering beyond the reader's; status is re-checked here whether or
    not the reader already filtered it.
    """
    _validate_cap(cap)
    loans = await reader.fetch_loan_records_by_owner(vault_owner)
    active = select_settling_loans(loans, vault_address)
    if len(active) > cap:
        logger.info(
            "Maker %s has %d active loans; only the first %d fit in one request",
            vault_owner, len(active), cap,
        )
    return [loan.address for loan in active[:cap]]
