"""
engine.py - Preflight façade for buy and unwind requests

Composes the calculators into the reports callers read before building a
state-changing request.

ARCHITECTURE (two phases):
==========================

1. PREFLIGHT (advisory): preflight_buy(), preflight_unwind()
   - Full report for UX gating, shown to the user
   - Never raises on "cannot do it"; it reports can_buy / can_repay_fully

2. BUILD-TIME RE-CHECK (authoritative): verify_buy_fill(), verify_unwind()
   - Re-fetches the same inputs immediately before request construction
   - Narrower: only what the request needs to succeed
   - Raises StalenessFailure when coverage dropped below the request

The two phases are separated in time and the ledger is mutated externally
in between. Nothing here locks the ledger; the race window is closed only by
re-validating. Pass the preflight's time_marker as not_before so the re-check
never runs against an older snapshot than the one the user saw.

Every fetch in one call runs concurrently. A failed fetch propagates and
fails the whole call; there is no retry policy here.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .accrual import LoanBreakdown
from .addresses import UnwindAccounts, resolve_account, resolve_unwind_accounts
from .amounts import assert_non_negative_amount, assert_positive_amount
from .core import (
    AccrualConfig, AddressDeriver, DEFAULT_ACCRUAL_CONFIG,
    DEFAULT_REMAINING_ACCOUNTS_CAP, InvalidUnwindQuantity, LedgerReader,
    MissingRecordError, RemainingAccount, StalenessFailure, WriterPosition,
    _require_int,
)
from .funding import FundingResolution, resolve_obligation_funding
from .liquidity import (
    filter_active_positions, select_fill_positions, select_unwind_loan_accounts,
    sum_unsold, to_remaining_accounts,
)
from .settlement import UnwindObligation, calculate_unwind_obligation

logger = logging.getLogger(__name__)


REASON_POOL_LIQUIDITY = "Pool total_available is less than requested quantity."
REASON_WRITER_COVERAGE = (
    "Remaining writer-position liquidity is insufficient to fully fill requested quantity."
)
REASON_INSUFFICIENT_FUNDS = "Insufficient combined collateral vault + writer fallback funds"


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class PremiumSummary:
    quoted_premium_total: int
    slippage_buffer: int
    max_premium_amount: int


@dataclass(frozen=True, slots=True)
class BuyPreflightResult:
    """
    Advisory buy report.

    Two independent conditions must both hold for can_buy: the pool
    aggregate covers the request, and the active writer positions cover it.
    The pool aggregate alone can include ghost liquidity.
    """
    can_buy: bool
    reason: Optional[str]
    pool_total_available: int
    requested_quantity: int
    remaining_accounts_count: int
    remaining_unsold_aggregate: int
    time_marker: int
    premium: Optional[PremiumSummary] = None


@dataclass(frozen=True, slots=True)
class UnwindPreflightResult:
    """Advisory unwind report: obligation, funding, and resolved accounts."""
    can_repay_fully: bool
    reason: Optional[str]
    accounts: UnwindAccounts
    obligation: UnwindObligation
    funding: FundingResolution
    time_marker: int

    @property
    def writer_position_address(self) -> str:
        return self.accounts.writer_position.address

    @property
    def writer_repayment_account(self) -> str:
        return self.accounts.writer_repayment_account.address

    @property
    def collateral_vault_address(self) -> str:
        return self.accounts.collateral_vault

    @property
    def loans(self) -> Tuple[LoanBreakdown, ...]:
        return self.obligation.loans


@dataclass(frozen=True, slots=True)
class BuyFillPlan:
    """
    Authoritative buy fill plan.

    requires_split is True when the capped selection cannot cover the whole
    request; the caller issues sequential requests, re-verifying each.
    """
    requested_quantity: int
    available_unsold: int
    selected_unsold: int
    remaining_accounts: Tuple[RemainingAccount, ...]
    time_marker: int

    @property
    def requires_split(self) -> bool:
        return self.selected_unsold < self.requested_quantity


# ============================================================================
# HELPERS
# ============================================================================

def _premium_summary(
    quoted_premium_total: Optional[int],
    slippage_buffer: Optional[int],
) -> Optional[PremiumSummary]:
    if quoted_premium_total is None:
        return None
    assert_positive_amount(quoted_premium_total, "quoted_premium_total")
    buffer = 0
    if slippage_buffer is not None:
        assert_non_negative_amount(slippage_buffer, "slippage_buffer")
        buffer = slippage_buffer
    return PremiumSummary(
        quoted_premium_total=quoted_premium_total,
        slippage_buffer=buffer,
        max_premium_amount=quoted_premium_total + buffer,
    )


def _check_not_before(marker: int, not_before: Optional[int], available: int, requested: int) -> None:
    if not_before is not None and marker < not_before:
        logger.warning("Re-check snapshot at %d predates preflight snapshot at %d", marker, not_before)
        raise StalenessFailure(
            available,
            requested,
            f"Snapshot at time marker {marker} is older than the preflight snapshot "
            f"at {not_before}: available={available}, requested={requested}",
        )


def _reject_non_positive_unwind(unwind_qty: int) -> None:
    _require_int(unwind_qty, "unwind_qty")
    if unwind_qty <= 0:
        raise InvalidUnwindQuantity("unwind_qty must be > 0", unwind_qty)


# ============================================================================
# BUY SIDE
# ============================================================================

async def preflight_buy(
    reader: LedgerReader,
    pool: str,
    requested_quantity: int,
    quoted_premium_total: Optional[int] = None,
    slippage_buffer: Optional[int] = None,
) -> BuyPreflightResult:
    """
    Advisory check that a buy of requested_quantity can fill.

    Args:
        reader: Ledger reader
        pool: Option pool address
        requested_quantity: Contracts to buy (must be > 0)
        quoted_premium_total: Optional quoted premium, summarized with the buffer
        slippage_buffer: Optional extra premium tolerance in base units

    Returns:
        BuyPreflightResult. When both conditions fail, reason names the pool
        aggregate first.

    Raises:
        ValidationError: non-positive quantity or invalid premium inputs.
        MissingRecordError: the pool does not exist.
    """
    assert_positive_amount(requested_quantity, "quantity")
    premium = _premium_summary(quoted_premium_total, slippage_buffer)

    option_pool, positions, marker = await asyncio.gather(
        reader.fetch_pool(pool),
        reader.fetch_writer_positions_for_pool(pool),
        reader.current_time_marker(),
    )
    if option_pool is None:
        raise MissingRecordError("option pool", pool, "ensure the pool is initialized")

    active = filter_active_positions(positions)
    unsold_aggregate = sum_unsold(active)

    has_pool_liquidity = option_pool.total_available >= requested_quantity
    has_writer_coverage = unsold_aggregate >= requested_quantity

    reason = None
    if not has_pool_liquidity:
        reason = REASON_POOL_LIQUIDITY
    elif not has_writer_coverage:
        reason = REASON_WRITER_COVERAGE

    logger.info(
        "Buy preflight pool=%s requested=%d pool_available=%d active_unsold=%d can_buy=%s",
        pool, requested_quantity, option_pool.total_available, unsold_aggregate,
        has_pool_liquidity and has_writer_coverage,
    )

    return BuyPreflightResult(
        can_buy=has_pool_liquidity and has_writer_coverage,
        reason=reason,
        pool_total_available=option_pool.total_available,
        requested_quantity=requested_quantity,
        remaining_accounts_count=len(active),
        remaining_unsold_aggregate=unsold_aggregate,
        time_marker=marker,
        premium=premium,
    )


async def verify_buy_fill(
    reader: LedgerReader,
    pool: str,
    requested_quantity: int,
    cap: int = DEFAULT_REMAINING_ACCOUNTS_CAP,
    not_before: Optional[int] = None,
) -> BuyFillPlan:
    """
    Authoritative re-check immediately before building a buy request.

    Re-fetches writer positions and fails fast if active coverage no longer
    covers the request.

    Raises:
        StalenessFailure: coverage dropped below requested_quantity, or the
            snapshot is older than not_before.
    """
    assert_positive_amount(requested_quantity, "quantity")

    positions, marker = await asyncio.gather(
        reader.fetch_writer_positions_for_pool(pool),
        reader.current_time_marker(),
    )
    active = filter_active_positions(positions)
    available = sum_unsold(active)

    _check_not_before(marker, not_before, available, requested_quantity)
    if available < requested_quantity:
        logger.warning(
            "Buy coverage for pool %s dropped: available=%d requested=%d",
            pool, available, requested_quantity,
        )
        raise StalenessFailure(available, requested_quantity)

    selected = select_fill_positions(active, cap)
    return BuyFillPlan(
        requested_quantity=requested_quantity,
        available_unsold=available,
        selected_unsold=sum_unsold(selected),
        remaining_accounts=tuple(to_remaining_accounts(selected)),
        time_marker=marker,
    )


# ============================================================================
# UNWIND SIDE
# ============================================================================

async def preflight_unwind(
    reader: LedgerReader,
    deriver: AddressDeriver,
    pool: str,
    writer: str,
    unwind_qty: int,
    now: Optional[int] = None,
    writer_position: Optional[str] = None,
    writer_repayment_account: Optional[str] = None,
    vault: Optional[str] = None,
    config: AccrualConfig = DEFAULT_ACCRUAL_CONFIG,
) -> UnwindPreflightResult:
    """
    Advisory report of what unwinding unwind_qty would cost and return.

    Args:
        reader: Ledger reader
        deriver: Address derivation collaborator
        pool: Option pool address
        writer: Writer wallet
        unwind_qty: Quantity to unwind
        now: Time marker to project accrual to (default: reader's current marker)
        writer_position, writer_repayment_account, vault: Optional address overrides
        config: Rate denominators

    Returns:
        UnwindPreflightResult with per-loan breakdown, proportional
        obligation, funding waterfall, and the resolved accounts.

    Raises:
        InvalidUnwindQuantity: unwind_qty <= 0 or above the writer's unsold quantity.
        MissingRecordError: pool, writer position, or vault absent.
    """
    _reject_non_positive_unwind(unwind_qty)

    option_pool = await reader.fetch_pool(pool)
    if option_pool is None:
        raise MissingRecordError("option pool", pool, "ensure the pool is initialized")

    accounts = resolve_unwind_accounts(
        deriver,
        pool=pool,
        writer=writer,
        underlying_mint=option_pool.underlying_mint,
        collateral_vault=option_pool.collateral_vault,
        writer_position=writer_position,
        writer_repayment_account=writer_repayment_account,
        vault=vault,
    )

    position, vault_record, loans, collateral_balance, wallet_balance, marker = await asyncio.gather(
        reader.fetch_writer_position(accounts.writer_position.address),
        reader.fetch_vault(accounts.vault.address),
        reader.fetch_loan_records_by_owner(writer),
        reader.fetch_token_balance(accounts.collateral_vault),
        reader.fetch_token_balance(accounts.writer_repayment_account.address),
        reader.current_time_marker(),
    )
    if position is None:
        raise MissingRecordError("writer position", accounts.writer_position.address)
    if vault_record is None:
        raise MissingRecordError("vault", accounts.vault.address)

    at = marker if now is None else now
    obligation = calculate_unwind_obligation(
        position,
        loans,
        vault_record.protocol_fee_bps,
        at,
        unwind_qty,
        vault_address=accounts.vault.address,
        config=config,
    )
    funding = resolve_obligation_funding(obligation, collateral_balance, wallet_balance)

    logger.info(
        "Unwind preflight position=%s qty=%d owed=%d shortfall=%d top_up=%s",
        accounts.writer_position.address, unwind_qty, obligation.proportional_total_owed,
        funding.shortfall, funding.needs_wallet_top_up,
    )

    return UnwindPreflightResult(
        can_repay_fully=funding.can_repay_fully,
        reason=None if funding.can_repay_fully else REASON_INSUFFICIENT_FUNDS,
        accounts=accounts,
        obligation=obligation,
        funding=funding,
        time_marker=marker,
    )


async def verify_unwind(
    reader: LedgerReader,
    deriver: AddressDeriver,
    pool: str,
    writer: str,
    unwind_qty: int,
    writer_position: Optional[str] = None,
    not_before: Optional[int] = None,
) -> WriterPosition:
    """
    Authoritative re-check immediately before building an unwind request.

    Returns:
        The freshly fetched writer position.

    Raises:
        InvalidUnwindQuantity: unwind_qty <= 0.
        MissingRecordError: the writer position is gone.
        StalenessFailure: the position no longer has unwind_qty unsold.
    """
    _reject_non_positive_unwind(unwind_qty)
    address = resolve_account(writer_position, deriver.derive_writer_position, pool, writer).address

    position, marker = await asyncio.gather(
        reader.fetch_writer_position(address),
        reader.current_time_marker(),
    )
    if position is None:
        raise MissingRecordError("writer position", address)

    available = position.unsold_quantity if position.is_active else 0
    _check_not_before(marker, not_before, available, unwind_qty)
    if available < unwind_qty:
        logger.warning(
            "Unwind coverage for %s dropped: available=%d requested=%d",
            address, available, unwind_qty,
        )
        raise StalenessFailure(available, unwind_qty)
    return position


async def select_unwind_plan(
    reader: LedgerReader,
    writer: str,
    vault_address: str,
    cap: int = DEFAULT_REMAINING_ACCOUNTS_CAP,
) -> List[RemainingAccount]:
    """Loan accounts for an unwind request, writable, capped."""
    addresses = await select_unwind_loan_accounts(reader, writer, cap, vault_address=vault_address)
    return [RemainingAccount(address=a, writable=True) for a in addresses]
