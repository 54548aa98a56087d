"""
preflight - Read-only preflight engine for a pooled options protocol

Predicts, from ledger snapshots, whether a buy can fill and what a partial
unwind will cost, before anything is submitted.

Usage:
    import asyncio
    from preflight import preflight_buy, preflight_unwind, verify_buy_fill

    report = asyncio.run(preflight_buy(reader, pool, requested_quantity=900_000))
    if report.can_buy:
        plan = asyncio.run(verify_buy_fill(
            reader, pool, 900_000, not_before=report.time_marker
        ))
        # plan.remaining_accounts go on the request, smallest position first

    unwind = asyncio.run(preflight_unwind(reader, deriver, pool, writer, unwind_qty=500_000))
    unwind.obligation.proportional_total_owed
    unwind.funding.needs_wallet_top_up
"""

# Core types
from .core import (
    AccrualConfig,
    DEFAULT_ACCRUAL_CONFIG,
    UNITS_PER_YEAR,
    BPS_DENOMINATOR,
    ACTIVE_LOAN_STATUS_CODE,
    DEFAULT_REMAINING_ACCOUNTS_CAP,
    PreflightError,
    ValidationError,
    InvalidUnwindQuantity,
    MissingRecordError,
    StalenessFailure,
    LoanStatus,
    LoanRecord,
    WriterPosition,
    Vault,
    OptionPool,
    LenderPosition,
    RemainingAccount,
    LedgerReader,
    AddressDeriver,
    saturating_sub,
    checked_sub,
)

# Accrual
from .accrual import (
    Accrual,
    LoanBreakdown,
    calculate_elapsed,
    calculate_accrual,
    project_loan_totals,
    calculate_loan_breakdown,
)

# Proportional settlement
from .settlement import (
    LoanTotals,
    UnwindObligation,
    validate_unwind_quantity,
    prorate,
    aggregate_loans,
    select_settling_loans,
    calculate_unwind_obligation,
)

# Funding waterfall
from .funding import (
    FundingResolution,
    resolve_funding,
    resolve_obligation_funding,
)

# Liquidity selection
from .liquidity import (
    filter_active_positions,
    sum_unsold,
    select_fill_positions,
    to_remaining_accounts,
    select_buy_fill_accounts,
    select_unwind_loan_accounts,
)

# Account resolution
from .addresses import (
    ResolvedAccount,
    UnwindAccounts,
    resolve_account,
    resolve_unwind_accounts,
)

# Amounts and quotes
from .amounts import (
    to_base_units,
    from_base_units,
    assert_positive_amount,
    assert_non_negative_amount,
)
from .quotes import (
    BuyQuote,
    CloseQuote,
    apply_slippage_bps,
    apply_min_slippage_bps,
    build_buy_quote,
    build_close_quote,
)

# Lender withdrawals
from .lender import (
    calculate_withdrawable,
    calculate_claimable_interest,
    preview_withdraw_all,
    preview_withdraw_interest,
)

# Preflight façade
from .engine import (
    REASON_POOL_LIQUIDITY,
    REASON_WRITER_COVERAGE,
    REASON_INSUFFICIENT_FUNDS,
    PremiumSummary,
    BuyPreflightResult,
    UnwindPreflightResult,
    BuyFillPlan,
    preflight_buy,
    verify_buy_fill,
    preflight_unwind,
    verify_unwind,
    select_unwind_plan,
)

__all__ = [
    # Core
    'AccrualConfig', 'DEFAULT_ACCRUAL_CONFIG', 'UNITS_PER_YEAR', 'BPS_DENOMINATOR',
    'ACTIVE_LOAN_STATUS_CODE', 'DEFAULT_REMAINING_ACCOUNTS_CAP',
    'PreflightError', 'ValidationError', 'InvalidUnwindQuantity',
    'MissingRecordError', 'StalenessFailure',
    'LoanStatus', 'LoanRecord', 'WriterPosition', 'Vault', 'OptionPool',
    'LenderPosition', 'RemainingAccount', 'LedgerReader', 'AddressDeriver',
    'saturating_sub', 'checked_sub',
    # Accrual
    'Accrual', 'LoanBreakdown', 'calculate_elapsed', 'calculate_accrual',
    'project_loan_totals', 'calculate_loan_breakdown',
    # Settlement
    'LoanTotals', 'UnwindObligation', 'validate_unwind_quantity', 'prorate',
    'aggregate_loans', 'select_settling_loans', 'calculate_unwind_obligation',
    # Funding
    'FundingResolution', 'resolve_funding', 'resolve_obligation_funding',
    # Liquidity
    'filter_active_positions', 'sum_unsold', 'select_fill_positions',
    'to_remaining_accounts', 'select_buy_fill_accounts', 'select_unwind_loan_accounts',
    # Addresses
    'ResolvedAccount', 'UnwindAccounts', 'resolve_account', 'resolve_unwind_accounts',
    # Amounts and quotes
    'to_base_units', 'from_base_units', 'assert_positive_amount',
    'assert_non_negative_amount',
    'BuyQuote', 'CloseQuote', 'apply_slippage_bps', 'apply_min_slippage_bps',
    'build_buy_quote', 'build_close_quote',
    # Lender
    'calculate_withdrawable', 'calculate_claimable_interest',
    'preview_withdraw_all', 'preview_withdraw_interest',
    # Engine
    'REASON_POOL_LIQUIDITY', 'REASON_WRITER_COVERAGE', 'REASON_INSUFFICIENT_FUNDS',
    'PremiumSummary', 'BuyPreflightResult', 'UnwindPreflightResult', 'BuyFillPlan',
    'preflight_buy', 'verify_buy_fill', 'preflight_unwind', 'verify_unwind',
    'select_unwind_plan',
]
