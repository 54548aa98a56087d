"""
Core types for the preflight engine.

This module provides the foundational data structures and protocols:
1. Configuration: AccrualConfig and protocol-wide constants
2. Records: read-only ledger snapshots (LoanRecord, WriterPosition, Vault, ...)
3. Protocols: LedgerReader for async point-in-time reads, AddressDeriver
4. Exceptions: PreflightError and the domain-specific error types
5. Integer helpers: saturating and checked subtraction over base units

Every record is a frozen snapshot fetched for one call. Nothing in this
package writes to the ledger; the external settlement authority is the only
writer, and the engine only predicts what it will do.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Discrete time units (slots) per year. Must match the on-chain program
# bit-for-bit; a mismatch silently skews every accrual projection.
UNITS_PER_YEAR = 63_072_000

# Basis point denominator (10_000 bps = 100%).
BPS_DENOMINATOR = 10_000

# Raw status code the ledger uses for an active loan.
ACTIVE_LOAN_STATUS_CODE = 1

# Default maximum number of extra accounts a single request may reference.
DEFAULT_REMAINING_ACCOUNTS_CAP = 20


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccrualConfig:
    """
    Rate denominators used by the accrual calculator.

    Passed explicitly into every accrual so the engine can be exercised
    against protocol upgrades that change a denominator without code changes.

    Attributes:
        units_per_year: Discrete time units per year (slots, not seconds)
        bps_denominator: Basis point denominator
    """
    units_per_year: int = UNITS_PER_YEAR
    bps_denominator: int = BPS_DENOMINATOR

    def __post_init__(self):
        _require_int(self.units_per_year, "units_per_year")
        _require_int(self.bps_denominator, "bps_denominator")
        if self.units_per_year <= 0:
            raise ValueError(f"units_per_year must be positive, got {self.units_per_year}")
        if self.bps_denominator <= 0:
            raise ValueError(f"bps_denominator must be positive, got {self.bps_denominator}")


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PreflightError(Exception):
    """Base exception for all preflight-related errors."""
    pass


class ValidationError(PreflightError, ValueError):
    """Raised when caller input is invalid. Never retried."""
    pass


class InvalidUnwindQuantity(ValidationError):
    """Raised when an unwind quantity is zero, negative, or exceeds unsold quantity."""

    def __init__(self, message: str, unwind_qty: int, unsold_quantity: Optional[int] = None):
        super().__init__(message)
        self.unwind_qty = unwind_qty
        self.unsold_quantity = unsold_quantity


class MissingRecordError(PreflightError):
    """Raised when a required ledger record is absent (precondition not met)."""

    def __init__(self, kind: str, address: str, hint: str = ""):
        message = f"Precondition not met: {kind} {address} does not exist"
        if hint:
            message = f"{message}; {hint}"
        super().__init__(message)
        self.kind = kind
        self.address = address


class StalenessFailure(PreflightError):
    """
    Raised when a build-time re-check finds state moved since preflight.

    Carries the exact figures so the caller can refresh and retry. The
    engine itself never loops.
    """

    def __init__(self, available: int, requested: int, message: str = ""):
        if not message:
            message = (
                f"Coverage dropped below request: available={available}, "
                f"requested={requested}"
            )
        super().__init__(message)
        self.available = available
        self.requested = requested


# ============================================================================
# INTEGER HELPERS
# ============================================================================

def _require_int(value, label: str) -> None:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be an int, got {type(value).__name__}")


def _require_u64(value, label: str) -> None:
    _require_int(value, label)
    if value < 0:
        raise ValueError(f"{label} cannot be negative, got {value}")


DEFAULT_ACCRUAL_CONFIG = AccrualConfig()


def saturating_sub(a: int, b: int) -> int:
    """Return max(0, a - b)."""
    return a - b if a > b else 0


def checked_sub(a: int, b: int) -> int:
    """
    Subtract where underflow would be a programming defect.

    Fails loudly instead of clamping; callers use saturating_sub() where
    clamping is the documented behavior.
    """
    assert a >= b, f"unsigned underflow: {a} - {b}"
    return a - b


# ============================================================================
# RECORDS
# ============================================================================

class LoanStatus(str, Enum):
    """Status of a pool loan."""
    ACTIVE = "active"
    CLOSED = "closed"

    @classmethod
    def from_raw(cls, raw: Union[int, str, "LoanStatus"]) -> "LoanStatus":
        """Map a raw ledger status code (1 = active) or name to a LoanStatus."""
        if isinstance(raw, LoanStatus):
            return raw
        if isinstance(raw, str):
            return cls(raw.lower())
        return cls.ACTIVE if raw == ACTIVE_LOAN_STATUS_CODE else cls.CLOSED


@dataclass(frozen=True, slots=True)
class LoanRecord:
    """
    Snapshot of one borrow against pooled liquidity.

    Owned by the ledger and mutated only by the settlement authority.
    accrued_interest and accrued_protocol_fees are as of last_update_time.
    """
    address: str
    owner_vault: str
    principal: int
    accrued_interest: int
    accrued_protocol_fees: int
    rate_bps: int
    last_update_time: int
    status: LoanStatus = LoanStatus.ACTIVE
    owner: Optional[str] = None

    def __post_init__(self):
        if not self.address:
            raise ValueError("LoanRecord address cannot be empty")
        for name in ("principal", "accrued_interest", "accrued_protocol_fees",
                     "rate_bps", "last_update_time"):
            _require_u64(getattr(self, name), name)
        if not isinstance(self.status, LoanStatus):
            object.__setattr__(self, 'status', LoanStatus.from_raw(self.status))

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class WriterPosition:
    """
    A writer's open exposure against one pool.

    unsold_quantity <= written_quantity should always hold; a violation is a
    data-integrity condition that is detected (has_integrity_violation) but
    not repaired here.
    """
    address: str
    pool: str
    writer: str
    written_quantity: int
    unsold_quantity: int
    collateral_deposited: int
    is_settled: bool = False
    is_liquidated: bool = False

    def __post_init__(self):
        if not self.address:
            raise ValueError("WriterPosition address cannot be empty")
        for name in ("written_quantity", "unsold_quantity", "collateral_deposited"):
            _require_u64(getattr(self, name), name)

    @property
    def is_active(self) -> bool:
        """True if this position can actually supply inventory."""
        return not self.is_settled and not self.is_liquidated and self.unsold_quantity > 0

    @property
    def has_integrity_violation(self) -> bool:
        return self.unsold_quantity > self.written_quantity


@dataclass(frozen=True, slots=True)
class Vault:
    """Aggregate lending-pool funding state."""
    address: str
    total_liquidity: int
    total_loans: int
    protocol_fee_bps: int

    def __post_init__(self):
        for name in ("total_liquidity", "total_loans", "protocol_fee_bps"):
            _require_u64(getattr(self, name), name)

    @property
    def available_liquidity(self) -> int:
        return saturating_sub(self.total_liquidity, self.total_loans)


@dataclass(frozen=True, slots=True)
class OptionPool:
    """
    Pool-level aggregate for one option series.

    total_available counts every writer position, including settled or
    liquidated ones that can no longer fill (ghost liquidity).
    """
    address: str
    total_available: int
    underlying_mint: str
    collateral_vault: str

    def __post_init__(self):
        _require_u64(self.total_available, "total_available")


@dataclass(frozen=True, slots=True)
class LenderPosition:
    """A liquidity provider's deposit into a lending vault."""
    address: str
    vault: str
    lender: str
    deposited: int
    total_interest_earned: int
    interest_claimed: int

    def __post_init__(self):
        for name in ("deposited", "total_interest_earned", "interest_claimed"):
            _require_u64(getattr(self, name), name)

    @property
    def unclaimed_interest(self) -> int:
        return saturating_sub(self.total_interest_earned, self.interest_claimed)


@dataclass(frozen=True, slots=True)
class RemainingAccount:
    """One extra account attached to a request. Never a signer here."""
    address: str
    writable: bool = True
    signer: bool = False


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerReader(Protocol):
    """
    Async, read-only access to ledger snapshots.

    Each call returns a fresh point-in-time snapshot; there is no caching
    guarantee across calls. Timeouts and retries are the implementation's
    concern. A raised exception is a hard failure of the enclosing call.
    """

    async def fetch_loan_record(self, address: str) -> Optional[LoanRecord]:
        ...

    async def fetch_loan_records_by_owner(self, owner: str) -> List[LoanRecord]:
        """
        Return loans owned by a maker.

        Some implementations pre-filter to active status; callers must not
        rely on it and re-check status themselves.
        """
        ...

    async def fetch_writer_position(self, address: str) -> Optional[WriterPosition]:
        ...

    async def fetch_writer_positions_for_pool(self, pool: str) -> List[WriterPosition]:
        ...

    async def fetch_vault(self, address: str) -> Optional[Vault]:
        ...

    async def fetch_pool(self, address: str) -> Optional[OptionPool]:
        ...

    async def fetch_lender_position(self, address: str) -> Optional[LenderPosition]:
        ...

    async def fetch_token_balance(self, address: str) -> int:
        """Return the raw token balance, 0 if the account does not exist."""
        ...

    async def current_time_marker(self) -> int:
        """Return the current discrete time marker (e.g. slot), not wall-clock."""
        ...


@runtime_checkable
class AddressDeriver(Protocol):
    """Deterministic derivation of protocol account addresses."""

    def derive_vault(self, mint: str) -> str:
        ...

    def derive_writer_position(self, pool: str, writer: str) -> str:
        ...

    def derive_token_account(self, owner: str, mint: str) -> str:
        ...
