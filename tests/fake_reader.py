"""
fake_reader.py - Test helpers for LedgerReader and AddressDeriver

Provides record factories and in-memory implementations for exercising the
preflight engine without a network-backed ledger.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional

from preflight import (
    LenderPosition, LoanRecord, OptionPool, Vault, WriterPosition,
)


POOL = "POOL"
WRITER = "alice"
MINT = "MINT"
COLLATERAL_VAULT = "collateral_vault:POOL"


# =============================================================================
# RECORD FACTORIES
# =============================================================================

def make_position(
    address: str,
    unsold: int,
    written: Optional[int] = None,
    collateral: int = 0,
    pool: str = POOL,
    writer: str = WRITER,
    settled: bool = False,
    liquidated: bool = False,
) -> WriterPosition:
    """Create a writer position; written defaults to unsold."""
    return WriterPosition(
        address=address,
        pool=pool,
        writer=writer,
        written_quantity=unsold if written is None else written,
        unsold_quantity=unsold,
        collateral_deposited=collateral,
        is_settled=settled,
        is_liquidated=liquidated,
    )


def make_loan(
    address: str,
    principal: int,
    rate_bps: int = 0,
    last_update: int = 0,
    accrued_interest: int = 0,
    accrued_fees: int = 0,
    vault: str = "vault:MINT",
    owner: str = WRITER,
    status: str = "active",
) -> LoanRecord:
    return LoanRecord(
        address=address,
        owner_vault=vault,
        principal=principal,
        accrued_interest=accrued_interest,
        accrued_protocol_fees=accrued_fees,
        rate_bps=rate_bps,
        last_update_time=last_update,
        status=status,
        owner=owner,
    )


class FakeReader:
    """
    Minimal async LedgerReader over dictionaries.

    Records can be replaced between calls to simulate external mutation.

    Example:
        reader = FakeReader(
            pools=[OptionPool("POOL", 1_000_000, "MINT", "CV")],
            positions=[WriterPosition("WP1", "POOL", "alice", 10, 10, 5)],
            time_marker=100,
        )
        positions = await reader.fetch_writer_positions_for_pool("POOL")
    """

    def __init__(
        self,
        pools: Iterable[OptionPool] = (),
        positions: Iterable[WriterPosition] = (),
        loans: Iterable[LoanRecord] = (),
        vaults: Iterable[Vault] = (),
        lenders: Iterable[LenderPosition] = (),
        balances: Optional[Dict[str, int]] = None,
        time_marker: int = 0,
        prefilter_active_loans: bool = False,
    ):
        self.pools = {p.address: p for p in pools}
        self.positions = {p.address: p for p in positions}
        self.loans = {l.address: l for l in loans}
        self.vaults = {v.address: v for v in vaults}
        self.lenders = {l.address: l for l in lenders}
        self.balances = dict(balances or {})
        self.time_marker = time_marker
        self.prefilter_active_loans = prefilter_active_loans
        self.calls: List[str] = []

    def put_position(self, position: WriterPosition) -> None:
        self.positions[position.address] = position

    async def fetch_loan_record(self, address: str) -> Optional[LoanRecord]:
        self.calls.append("fetch_loan_record")
        return self.loans.get(address)

    async def fetch_loan_records_by_owner(self, owner: str) -> List[LoanRecord]:
        self.calls.append("fetch_loan_records_by_owner")
        owned = [l for l in self.loans.values() if l.owner == owner]
        if self.prefilter_active_loans:
            owned = [l for l in owned if l.is_active]
        return owned

    async def fetch_writer_position(self, address: str) -> Optional[WriterPosition]:
        self.calls.append("fetch_writer_position")
        return self.positions.get(address)

    async def fetch_writer_positions_for_pool(self, pool: str) -> List[WriterPosition]:
        self.calls.append("fetch_writer_positions_for_pool")
        return [p for p in self.positions.values() if p.pool == pool]

    async def fetch_vault(self, address: str) -> Optional[Vault]:
        self.calls.append("fetch_vault")
        return self.vaults.get(address)

    async def fetch_pool(self, address: str) -> Optional[OptionPool]:
        self.calls.append("fetch_pool")
        return self.pools.get(address)

    async def fetch_lender_position(self, address: str) -> Optional[LenderPosition]:
        self.calls.append("fetch_lender_position")
        return self.lenders.get(address)

    async def fetch_token_balance(self, address: str) -> int:
        self.calls.append("fetch_token_balance")
        return self.balances.get(address, 0)

    async def current_time_marker(self) -> int:
        return self.time_marker


class FailingReader(FakeReader):
    """FakeReader whose writer-position listing raises, to test propagation."""

    async def fetch_writer_positions_for_pool(self, pool: str) -> List[WriterPosition]:
        raise ConnectionError(f"ledger unreachable while listing positions for {pool}")


class FakeDeriver:
    """Deterministic AddressDeriver producing readable addresses."""

    def derive_vault(self, mint: str) -> str:
        return f"vault:{mint}"

    def derive_writer_position(self, pool: str, writer: str) -> str:
        return f"writer_position:{pool}:{writer}"

    def derive_token_account(self, owner: str, mint: str) -> str:
        return f"ata:{owner}:{mint}"
