"""
conftest.py - Shared pytest fixtures for preflight tests

Provides common fixtures used across unit and functional tests:
- A deterministic address deriver and a one-year loan
- A funded unwind scenario (pool, position, vault, loan, balances)
- A buy scenario with mixed active and inactive writer positions
"""

import pytest

from preflight import (
    OptionPool, Vault, UNITS_PER_YEAR,
)

from tests.fake_reader import (
    COLLATERAL_VAULT, MINT, POOL, FakeDeriver, FakeReader, make_loan, make_position,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def deriver():
    return FakeDeriver()


@pytest.fixture
def year_loan():
    """1_000_000 at 10% APR, last updated at time 0."""
    return make_loan("LOAN_YEAR", 1_000_000, rate_bps=1000, last_update=0)


@pytest.fixture
def unwind_reader():
    """
    Writer with 1_000_000 written, 600_000 unsold, 100_000 collateral and one
    loan of 400_000 principal carrying 40_000 interest and 2_000 fees.
    """
    now = 5_000
    return FakeReader(
        pools=[OptionPool(POOL, 600_000, MINT, COLLATERAL_VAULT)],
        positions=[make_position(
            "writer_position:POOL:alice", unsold=600_000, written=1_000_000, collateral=100_000,
        )],
        loans=[make_loan(
            "LOAN_1", 400_000, last_update=now, accrued_interest=40_000, accrued_fees=2_000,
        )],
        vaults=[Vault("vault:MINT", total_liquidity=5_000_000, total_loans=400_000, protocol_fee_bps=50)],
        balances={COLLATERAL_VAULT: 150_000, "ata:alice:MINT": 100_000},
        time_marker=now,
    )


@pytest.fixture
def buy_reader():
    """
    Pool reporting 1_000_000 available, backed by a mix of positions where
    only 800_000 is actually fillable.
    """
    return FakeReader(
        pools=[OptionPool(POOL, 1_000_000, MINT, COLLATERAL_VAULT)],
        positions=[
            make_position("WP_A", unsold=500_000),
            make_position("WP_B", unsold=300_000),
            make_position("WP_SETTLED", unsold=150_000, settled=True),
            make_position("WP_LIQUIDATED", unsold=50_000, liquidated=True),
            make_position("WP_EMPTY", unsold=0, written=10),
        ],
        time_marker=UNITS_PER_YEAR,
    )
