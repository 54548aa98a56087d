"""
test_accrual.py - Unit tests for discrete-time accrual

Tests:
- Full-year accrual at a known rate
- Zero elapsed time yields exactly zero
- Clock skew (now before last update) clamps to zero
- Separate flooring of interest and fees
- Configurable denominators
- Loan breakdown totals
"""

import pytest

from preflight import (
    Accrual,
    AccrualConfig,
    UNITS_PER_YEAR,
    calculate_accrual,
    calculate_elapsed,
    calculate_loan_breakdown,
    project_loan_totals,
)
from tests.fake_reader import make_loan


class TestCalculateElapsed:
    """Tests for calculate_elapsed."""

    def test_forward_time(self):
        assert calculate_elapsed(100, 250) == 150

    def test_same_time(self):
        assert calculate_elapsed(100, 100) == 0

    def test_clock_skew_clamps(self):
        """A reader clock behind the loan's last update never goes negative."""
        assert calculate_elapsed(500, 100) == 0


class TestCalculateAccrual:
    """Tests for calculate_accrual."""

    def test_full_year_ten_percent(self, year_loan):
        """1_000_000 at 1000 bps for a year accrues 100_000; 50 bps fee accrues 5_000."""
        accrual = calculate_accrual(year_loan, 50, UNITS_PER_YEAR)

        assert accrual == Accrual(interest=100_000, fees=5_000)

    def test_zero_elapsed_is_exactly_zero(self):
        loan = make_loan("L", 10**12, rate_bps=10_000, last_update=42)

        assert calculate_accrual(loan, 10_000, 42) == Accrual(0, 0)

    def test_now_before_last_update(self):
        loan = make_loan("L", 1_000_000, rate_bps=1000, last_update=1_000)

        assert calculate_accrual(loan, 50, 10) == Accrual(0, 0)

    def test_small_elapsed_floors_to_zero(self):
        """One slot on a small loan accrues nothing after flooring."""
        loan = make_loan("L", 1_000, rate_bps=500, last_update=0)

        assert calculate_accrual(loan, 50, 1).interest == 0

    def test_interest_and_fees_floor_separately(self):
        """Half a unit of interest and half a unit of fee both floor to zero."""
        config = AccrualConfig(units_per_year=2, bps_denominator=1)
        loan = make_loan("L", 1, rate_bps=1, last_update=0)

        accrual = calculate_accrual(loan, 1, 1, config)

        assert accrual == Accrual(0, 0)

    def test_floor_matches_ledger_formula(self):
        loan = make_loan("L", 123_456_789, rate_bps=737, last_update=10)

        accrual = calculate_accrual(loan, 25, 10 + 4_000_000)

        assert accrual.interest == 123_456_789 * 737 * 4_000_000 // 10_000 // UNITS_PER_YEAR
        assert accrual.fees == 123_456_789 * 25 * 4_000_000 // 10_000 // UNITS_PER_YEAR

    def test_custom_denominators(self):
        """Half a custom year at 100% yields half the principal."""
        config = AccrualConfig(units_per_year=1_000, bps_denominator=10_000)
        loan = make_loan("L", 2_000, rate_bps=10_000, last_update=0)

        assert calculate_accrual(loan, 0, 500, config).interest == 1_000

    def test_does_not_mutate_loan(self, year_loan):
        calculate_accrual(year_loan, 50, UNITS_PER_YEAR)

        assert year_loan.accrued_interest == 0
        assert year_loan.last_update_time == 0

    def test_negative_fee_rejected(self, year_loan):
        with pytest.raises(ValueError, match="protocol_fee_bps"):
            calculate_accrual(year_loan, -1, UNITS_PER_YEAR)

    def test_non_int_now_rejected(self, year_loan):
        with pytest.raises(ValueError, match="now must be an int"):
            calculate_accrual(year_loan, 50, 1.5)


class TestLoanTotals:
    """Tests for project_loan_totals and calculate_loan_breakdown."""

    def test_project_adds_stored_figures(self):
        loan = make_loan("L", 1_000_000, rate_bps=1000, last_update=0,
                         accrued_interest=7, accrued_fees=3)

        interest, fees = project_loan_totals(loan, 50, UNITS_PER_YEAR)

        assert interest == 100_007
        assert fees == 5_003

    def test_breakdown(self):
        loan = make_loan("L", 1_000_000, rate_bps=1000, last_update=0,
                         accrued_interest=10, accrued_fees=1)

        breakdown = calculate_loan_breakdown(loan, 50, UNITS_PER_YEAR)

        assert breakdown.loan_address == "L"
        assert breakdown.principal == 1_000_000
        assert breakdown.accrued_interest == 10
        assert breakdown.newly_accrued_interest == 100_000
        assert breakdown.newly_accrued_protocol_fees == 5_000
        assert breakdown.total_interest == 100_010
        assert breakdown.total_protocol_fees == 5_001
        assert breakdown.total_owed == 1_105_011

    def test_large_values_do_not_overflow(self):
        """Python ints cover the u128 intermediates the ledger uses."""
        loan = make_loan("L", 2**64 - 1, rate_bps=10_000, last_update=0)

        interest, _ = project_loan_totals(loan, 0, UNITS_PER_YEAR)

        assert interest == 2**64 - 1


class TestAccrualConfig:
    """Tests for AccrualConfig validation."""

    def test_defaults(self):
        config = AccrualConfig()
        assert config.units_per_year == 63_072_000
        assert config.bps_denominator == 10_000

    @pytest.mark.parametrize("kwargs", [
        {"units_per_year": 0},
        {"units_per_year": -5},
        {"bps_denominator": 0},
    ])
    def test_non_positive_rejected(self, kwargs):
        with pytest.raises(ValueError, match="must be positive"):
            AccrualConfig(**kwargs)
