"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the preflight engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. accrual.py - Referential transparency and zero-elapsed accrual
2. settlement.py - Proration bounds and full-unwind identity
3. funding.py - Shortfall iff the two tiers cannot cover the obligation
4. selection.py - Filtering, ordering, and capping of fill accounts

These tests use hypothesis for property-based testing.
"""
