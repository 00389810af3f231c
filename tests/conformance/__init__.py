"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - Failed operations leave no trace
2. collateral_uniqueness.py - One active loan per asset, locked assets stay put
3. repayment.py - Repayment is monotonic and terminal states are final
4. determinism.py - Reproducible behavior
5. temporal.py - Expiry boundary, interest accrual and clock ordering

These tests use hypothesis for property-based testing over random
operation sequences (see operations.py).
"""
