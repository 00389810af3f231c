"""
test_repay_loan.py - Unit tests for LendingEngine.repay_loan

Tests:
- Partial and full repayment
- Overpayment clamping
- Authorization and status checks
- Amount validation
- Repayment while paused
"""

import pytest

from lending import (
    LoanStatus, LoanNotFound, NotBorrower, LoanNotActive, InvalidAmount,
    ACTION_REPAY, I128_MAX,
)

from tests.helpers import ADMIN, BORROWER, OTHER, LIQUIDATOR, open_loan, days


class TestPartialRepayment:

    def test_partial_payment_accumulates(self, funded_engine):
        loan_id = open_loan(funded_engine, principal=1000)
        record = funded_engine.repay_loan(loan_id, 300, caller=BORROWER)
        assert record.repaid_amount == 300
        assert record.status is LoanStatus.ACTIVE
        assert funded_engine.is_collateral(1)

    def test_two_partials_then_settle(self, funded_engine):
        loan_id = open_loan(funded_engine, principal=1000)
        funded_engine.repay_loan(loan_id, 500, caller=BORROWER)
        record = funded_engine.repay_loan(loan_id, 500, caller=BORROWER)
        assert record.status is LoanStatus.REPAID
        assert record.repaid_amount == 1000
        assert not funded_engine.is_collateral(1)

    def test_returned_record_matches_stored(self, funded_engine):
        loan_id = open_loan(funded_engine)
        record = funded_engine.repay_loan(loan_id, 10, caller=BORROWER)
        assert funded_engine.get_loan_info(loan_id) == record


class TestFullRepayment:

    def test_exact_payment_settles(self, funded_engine):
        loan_id = open_loan(funded_engine, principal=1000)
        record = funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        assert record.status is LoanStatus.REPAID

    def test_overpayment_clamped_to_principal(self, funded_engine):
        loan_id = open_loan(funded_engine, principal=1000)
        funded_engine.repay_loan(loan_id, 400, caller=BORROWER)
        record = funded_engine.repay_loan(loan_id, 5000, caller=BORROWER)
        assert record.repaid_amount == 1000
        assert record.status is LoanStatus.REPAID

    def test_settled_collateral_can_back_new_loan(self, funded_engine):
        first = open_loan(funded_engine, collateral_id=1)
        funded_engine.repay_loan(first, 1000, caller=BORROWER)
        second = open_loan(funded_engine, collateral_id=1)
        assert second == first + 1
        assert funded_engine.is_collateral(1)

    def test_settled_collateral_is_transferable(self, funded_engine):
        loan_id = open_loan(funded_engine, collateral_id=1)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        funded_engine.registry.transfer(BORROWER, OTHER, 1)
        assert funded_engine.registry.owner_of(1) == OTHER

    def test_repay_after_expiry_still_allowed(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(45)
        record = funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        assert record.status is LoanStatus.REPAID

    def test_transition_recorded(self, funded_engine):
        loan_id = open_loan(funded_engine)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        transition = funded_engine.transaction_log[-1]
        assert transition.action == ACTION_REPAY
        assert transition.changed_fields() == {
            "repaid_amount": (0, 1000),
            "status": ("active", "repaid"),
        }


class TestRepaymentFailures:

    def test_unknown_loan(self, funded_engine):
        with pytest.raises(LoanNotFound):
            funded_engine.repay_loan(42, 100, caller=BORROWER)

    def test_not_borrower(self, funded_engine):
        loan_id = open_loan(funded_engine)
        with pytest.raises(NotBorrower):
            funded_engine.repay_loan(loan_id, 100, caller=OTHER)
        assert funded_engine.get_loan_info(loan_id).repaid_amount == 0

    def test_repaid_loan_not_active(self, funded_engine):
        loan_id = open_loan(funded_engine)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        with pytest.raises(LoanNotActive):
            funded_engine.repay_loan(loan_id, 1, caller=BORROWER)

    def test_liquidated_loan_not_active(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(30)
        funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        with pytest.raises(LoanNotActive):
            funded_engine.repay_loan(loan_id, 100, caller=BORROWER)

    @pytest.mark.parametrize("amount", [0, -5, I128_MAX + 1, 1.5, "100", True])
    def test_invalid_amount(self, funded_engine, amount):
        loan_id = open_loan(funded_engine)
        with pytest.raises(InvalidAmount):
            funded_engine.repay_loan(loan_id, amount, caller=BORROWER)
        assert funded_engine.get_loan_info(loan_id).repaid_amount == 0

    def test_borrower_checked_before_status(self, funded_engine):
        loan_id = open_loan(funded_engine)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        with pytest.raises(NotBorrower):
            funded_engine.repay_loan(loan_id, 0, caller=OTHER)

    def test_status_checked_before_amount(self, funded_engine):
        loan_id = open_loan(funded_engine)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        with pytest.raises(LoanNotActive):
            funded_engine.repay_loan(loan_id, 0, caller=BORROWER)


class TestRepaymentWhilePaused:

    def test_repayment_not_blocked_by_pause(self, funded_engine):
        loan_id = open_loan(funded_engine)
        funded_engine.gate.pause(ADMIN)
        record = funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        assert record.status is LoanStatus.REPAID


class TestIncompleteStoredRecord:

    def test_record_without_status_cannot_be_repaid(self, funded_engine):
        funded_engine.storage.set(("loan", 1), {
            "loan_id": 1, "borrower": BORROWER, "collateral_id": 1,
            "principal": 1000, "interest_rate_bps": 500, "duration_days": 30,
        })
        with pytest.raises(LoanNotActive):
            funded_engine.repay_loan(1, 100, caller=BORROWER)
