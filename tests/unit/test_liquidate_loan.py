"""
test_liquidate_loan.py - Unit tests for LendingEngine.liquidate_loan

Tests:
- Expiry boundary
- Collateral forfeiture to the liquidator
- Self-liquidation by the borrower
- Status checks and pause gating
- Collateral freeze while locked
"""

import pytest

from lending import (
    LoanStatus, LoanNotFound, LoanNotActive, LoanNotExpired, ContractPaused,
    NotAuthorized,
    TransferRuleViolation, ACTION_LIQUIDATE,
)

from tests.helpers import ADMIN, BORROWER, OTHER, LIQUIDATOR, START_TIME, open_loan, days


class TestExpiryBoundary:

    def test_one_second_before_expiry(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_time(START_TIME + days(30) - 1)
        with pytest.raises(LoanNotExpired):
            funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        assert funded_engine.get_loan_info(loan_id).is_active

    def test_exactly_at_expiry(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_time(START_TIME + days(30))
        record = funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        assert record.status is LoanStatus.LIQUIDATED


class TestForfeiture:

    def test_collateral_moves_to_liquidator(self, funded_engine):
        loan_id = open_loan(funded_engine, collateral_id=1, duration_days=30)
        funded_engine.advance_days(31)
        funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        assert funded_engine.registry.owner_of(1) == LIQUIDATOR
        assert not funded_engine.is_collateral(1)

    def test_partial_repayment_not_refunded(self, funded_engine):
        loan_id = open_loan(funded_engine, principal=1000, duration_days=30)
        funded_engine.repay_loan(loan_id, 900, caller=BORROWER)
        funded_engine.advance_days(30)
        record = funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        assert record.repaid_amount == 900
        assert funded_engine.registry.owner_of(1) == LIQUIDATOR

    def test_transition_recorded(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(30)
        funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        transition = funded_engine.transaction_log[-1]
        assert transition.action == ACTION_LIQUIDATE
        assert transition.caller == LIQUIDATOR
        assert transition.changed_fields() == {"status": ("active", "liquidated")}

    def test_borrower_self_liquidation_keeps_asset(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(30)
        record = funded_engine.liquidate_loan(loan_id, caller=BORROWER)
        assert record.status is LoanStatus.LIQUIDATED
        assert funded_engine.registry.owner_of(1) == BORROWER
        assert not funded_engine.is_collateral(1)


class TestLiquidationFailures:

    def test_empty_liquidator_rejected(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(30)
        with pytest.raises(NotAuthorized):
            funded_engine.liquidate_loan(loan_id, caller="")
        assert funded_engine.get_loan_info(loan_id).is_active
        assert funded_engine.is_collateral(1)
        assert funded_engine.registry.owner_of(1) == BORROWER

    def test_unknown_loan(self, funded_engine):
        with pytest.raises(LoanNotFound):
            funded_engine.liquidate_loan(5, caller=LIQUIDATOR)

    def test_repaid_loan(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        funded_engine.advance_days(31)
        with pytest.raises(LoanNotActive):
            funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        assert funded_engine.registry.owner_of(1) == BORROWER

    def test_double_liquidation(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(30)
        funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        with pytest.raises(LoanNotActive):
            funded_engine.liquidate_loan(loan_id, caller=OTHER)
        assert funded_engine.registry.owner_of(1) == LIQUIDATOR

    def test_status_checked_before_expiry(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.repay_loan(loan_id, 1000, caller=BORROWER)
        with pytest.raises(LoanNotActive):
            funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)

    def test_paused(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.advance_days(30)
        funded_engine.gate.pause(ADMIN)
        with pytest.raises(ContractPaused):
            funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)
        assert funded_engine.get_loan_info(loan_id).is_active
        assert funded_engine.is_collateral(1)
        assert funded_engine.registry.owner_of(1) == BORROWER

    def test_expiry_checked_before_pause(self, funded_engine):
        loan_id = open_loan(funded_engine, duration_days=30)
        funded_engine.gate.pause(ADMIN)
        with pytest.raises(LoanNotExpired):
            funded_engine.liquidate_loan(loan_id, caller=LIQUIDATOR)


class TestCollateralFreeze:
    """Locked collateral cannot leave the borrower through the registry."""

    def test_transfer_of_locked_asset_refused(self, funded_engine):
        open_loan(funded_engine, collateral_id=1)
        with pytest.raises(TransferRuleViolation):
            funded_engine.registry.transfer(BORROWER, OTHER, 1)
        assert funded_engine.registry.owner_of(1) == BORROWER

    def test_burn_of_locked_asset_refused(self, funded_engine):
        open_loan(funded_engine, collateral_id=1)
        with pytest.raises(TransferRuleViolation):
            funded_engine.registry.burn(1, owner=BORROWER)
        assert funded_engine.registry.exists(1)

    def test_unlocked_asset_moves_freely(self, funded_engine):
        open_loan(funded_engine, collateral_id=1)
        funded_engine.registry.transfer(BORROWER, OTHER, 2)
        assert funded_engine.registry.owner_of(2) == OTHER
