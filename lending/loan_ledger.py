"""
loan_ledger.py - Keyed Loan Store

The data store behind the lifecycle engine:

    ("next_loan_id",)               -> int         next identifier to hand out
    ("loan", loan_id)               -> LoanState   one record per loan, never deleted
    ("collat", collateral_id)       -> loan_id     present only while locked
    ("borrower_loans", borrower)    -> [loan_id]   every loan ever created, in order

The ledger performs no validation of its own beyond default-on-miss reads.
Every invariant is enforced by the LendingEngine before it writes here.
"""

from __future__ import annotations
from typing import List, Optional

from .core import (
    AccountId, AssetId, LoanRecord, Storage,
    to_state_dict, load_loan_record,
    FIRST_LOAN_ID,
    NS_NEXT_LOAN_ID, NS_LOAN, NS_COLLATERAL, NS_BORROWER_LOANS,
)


class LoanLedger:
    """Map of loan records plus the collateral-lock and per-borrower indexes."""

    def __init__(self, storage: Storage):
        self.storage = storage

    # ========================================================================
    # IDENTIFIERS
    # ========================================================================

    def allocate_loan_id(self) -> int:
        """
        Return the next unused loan identifier and persist the incremented counter.

        Identifiers start at 1 and are never reused.
        """
        loan_id = self.storage.get((NS_NEXT_LOAN_ID,), FIRST_LOAN_ID)
        self.storage.set((NS_NEXT_LOAN_ID,), loan_id + 1)
        return loan_id

    def loan_count(self) -> int:
        """Number of identifiers allocated so far."""
        return self.storage.get((NS_NEXT_LOAN_ID,), FIRST_LOAN_ID) - FIRST_LOAN_ID

    # ========================================================================
    # RECORDS
    # ========================================================================

    def put(self, loan_id: int, record: LoanRecord) -> None:
        if record.loan_id != loan_id:
            raise ValueError(f"Record id {record.loan_id} does not match key {loan_id}")
        self.storage.set((NS_LOAN, loan_id), to_state_dict(record))

    def get(self, loan_id: int) -> Optional[LoanRecord]:
        raw = self.storage.get((NS_LOAN, loan_id))
        if raw is None:
            return None
        return load_loan_record(loan_id, raw)

    def all_loan_ids(self) -> List[int]:
        """Every stored loan id in ascending order."""
        return sorted(key[1] for key in self.storage.keys(NS_LOAN))

    # ========================================================================
    # COLLATERAL LOCKS
    # ========================================================================

    def is_collateral_locked(self, collateral_id: AssetId) -> bool:
        return self.storage.has((NS_COLLATERAL, collateral_id))

    def locking_loan(self, collateral_id: AssetId) -> Optional[int]:
        """Return the loan currently locking collateral_id, if any."""
        return self.storage.get((NS_COLLATERAL, collateral_id))

    def lock_collateral(self, collateral_id: AssetId, loan_id: int) -> None:
        self.storage.set((NS_COLLATERAL, collateral_id), loan_id)

    def release_collateral(self, collateral_id: AssetId) -> None:
        self.storage.delete((NS_COLLATERAL, collateral_id))

    # ========================================================================
    # BORROWER INDEX
    # ========================================================================

    def add_to_borrower_index(self, borrower: AccountId, loan_id: int) -> None:
        loans = self.storage.get((NS_BORROWER_LOANS, borrower), [])
        loans.append(loan_id)
        self.storage.set((NS_BORROWER_LOANS, borrower), loans)

    def loans_of(self, borrower: AccountId) -> List[int]:
        """Loan ids created by borrower, in insertion order, including terminal loans."""
        return self.storage.get((NS_BORROWER_LOANS, borrower), [])
