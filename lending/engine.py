"""
engine.py - Loan Lifecycle Engine

The LendingEngine is the only component that mutates loan state. It runs the
per-loan state machine:

    ACTIVE --repay_loan (repaid >= principal)--> REPAID       (terminal)
    ACTIVE --liquidate_loan (after expiry)-----> LIQUIDATED   (terminal)

Key responsibilities:
    - Validates every precondition before writing anything
    - Executes each operation atomically inside a storage transaction that is
      rolled back if anything raises, so a failed call leaves no trace
    - Re-reads ownership and pause state inside the operation, never from cache
    - Records every applied transition in an append-only transaction log
    - Schedules an expiry event for every new loan
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, List, Optional

from .core import (
    # Types
    AccountId, AssetId, LoanRecord, LoanStatus, LoanTransition, Storage,
    AssetRegistryView, AccessControl,
    # Constants
    SECONDS_PER_DAY, I128_MAX,
    ACTION_CREATE, ACTION_REPAY, ACTION_LIQUIDATE,
    # Exceptions
    NotAuthorized, NotCollateralOwner, CollateralAlreadyLocked, LoanNotFound, NotBorrower,
    LoanNotActive, InvalidAmount, LoanNotExpired, TransferRuleViolation,
    # Helpers
    to_state_dict, validate_loan_terms,
)
from .access import AccessGate
from .interest import calculate_interest, total_due
from .loan_ledger import LoanLedger
from .registry import AssetRegistry
from .scheduled_events import EventScheduler, expiry_event


class LendingEngine:
    """
    Collateralized loan state machine with atomic operations and an audit trail.

    Thread Safety:
        Not thread-safe. Operations are assumed to be serialized by the host.

    Example:
        storage = InMemoryStorage()
        gate = AccessGate(storage, administrator="admin")
        registry = AssetRegistry(storage, gate)
        engine = LendingEngine(storage, registry, gate, verbose=False)

        registry.mint("alice", 1, authorized_by="admin")
        loan_id = engine.create_loan("alice", 1, 1000, 500, 30, caller="alice")
        engine.repay_loan(loan_id, 1000, caller="alice")
    """

    def __init__(
        self,
        storage: Storage,
        registry: AssetRegistryView,
        gate: AccessControl,
        initial_time: int = 0,
        verbose: bool = True,
        require_borrower_caller: bool = False,
        scheduler: Optional[EventScheduler] = None,
    ):
        """
        Create an engine over existing storage and collaborators.

        Args:
            storage: Key-value store shared with registry and gate
            registry: Asset ownership capability
            gate: Administrator and pause gate
            initial_time: Starting ledger timestamp in seconds (default: 0)
            verbose: Print one line per applied or rejected operation (default: True)
            require_borrower_caller: If True, create_loan rejects callers other
                                     than the borrower with NotBorrower
            scheduler: Expiry event scheduler (created if not provided)
        """
        if initial_time < 0:
            raise ValueError(f"initial_time cannot be negative, got {initial_time}")
        self.storage = storage
        self.registry = registry
        self.gate = gate
        self.loans = LoanLedger(storage)
        self.scheduler = scheduler or EventScheduler()
        self.transaction_log: List[LoanTransition] = []
        self.verbose = verbose
        self.require_borrower_caller = require_borrower_caller
        self._current_time: int = initial_time

        # Freeze locked collateral inside the registry
        if hasattr(registry, 'transfer_rule'):
            registry.transfer_rule = self._collateral_transfer_rule

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current ledger timestamp in seconds."""
        return self._current_time

    def advance_time(self, new_time: int) -> None:
        """
        Advance the ledger clock. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    def advance_days(self, days: int) -> None:
        self.advance_time(self._current_time + days * SECONDS_PER_DAY)

    # ========================================================================
    # LIFECYCLE OPERATIONS (Mutating)
    # ========================================================================

    def create_loan(
        self,
        borrower: AccountId,
        collateral_id: AssetId,
        principal: int,
        interest_rate_bps: int,
        duration_days: int,
        caller: AccountId,
    ) -> int:
        """
        Originate a loan and lock its collateral.

        Args:
            borrower: Account that owns the collateral and receives the loan
            collateral_id: Asset to lock
            principal: Amount borrowed (> 0)
            interest_rate_bps: Simple interest for the whole term, in basis points
            duration_days: Term length in days (> 0)
            caller: Account submitting the operation

        Returns:
            The new loan_id

        Raises:
            NotCollateralOwner: If the registry does not report borrower as owner
            CollateralAlreadyLocked: If the asset already backs an active loan
            NotBorrower: If require_borrower_caller is set and caller != borrower
            InvalidLoanTerms: If principal, rate or duration is out of range
            ContractPaused: If the gate is paused
        """
        with self._atomic(ACTION_CREATE):
            if self.registry.owner_of(collateral_id) != borrower:
                raise NotCollateralOwner(f"{borrower} does not own asset {collateral_id}")
            if self.loans.is_collateral_locked(collateral_id):
                raise CollateralAlreadyLocked(
                    f"Asset {collateral_id} already locked by loan "
                    f"{self.loans.locking_loan(collateral_id)}"
                )
            if self.require_borrower_caller and caller != borrower:
                raise NotBorrower(f"{caller} cannot originate a loan for {borrower}")
            validate_loan_terms(principal, interest_rate_bps, duration_days)
            self.gate.require_not_paused()

            loan_id = self.loans.allocate_loan_id()
            record = LoanRecord(
                loan_id=loan_id,
                borrower=borrower,
                collateral_id=collateral_id,
                principal=principal,
                interest_rate_bps=interest_rate_bps,
                duration_days=duration_days,
                created_at=self._current_time,
            )
            self.loans.put(loan_id, record)
            self.loans.lock_collateral(collateral_id, loan_id)
            self.loans.add_to_borrower_index(borrower, loan_id)

        self.scheduler.schedule(expiry_event(loan_id, record.expires_at))
        self._record(ACTION_CREATE, None, record, caller)
        return loan_id

    def repay_loan(self, loan_id: int, amount: int, caller: AccountId) -> LoanRecord:
        """
        Apply a repayment against principal.

        A payment that brings repaid_amount to or past principal settles the
        loan: status becomes REPAID, repaid_amount is clamped to principal and
        the collateral is released. Any excess is accepted and not credited.

        Args:
            loan_id: Loan to repay
            amount: Payment amount (> 0)
            caller: Must be the borrower

        Returns:
            The updated LoanRecord

        Raises:
            LoanNotFound: If the loan does not exist
            NotBorrower: If caller is not the borrower
            LoanNotActive: If the loan is already repaid or liquidated
            InvalidAmount: If amount is not a positive in-range integer
        """
        with self._atomic(ACTION_REPAY):
            old = self.get_loan_info(loan_id)
            if caller != old.borrower:
                raise NotBorrower(f"{caller} is not the borrower of loan {loan_id}")
            if not old.is_active:
                raise LoanNotActive(f"Loan {loan_id} is {old.status.value}")
            if isinstance(amount, bool) or not isinstance(amount, int):
                raise InvalidAmount(f"Repayment must be an integer, got {amount!r}")
            if amount <= 0 or amount > I128_MAX:
                raise InvalidAmount(f"Repayment must be positive, got {amount}")

            new_repaid = old.repaid_amount + amount
            if new_repaid >= old.principal:
                new = replace(old, status=LoanStatus.REPAID, repaid_amount=old.principal)
                self.loans.release_collateral(old.collateral_id)
            else:
                new = replace(old, repaid_amount=new_repaid)
            self.loans.put(loan_id, new)

        self._record(ACTION_REPAY, old, new, caller)
        return new

    def liquidate_loan(self, loan_id: int, caller: AccountId) -> LoanRecord:
        """
        Forfeit the collateral of an expired, unpaid loan to the caller.

        Any account may liquidate once current_time has reached
        created_at + duration_days * 86400. If the borrower liquidates their
        own loan, the loan closes and the asset simply stays put.

        Args:
            loan_id: Loan to liquidate
            caller: Liquidator, who becomes the new owner of the collateral

        Returns:
            The updated LoanRecord

        Raises:
            NotAuthorized: If caller is empty
            LoanNotFound: If the loan does not exist
            LoanNotActive: If the loan is already repaid or liquidated
            LoanNotExpired: If the term has not ended
            ContractPaused: If the gate is paused
        """
        with self._atomic(ACTION_LIQUIDATE):
            if not caller:
                raise NotAuthorized("Liquidator account cannot be empty")
            old = self.get_loan_info(loan_id)
            if not old.is_active:
                raise LoanNotActive(f"Loan {loan_id} is {old.status.value}")
            if self._current_time < old.expires_at:
                raise LoanNotExpired(
                    f"Loan {loan_id} expires at {old.expires_at}, now {self._current_time}"
                )
            self.gate.require_not_paused()

            new = replace(old, status=LoanStatus.LIQUIDATED)
            self.loans.put(loan_id, new)
            self.loans.release_collateral(old.collateral_id)
            if caller != old.borrower:
                self.registry.transfer(old.borrower, caller, old.collateral_id)

        self._record(ACTION_LIQUIDATE, old, new, caller)
        return new

    # ========================================================================
    # INTEREST
    # ========================================================================

    def calculate_interest(self, record: LoanRecord, at_time: Optional[int] = None) -> int:
        """
        Simple interest accrued on record at at_time (default: current time).

        Pure: reads nothing from storage.
        """
        if at_time is None:
            at_time = self._current_time
        return calculate_interest(record, at_time)

    def get_loan_interest(self, loan_id: int, at_time: Optional[int] = None) -> int:
        return self.calculate_interest(self.get_loan_info(loan_id), at_time)

    def get_total_due(self, loan_id: int, at_time: Optional[int] = None) -> int:
        """Principal plus interest less repayments. Informational only."""
        if at_time is None:
            at_time = self._current_time
        return total_due(self.get_loan_info(loan_id), at_time)

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def get_loan_info(self, loan_id: int) -> LoanRecord:
        """
        Return the loan record.

        Raises:
            LoanNotFound: If the loan does not exist
        """
        record = self.loans.get(loan_id)
        if record is None:
            raise LoanNotFound(f"Loan {loan_id} not found")
        return record

    def is_collateral(self, collateral_id: AssetId) -> bool:
        """True iff collateral_id is currently locked by an active loan."""
        loan_id = self.loans.locking_loan(collateral_id)
        if loan_id is None:
            return False
        record = self.loans.get(loan_id)
        return record is not None and record.is_active

    def get_user_loans(self, borrower: AccountId) -> List[int]:
        """Every loan id created by borrower, in creation order, including terminal loans."""
        return self.loans.loans_of(borrower)

    def active_loans(self) -> List[LoanRecord]:
        """All active loans in loan_id order."""
        records = (self.loans.get(loan_id) for loan_id in self.loans.all_loan_ids())
        return [r for r in records if r is not None and r.is_active]

    def expired_loans(self, as_of: Optional[int] = None) -> List[LoanRecord]:
        """Active loans that are eligible for liquidation at as_of (default: now)."""
        if as_of is None:
            as_of = self._current_time
        return [r for r in self.active_loans() if as_of >= r.expires_at]

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _atomic(self, action: str) -> Iterator[None]:
        """
        Run a block as one all-or-nothing transaction.

        Writes made by the block are rolled back if it raises; the exception
        then propagates unchanged.
        """
        self.storage.begin()
        try:
            yield
        except Exception as e:
            self.storage.rollback()
            if self.verbose:
                print(f"✗ REJECTED {action}: {type(e).__name__}: {e}")
            raise
        self.storage.commit()

    def _record(
        self,
        action: str,
        old: Optional[LoanRecord],
        new: LoanRecord,
        caller: AccountId,
    ) -> None:
        transition = LoanTransition(
            sequence_number=len(self.transaction_log),
            action=action,
            loan_id=new.loan_id,
            caller=caller,
            timestamp=self._current_time,
            old_state=to_state_dict(old) if old is not None else None,
            new_state=to_state_dict(new),
        )
        self.transaction_log.append(transition)
        if self.verbose:
            print(f"✓ APPLIED {action} by {caller}: {new!r}")

    def _collateral_transfer_rule(
        self,
        registry: AssetRegistryView,
        from_account: AccountId,
        to_account: Optional[AccountId],
        asset_id: AssetId,
    ) -> None:
        """Refuse to move or burn an asset while it is locked as collateral."""
        if self.loans.is_collateral_locked(asset_id):
            verb = "burn" if to_account is None else "transfer"
            raise TransferRuleViolation(
                f"Cannot {verb} asset {asset_id}: locked as collateral for loan "
                f"{self.loans.locking_loan(asset_id)}"
            )

    def clone(self) -> LendingEngine:
        """
        Create an independent deep copy of this engine and its collaborators.

        Only supported when the registry and gate are the storage-backed
        AssetRegistry and AccessGate, since foreign collaborators keep their
        state outside storage.
        """
        if not isinstance(self.registry, AssetRegistry):
            raise TypeError(f"Cannot clone an engine over {type(self.registry).__name__}")
        if not isinstance(self.gate, AccessGate):
            raise TypeError(f"Cannot clone an engine over {type(self.gate).__name__}")
        storage = self.storage.clone()
        gate = AccessGate(storage, self.gate.administrator)
        registry = AssetRegistry(storage, gate)
        cloned = LendingEngine(
            storage, registry, gate,
            initial_time=self._current_time,
            verbose=self.verbose,
            require_borrower_caller=self.require_borrower_caller,
            scheduler=self.scheduler.clone(),
        )
        cloned.transaction_log = list(self.transaction_log)
        return cloned
