"""
Core types and pure functions for the collateralized lending engine.

This module provides the foundational data structures and protocols:
1. Protocols: Storage, AssetRegistryView and AccessControl capability interfaces
2. Immutable data structures: LoanRecord, LoanTransition
3. Exceptions: LendingError and the specific error kinds callers can branch on
4. Adapters: to_state_dict / load_loan_record between records and stored state

Nothing in this module mutates storage. The LendingEngine is the only
component that writes loan state.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import (
    Dict, List, Optional, Any, Protocol, Tuple, Hashable, Callable,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

SECONDS_PER_DAY = 86400

# 10000 bps = 100%
BPS_DENOMINATOR = 10000

# Amounts are signed 128-bit integers; rates and durations are unsigned 32-bit.
I128_MAX = 2**127 - 1
U32_MAX = 2**32 - 1

FIRST_LOAN_ID = 1

# Storage key namespaces. Every key is a tuple whose first element is one of these.
NS_ADMIN = "admin"
NS_PAUSED = "paused"
NS_NEXT_LOAN_ID = "next_loan_id"
NS_LOAN = "loan"
NS_COLLATERAL = "collat"
NS_BORROWER_LOANS = "borrower_loans"
NS_ASSET_OWNER = "owner"
NS_OWNER_ASSETS = "owner_assets"
NS_ALL_ASSETS = "all_assets"

# Audit actions
ACTION_CREATE = "create_loan"
ACTION_REPAY = "repay_loan"
ACTION_LIQUIDATE = "liquidate_loan"


# ============================================================================
# TYPE ALIASES
# ============================================================================

AccountId = str
AssetId = int
StorageKey = Tuple[Hashable, ...]

# Plain dict form of a LoanRecord as persisted in storage.
LoanState = Dict[str, Any]


# ============================================================================
# ENUMS
# ============================================================================

class LoanStatus(str, Enum):
    """Status of a loan. REPAID and LIQUIDATED are terminal."""
    ACTIVE = "active"
    REPAID = "repaid"
    LIQUIDATED = "liquidated"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending errors."""
    code: int = 0


class NotAuthorized(LendingError):
    """Raised when an administrative action is attempted by a non-administrator."""
    code = 1


class NotCollateralOwner(LendingError):
    """Raised when the borrower does not own the asset offered as collateral."""
    code = 2


class CollateralAlreadyLocked(LendingError):
    """Raised when the asset already backs an active loan."""
    code = 3


class InvalidLoanTerms(LendingError):
    """Raised when principal, rate or duration is out of range."""
    code = 4


class LoanNotFound(LendingError):
    """Raised when no loan exists for the given identifier."""
    code = 5


class NotBorrower(LendingError):
    """Raised when a borrower-only action is attempted by someone else."""
    code = 6


class LoanNotActive(LendingError):
    """Raised when acting on a loan that is already repaid or liquidated."""
    code = 7


class InvalidAmount(LendingError):
    """Raised when a repayment amount is not positive or out of range."""
    code = 8


class LoanNotExpired(LendingError):
    """Raised when liquidation is attempted before the loan term has ended."""
    code = 9


class ContractPaused(LendingError):
    """Raised when a gated operation is attempted while the system is paused."""
    code = 10


class RegistryError(LendingError):
    """Base exception for asset registry failures."""
    code = 20


class AssetNotFound(RegistryError):
    """Raised when an asset identifier has never been minted or was burned."""
    code = 21


class AssetAlreadyExists(RegistryError):
    """Raised when minting an asset identifier that is already owned."""
    code = 22


class NotAssetOwner(RegistryError):
    """Raised when a transfer names a source account that does not own the asset."""
    code = 23


class TransferRuleViolation(RegistryError):
    """Raised when an installed transfer rule refuses an asset movement."""
    code = 24


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Storage(Protocol):
    """
    Key-value persistence consumed by every component.

    Reads return copies; callers mutate state only through set() and delete().
    """

    def get(self, key: StorageKey, default: Any = None) -> Any:
        """Return the stored value, or default if the key is missing."""
        ...

    def set(self, key: StorageKey, value: Any) -> None:
        """Store a value under key, replacing any previous value."""
        ...

    def delete(self, key: StorageKey) -> None:
        """Remove key. Deleting a missing key is a no-op."""
        ...

    def has(self, key: StorageKey) -> bool:
        """Return True if key is present."""
        ...

    def keys(self, namespace: Optional[str] = None) -> List[StorageKey]:
        """List keys in a deterministic order, optionally within one namespace."""
        ...

    def begin(self) -> None:
        """Open a transaction. Writes until commit() or rollback() are journaled."""
        ...

    def commit(self) -> None:
        """Keep the writes of the open transaction."""
        ...

    def rollback(self) -> None:
        """Undo the writes of the open transaction."""
        ...

    def clone(self) -> "Storage":
        """Return an independent copy of the committed contents."""
        ...


@runtime_checkable
class AssetRegistryView(Protocol):
    """
    Ownership capability the engine needs from the asset registry.

    The concrete AssetRegistry implements this; tests may substitute a fake.
    """

    def owner_of(self, asset_id: AssetId) -> Optional[AccountId]:
        """Return the current owner, or None if the asset does not exist."""
        ...

    def transfer(self, from_account: AccountId, to_account: AccountId, asset_id: AssetId) -> None:
        """Move an asset. Fails if from_account is not the current owner."""
        ...


@runtime_checkable
class AccessControl(Protocol):
    """Administrator and pause capability the engine needs from the access gate."""

    @property
    def administrator(self) -> AccountId:
        ...

    def is_paused(self) -> bool:
        ...

    def require_not_paused(self) -> None:
        """Raise ContractPaused if paused."""
        ...


# Transfer rules validate asset movements and raise TransferRuleViolation.
# Arguments: registry, from_account, to_account (None for burn), asset_id.
TransferRule = Callable[[Any, AccountId, Optional[AccountId], AssetId], None]


# ============================================================================
# LOAN RECORD
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanRecord:
    """
    Immutable snapshot of one loan.

    Every lifecycle change produces a NEW record (value semantics). Term
    fields are fixed at creation; only status and repaid_amount change.

    Attributes:
        loan_id: Unique positive identifier, never reused.
        borrower: Account that owns the collateral and owes the principal.
        collateral_id: Asset locked against this loan.
        principal: Amount owed excluding interest (> 0).
        interest_rate_bps: Simple interest rate for the whole term, in basis points.
        duration_days: Term length in days (> 0).
        created_at: Ledger timestamp in seconds at creation.
        status: ACTIVE, REPAID or LIQUIDATED.
        repaid_amount: Principal repaid so far, never above principal.
    """
    loan_id: int
    borrower: AccountId
    collateral_id: AssetId
    principal: int
    interest_rate_bps: int
    duration_days: int
    created_at: int
    status: LoanStatus = LoanStatus.ACTIVE
    repaid_amount: int = 0

    @property
    def expires_at(self) -> int:
        """First timestamp at which the loan may be liquidated."""
        return self.created_at + self.duration_days * SECONDS_PER_DAY

    @property
    def outstanding_principal(self) -> int:
        return self.principal - self.repaid_amount

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self.status in (LoanStatus.REPAID, LoanStatus.LIQUIDATED)

    def __repr__(self) -> str:
        return (
            f"Loan(#{self.loan_id} {self.status.value}: {self.borrower} "
            f"asset={self.collateral_id} principal={self.principal} "
            f"repaid={self.repaid_amount} rate={self.interest_rate_bps}bps "
            f"term={self.duration_days}d)"
        )


# ============================================================================
# ADAPTERS - Bridge Between Storage and Typed Records
# ============================================================================

def to_state_dict(record: LoanRecord) -> LoanState:
    """
    Convert a LoanRecord to the plain dict persisted in storage.

    This is the inverse of load_loan_record().
    """
    return {
        'loan_id': record.loan_id,
        'borrower': record.borrower,
        'collateral_id': record.collateral_id,
        'principal': record.principal,
        'interest_rate_bps': record.interest_rate_bps,
        'duration_days': record.duration_days,
        'created_at': record.created_at,
        'status': record.status.value,
        'repaid_amount': record.repaid_amount,
    }


def load_loan_record(loan_id: int, raw: Optional[LoanState]) -> LoanRecord:
    """
    Load a LoanRecord from stored state.

    Numeric counters default to zero when missing. A missing status loads
    as REPAID, so an incomplete record can never be repaid or liquidated.
    Identity fields do not default: a missing record or a record without a
    borrower is reported as LoanNotFound.

    Args:
        loan_id: Identifier the state was stored under
        raw: Stored state dict, or None if the key was missing

    Returns:
        Frozen LoanRecord

    Raises:
        LoanNotFound: If raw is None or has no borrower.
    """
    if not raw or not raw.get('borrower'):
        raise LoanNotFound(f"Loan {loan_id} not found")

    return LoanRecord(
        loan_id=raw.get('loan_id', loan_id),
        borrower=raw['borrower'],
        collateral_id=raw.get('collateral_id', 0),
        principal=raw.get('principal', 0),
        interest_rate_bps=raw.get('interest_rate_bps', 0),
        duration_days=raw.get('duration_days', 0),
        created_at=raw.get('created_at', 0),
        status=LoanStatus(raw.get('status', LoanStatus.REPAID.value)),
        repaid_amount=raw.get('repaid_amount', 0),
    )


# ============================================================================
# AUDIT TRAIL
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanTransition:
    """
    Record of one applied lifecycle transition, for audit.

    Stores complete before/after snapshots so that changed fields can be
    computed on demand.

    Attributes:
        sequence_number: Monotonic position in the engine's transaction log
        action: create_loan, repay_loan or liquidate_loan
        loan_id: Loan the transition applied to
        caller: Account that submitted the operation
        timestamp: Ledger time (seconds) when applied
        old_state: State before the change (None on creation)
        new_state: State after the change
    """
    sequence_number: int
    action: str
    loan_id: int
    caller: AccountId
    timestamp: int
    old_state: Optional[LoanState]
    new_state: LoanState

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """
        Compute fields that differ between old and new state.

        Returns:
            Dict mapping field name to (old_value, new_value) tuples.
        """
        old = self.old_state or {}
        new = self.new_state or {}
        changes = {}
        for key in sorted(set(old) | set(new)):
            if old.get(key) != new.get(key):
                changes[key] = (old.get(key), new.get(key))
        return changes

    def __repr__(self) -> str:
        return (
            f"Transition(#{self.sequence_number} {self.action} loan={self.loan_id} "
            f"caller={self.caller} t={self.timestamp})"
        )


def validate_loan_terms(principal: int, interest_rate_bps: int, duration_days: int) -> None:
    """
    Check loan terms against their allowed ranges.

    Raises:
        InvalidLoanTerms: If principal is not in (0, I128_MAX], duration is not
                          in (0, U32_MAX], or rate is not in [0, U32_MAX].
    """
    for name, value in (
        ('principal', principal),
        ('interest_rate_bps', interest_rate_bps),
        ('duration_days', duration_days),
    ):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidLoanTerms(f"{name} must be an integer, got {value!r}")

    if principal <= 0 or principal > I128_MAX:
        raise InvalidLoanTerms(f"principal must be positive, got {principal}")
    if duration_days <= 0 or duration_days > U32_MAX:
        raise InvalidLoanTerms(f"duration_days must be positive, got {duration_days}")
    if interest_rate_bps < 0 or interest_rate_bps > U32_MAX:
        raise InvalidLoanTerms(f"interest_rate_bps out of range, got {interest_rate_bps}")

