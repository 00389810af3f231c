"""
lending - Collateralized Micro-Lending Engine

A borrower locks a uniquely-identified collectible asset as collateral,
draws a principal amount, accrues simple interest over a fixed term, and
either repays the principal to reclaim the asset or forfeits it to a
liquidator once the term expires unpaid.

Usage:
    from lending import InMemoryStorage, AccessGate, AssetRegistry, LendingEngine

    storage = InMemoryStorage()
    gate = AccessGate(storage, administrator="admin")
    registry = AssetRegistry(storage, gate)
    engine = LendingEngine(storage, registry, gate)

    registry.mint("alice", 1, authorized_by="admin")
    loan_id = engine.create_loan("alice", 1, principal=1000,
                                 interest_rate_bps=500, duration_days=30,
                                 caller="alice")
    engine.repay_loan(loan_id, 1000, caller="alice")
"""

# Core types
from .core import (
    LoanRecord,
    LoanStatus,
    LoanTransition,
    LoanState,
    Storage,
    AssetRegistryView,
    AccessControl,
    TransferRule,
    to_state_dict,
    load_loan_record,
    validate_loan_terms,
    SECONDS_PER_DAY,
    BPS_DENOMINATOR,
    I128_MAX,
    U32_MAX,
    ACTION_CREATE,
    ACTION_REPAY,
    ACTION_LIQUIDATE,
    # Exceptions
    LendingError,
    NotAuthorized,
    NotCollateralOwner,
    CollateralAlreadyLocked,
    InvalidLoanTerms,
    LoanNotFound,
    NotBorrower,
    LoanNotActive,
    InvalidAmount,
    LoanNotExpired,
    ContractPaused,
    RegistryError,
    AssetNotFound,
    AssetAlreadyExists,
    NotAssetOwner,
    TransferRuleViolation,
)

# Collaborators
from .storage import InMemoryStorage
from .access import AccessGate
from .registry import AssetRegistry

# Loan store and interest math
from .loan_ledger import LoanLedger
from .interest import (
    calculate_interest,
    elapsed_days,
    is_expired,
    total_due,
)

# Engine
from .engine import LendingEngine

# Scheduling
from .scheduled_events import Event, EventScheduler, expiry_event, ACTION_EXPIRY
from .keeper import LiquidationKeeper


__all__ = [
    # Core
    'LoanRecord', 'LoanStatus', 'LoanTransition', 'LoanState',
    'Storage', 'AssetRegistryView', 'AccessControl', 'TransferRule',
    'to_state_dict', 'load_loan_record', 'validate_loan_terms',
    'SECONDS_PER_DAY', 'BPS_DENOMINATOR', 'I128_MAX', 'U32_MAX',
    'ACTION_CREATE', 'ACTION_REPAY', 'ACTION_LIQUIDATE',
    # Exceptions
    'LendingError', 'NotAuthorized', 'NotCollateralOwner',
    'CollateralAlreadyLocked', 'InvalidLoanTerms', 'LoanNotFound',
    'NotBorrower', 'LoanNotActive', 'InvalidAmount', 'LoanNotExpired',
    'ContractPaused', 'RegistryError', 'AssetNotFound', 'AssetAlreadyExists',
    'NotAssetOwner', 'TransferRuleViolation',
    # Collaborators
    'InMemoryStorage', 'AccessGate', 'AssetRegistry',
    # Ledger and interest
    'LoanLedger', 'calculate_interest', 'elapsed_days',
    'is_expired', 'total_due',
    # Engine and scheduling
    'LendingEngine', 'Event', 'EventScheduler', 'expiry_event',
    'ACTION_EXPIRY', 'LiquidationKeeper',
]
