"""
helpers.py - Shared constructors and constants for lending tests
"""

from lending import (
    InMemoryStorage, AccessGate, AssetRegistry, LendingEngine,
    SECONDS_PER_DAY,
)


ADMIN = "admin"
BORROWER = "borrower"
OTHER = "other"
LIQUIDATOR = "liquidator"

# Arbitrary non-zero start so created_at is distinguishable from the default
START_TIME = 1_700_000_000


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def build_engine(start_time: int = START_TIME, **kwargs) -> LendingEngine:
    """Create a quiet engine with fresh storage, gate and registry."""
    storage = InMemoryStorage()
    gate = AccessGate(storage, administrator=ADMIN)
    registry = AssetRegistry(storage, gate)
    kwargs.setdefault("verbose", False)
    return LendingEngine(storage, registry, gate, initial_time=start_time, **kwargs)


def mint(engine: LendingEngine, owner: str, *asset_ids: int) -> None:
    for asset_id in asset_ids:
        engine.registry.mint(owner, asset_id, authorized_by=ADMIN)


def open_loan(
    engine: LendingEngine,
    collateral_id: int = 1,
    principal: int = 1000,
    rate_bps: int = 500,
    duration_days: int = 30,
    borrower: str = BORROWER,
) -> int:
    """Create a loan for borrower, minting the collateral first if needed."""
    if engine.registry.owner_of(collateral_id) is None:
        mint(engine, borrower, collateral_id)
    return engine.create_loan(
        borrower, collateral_id, principal, rate_bps, duration_days, caller=borrower
    )


def days(n: int) -> int:
    return n * SECONDS_PER_DAY

