#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Collateralized Lending Step by Step

A pedagogical walkthrough of the lending engine. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - Shared storage, the access gate, minting collateral
  4-6:  Borrowing    - Opening a loan, collateral locks, interest accrual
  7-8:  Settlement   - Partial and full repayment
  9-10: Default      - Expiry, liquidation and the keeper
  11:   Audit        - Reading the transaction log

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from lending import (
    # Collaborators
    InMemoryStorage, AccessGate, AssetRegistry,
    # Engine
    LendingEngine, LiquidationKeeper,
    # Errors shown during the tour
    LendingError,
    # Constants
    SECONDS_PER_DAY,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: int = 1_735_689_600  # 2025-01-01 00:00:00 UTC

    admin: str = "alice"
    borrower: str = "bob"
    liquidator: str = "carol"

    principal: int = 1000
    rate_bps: int = 500
    duration_days: int = 30


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_build_engine() -> LendingEngine:
    """Wire storage, gate, registry and engine together."""
    step_header(1, "One Storage, Three Views",
        "See that the gate, the registry and the loans share one store.")

    print("""
    Every component reads and writes the same key-value storage:

    1. ACCESS GATE - administrator and pause flag
    2. REGISTRY    - who owns which asset
    3. ENGINE      - loan records, collateral locks, borrower index

    Because it is one store, one transaction covers everything, and a failed
    operation can be rolled back completely.
    """)

    storage = InMemoryStorage()
    gate = AccessGate(storage, administrator=CONFIG.admin)
    registry = AssetRegistry(storage, gate)
    engine = LendingEngine(storage, registry, gate,
                           initial_time=CONFIG.start_time, verbose=True)

    section_header("Initial State")
    print(f"Administrator:   {gate.administrator}")
    print(f"Paused:          {gate.is_paused()}")
    print(f"Assets minted:   {registry.total_supply()}")
    print(f"Loans:           {engine.loans.loan_count()}")
    print(f"Current time:    {engine.current_time}")
    return engine


def step_02_pause_gate(engine: LendingEngine) -> LendingEngine:
    """Only the administrator can pause."""
    step_header(2, "The Access Gate",
        "Understand who may pause and what a pause blocks.")

    section_header(f"{CONFIG.borrower} tries to pause")
    try:
        engine.gate.pause(CONFIG.borrower)
    except LendingError as e:
        print(f"Refused: {type(e).__name__}: {e}")

    section_header(f"{CONFIG.admin} pauses and unpauses")
    engine.gate.pause(CONFIG.admin)
    print(f"Paused: {engine.gate.is_paused()}")
    engine.gate.unpause(CONFIG.admin)
    print(f"Paused: {engine.gate.is_paused()}")
    return engine


def step_03_mint_collateral(engine: LendingEngine) -> LendingEngine:
    """Mint two assets to the borrower."""
    step_header(3, "Minting Collateral",
        "Create the assets the borrower will pledge.")

    engine.registry.mint(CONFIG.borrower, 1, authorized_by=CONFIG.admin)
    engine.registry.mint(CONFIG.borrower, 2, authorized_by=CONFIG.admin)
    print(f"{CONFIG.borrower} holds: {engine.registry.assets_of(CONFIG.borrower)}")
    return engine


# ============================================================================
# PHASE 2: BORROWING (Steps 4-6)
# ============================================================================

def step_04_open_loan(engine: LendingEngine) -> int:
    """Create a loan against asset #1."""
    step_header(4, "Opening a Loan",
        "Pledge asset #1 and receive a loan identifier.")

    loan_id = engine.create_loan(
        CONFIG.borrower, 1, CONFIG.principal, CONFIG.rate_bps,
        CONFIG.duration_days, caller=CONFIG.borrower,
    )
    record = engine.get_loan_info(loan_id)
    print(f"\nLoan id:         {loan_id}")
    print(f"Record:          {record!r}")
    print(f"Expires at:      {record.expires_at}")
    print(f"Asset #1 locked: {engine.is_collateral(1)}")
    return loan_id


def step_05_collateral_lock(engine: LendingEngine) -> LendingEngine:
    """A locked asset cannot be pledged twice or moved."""
    step_header(5, "Collateral Locks",
        "See the two ways a locked asset is protected.")

    section_header("Pledging asset #1 a second time")
    try:
        engine.create_loan(CONFIG.borrower, 1, 50, 0, 1, caller=CONFIG.borrower)
    except LendingError as e:
        print(f"Refused: {type(e).__name__}")

    section_header("Transferring asset #1 away")
    try:
        engine.registry.transfer(CONFIG.borrower, "mallory", 1)
    except LendingError as e:
        print(f"Refused: {type(e).__name__}: {e}")
    return engine


def step_06_interest(engine: LendingEngine, loan_id: int) -> LendingEngine:
    """Interest is simple, whole-day and informational."""
    step_header(6, "Interest Accrual",
        "Watch interest grow with whole days and stop at term end.")

    for day in (0, 1, 15, 30, 60):
        at_time = CONFIG.start_time + day * SECONDS_PER_DAY
        interest = engine.get_loan_interest(loan_id, at_time)
        print(f"  day {day:>3}: interest = {interest}")

    print("""
    Interest is never added to what must be repaid: repaying the principal
    alone closes the loan.
    """)
    return engine


# ============================================================================
# PHASE 3: SETTLEMENT (Steps 7-8)
# ============================================================================

def step_07_partial_repayment(engine: LendingEngine, loan_id: int) -> LendingEngine:
    step_header(7, "Partial Repayment",
        "Repay half the principal; the loan stays active.")
    engine.advance_days(10)
    record = engine.repay_loan(loan_id, CONFIG.principal // 2, caller=CONFIG.borrower)
    print(f"Repaid so far:   {record.repaid_amount}")
    print(f"Still locked:    {engine.is_collateral(1)}")
    return engine


def step_08_full_repayment(engine: LendingEngine, loan_id: int) -> LendingEngine:
    step_header(8, "Full Repayment",
        "Cover the remaining principal; the collateral is released.")
    remaining = engine.get_loan_info(loan_id).outstanding_principal
    record = engine.repay_loan(loan_id, remaining, caller=CONFIG.borrower)
    print(f"Status:          {record.status.value}")
    print(f"Asset #1 locked: {engine.is_collateral(1)}")
    return engine


# ============================================================================
# PHASE 4: DEFAULT (Steps 9-10)
# ============================================================================

def step_09_early_liquidation(engine: LendingEngine) -> int:
    """Liquidation before expiry is refused."""
    step_header(9, "Liquidation Timing",
        "A loan can only be liquidated once its term has ended.")

    loan_id = engine.create_loan(
        CONFIG.borrower, 2, CONFIG.principal, CONFIG.rate_bps,
        CONFIG.duration_days, caller=CONFIG.borrower,
    )
    try:
        engine.liquidate_loan(loan_id, caller=CONFIG.liquidator)
    except LendingError as e:
        print(f"Refused: {type(e).__name__}")
    return loan_id


def step_10_keeper(engine: LendingEngine, loan_id: int) -> LendingEngine:
    """The keeper liquidates on the scheduled expiry event."""
    step_header(10, "The Liquidation Keeper",
        "Let the keeper act on expiry events as time passes.")

    keeper = LiquidationKeeper(engine, liquidator=CONFIG.liquidator)
    expires = engine.get_loan_info(loan_id).expires_at
    liquidated = keeper.step(expires)

    print(f"Liquidated:      {[r.loan_id for r in liquidated]}")
    print(f"Asset #2 owner:  {engine.registry.owner_of(2)}")
    print(f"Pending events:  {keeper.pending_event_count()}")
    return engine


# ============================================================================
# PHASE 5: AUDIT (Step 11)
# ============================================================================

def step_11_audit(engine: LendingEngine) -> LendingEngine:
    step_header(11, "The Transaction Log",
        "Every applied operation is recorded; rejected ones are not.")
    for transition in engine.transaction_log:
        print(f"  {transition!r}")
        for field, (old, new) in transition.changed_fields().items():
            if transition.old_state is not None:
                print(f"      {field}: {old} -> {new}")
    return engine


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       COLLATERALIZED LENDING - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    engine = step_01_build_engine()
    wait_for_enter()
    engine = step_02_pause_gate(engine)
    wait_for_enter()
    engine = step_03_mint_collateral(engine)
    wait_for_enter()

    loan_id = step_04_open_loan(engine)
    wait_for_enter()
    engine = step_05_collateral_lock(engine)
    wait_for_enter()
    engine = step_06_interest(engine, loan_id)
    wait_for_enter()

    engine = step_07_partial_repayment(engine, loan_id)
    wait_for_enter()
    engine = step_08_full_repayment(engine, loan_id)
    wait_for_enter()

    defaulted = step_09_early_liquidation(engine)
    wait_for_enter()
    engine = step_10_keeper(engine, defaulted)
    wait_for_enter()

    step_11_audit(engine)

    print(f"\n{'='*70}")
    print("TUTORIAL COMPLETE")
    print(f"{'='*70}")
    print("""
    Next steps:
      - See lending/engine.py for the state machine
      - Run tests: pytest tests/
    """)
    return engine


if __name__ == "__main__":
    main()
