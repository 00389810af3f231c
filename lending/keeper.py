"""
keeper.py - Liquidation Keeper

Drives expiry-triggered liquidation on behalf of one liquidator account.

Execution order each step():
1. Advance engine time
2. Pop expiry events that are due (in trigger order)
3. Liquidate every loan among them that is still ACTIVE

Events whose loan was repaid in the meantime are skipped. The engine's
transaction log is the audit trail; the keeper keeps no state of its own.
"""

from __future__ import annotations
from typing import List

from .core import AccountId, LendingError, LoanRecord
from .engine import LendingEngine
from .scheduled_events import ACTION_EXPIRY


class LiquidationKeeper:
    """
    Liquidates expired loans as their expiry events come due.

    Example:
        keeper = LiquidationKeeper(engine, liquidator="keeper")
        liquidated = keeper.step(engine.current_time + 31 * 86400)
    """

    def __init__(self, engine: LendingEngine, liquidator: AccountId):
        if not liquidator:
            raise ValueError("liquidator cannot be empty")
        self.engine = engine
        self.liquidator = liquidator
        self.verbose = engine.verbose

    def step(self, timestamp: int) -> List[LoanRecord]:
        """
        Advance time and liquidate every loan whose expiry is due.

        Args:
            timestamp: New ledger time in seconds

        Returns:
            Records of the loans liquidated during this step, in event order

        Raises:
            LendingError: Any engine failure propagates (e.g. ContractPaused).
                          Events not yet processed stay scheduled.
        """
        self.engine.advance_time(timestamp)
        liquidated: List[LoanRecord] = []
        due = self.engine.scheduler.get_due(timestamp)

        for index, event in enumerate(due):
            if event.action != ACTION_EXPIRY:
                continue
            record = self.engine.get_loan_info(event.loan_id)
            if not record.is_active:
                continue
            if self.verbose:
                print(f"[EXPIRY] Liquidating loan {record.loan_id}")
            try:
                liquidated.append(self.engine.liquidate_loan(record.loan_id, self.liquidator))
            except LendingError:
                # Unprocessed events stay scheduled
                self.engine.scheduler.schedule_many(due[index:])
                raise

        return liquidated

    def run(self, timestamps: List[int]) -> List[LoanRecord]:
        """Run the keeper through a sequence of timestamps."""
        all_liquidated: List[LoanRecord] = []
        for timestamp in timestamps:
            all_liquidated.extend(self.step(timestamp))
        return all_liquidated

    def pending_event_count(self) -> int:
        return self.engine.scheduler.pending_count()
