"""
scheduled_events.py - Minimal Loan Event Scheduler

Simple heap-based scheduling of loan lifecycle events:
- Events are just data
- The scheduler only answers "what is due at time t?"
- The engine's transaction log IS the audit trail (no separate event status tracking)

The engine schedules one expiry event per loan when it is created. Events
are never cancelled: if a loan is repaid before its expiry, the stale event
is popped in due course and ignored because the loan is no longer active.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import heapq


ACTION_EXPIRY = "expiry"


# ============================================================================
# EVENT DATA STRUCTURE
# ============================================================================

@dataclass(frozen=True, slots=True)
class Event:
    """
    Immutable scheduled loan event.

    Sorting: by trigger_time, then priority (lower=first), then loan_id.

    Attributes:
        trigger_time: Timestamp in seconds at which the event is due
        priority: Execution order within the same timestamp (0=first)
        loan_id: Loan this event concerns
        action: Event type string ("expiry")
        params: Event-specific parameters as frozen tuple of (key, value) pairs
    """
    trigger_time: int
    priority: int = 0
    loan_id: int = 0
    action: str = ""
    params: tuple = ()

    def __lt__(self, other: 'Event') -> bool:
        if self.trigger_time != other.trigger_time:
            return self.trigger_time < other.trigger_time
        if self.priority != other.priority:
            return self.priority < other.priority
        return self.loan_id < other.loan_id

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    @property
    def event_id(self) -> str:
        """Deterministic ID for deduplication (includes params for uniqueness)."""
        params_str = "|".join(f"{k}={v}" for k, v in sorted(self.params))
        return f"{self.action}:{self.loan_id}:{self.trigger_time}:{params_str}"


# ============================================================================
# EVENT SCHEDULER
# ============================================================================

class EventScheduler:
    """
    Priority queue of pending loan events.

    Design:
    - Events are scheduled in advance
    - get_due() pops events ready to act on, in order
    - The same event scheduled twice is returned once per get_due() batch
    - Callers put back events they could not process with schedule_many()
    """

    def __init__(self):
        self._heap: List[Event] = []

    def schedule(self, event: Event) -> str:
        """
        Add an event to the pending queue.

        Returns the event_id.
        """
        heapq.heappush(self._heap, event)
        return event.event_id

    def schedule_many(self, events: List[Event]) -> List[str]:
        return [self.schedule(event) for event in events]

    def get_due(self, as_of: int) -> List[Event]:
        """
        Get and remove events due for processing.

        Returns events with trigger_time <= as_of, in execution order.
        Duplicates within one batch are dropped.
        """
        due = []
        seen = set()
        while self._heap and self._heap[0].trigger_time <= as_of:
            event = heapq.heappop(self._heap)
            if event.event_id in seen:
                continue
            seen.add(event.event_id)
            due.append(event)
        return due

    def pending_count(self) -> int:
        return len(self._heap)

    def peek_next(self) -> Optional[Event]:
        return self._heap[0] if self._heap else None

    def clone(self) -> EventScheduler:
        cloned = EventScheduler()
        cloned._heap = list(self._heap)
        return cloned


# ============================================================================
# EVENT FACTORY FUNCTIONS
# ============================================================================

def expiry_event(loan_id: int, expires_at: int) -> Event:
    """Create a loan expiry event, due at the first liquidatable timestamp."""
    return Event(
        trigger_time=expires_at,
        priority=40,  # Settlement phase
        loan_id=loan_id,
        action=ACTION_EXPIRY,
    )
