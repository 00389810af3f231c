"""
interest.py - Simple Interest on Loan Records

PURE FUNCTIONS - all inputs explicit, no storage access, no hidden state.

Key Formulas:
    elapsed_days = floor((at_time - created_at) / 86400), clamped to [0, duration_days]
    interest     = principal * rate_bps * elapsed_days // (10000 * duration_days)
    total_due    = max(0, principal + interest - repaid_amount)

All arithmetic is on Python integers with floor division, so results are
exact and identical on every run. The rate is quoted for the whole term, so
a loan held to term accrues exactly principal * rate_bps // 10000.

Interest stops accruing at term end. After expiry the consequence of
non-payment is liquidation eligibility, not a growing balance.
"""

from __future__ import annotations

from .core import LoanRecord, SECONDS_PER_DAY, BPS_DENOMINATOR


def elapsed_days(record: LoanRecord, at_time: int) -> int:
    """
    Whole days elapsed since creation, clamped to the loan term.

    Args:
        record: Loan to measure
        at_time: Timestamp in seconds

    Returns:
        Integer in [0, record.duration_days]

    Example:
        created_at=0, duration 30 days, at_time=86399  -> 0
        created_at=0, duration 30 days, at_time=86400  -> 1
        created_at=0, duration 30 days, at_time=10**9  -> 30
    """
    days = (at_time - record.created_at) // SECONDS_PER_DAY
    return max(0, min(days, record.duration_days))


def calculate_interest(record: LoanRecord, at_time: int) -> int:
    """
    Calculate simple interest accrued on a loan at a point in time.

    Args:
        record: Loan record
        at_time: Timestamp in seconds

    Returns:
        Interest amount (floor), 0 if no whole day has elapsed or rate is zero

    Example:
        principal=1000, rate 1000 bps, 365-day term, 365 days elapsed:
        1000 * 1000 * 365 // (10000 * 365) = 100
    """
    if record.duration_days <= 0:
        return 0
    days = elapsed_days(record, at_time)
    numerator = record.principal * record.interest_rate_bps * days
    return numerator // (BPS_DENOMINATOR * record.duration_days)


def is_expired(record: LoanRecord, at_time: int) -> bool:
    """True once at_time has reached created_at + duration_days * 86400."""
    return at_time >= record.expires_at


def total_due(record: LoanRecord, at_time: int) -> int:
    """
    Principal plus accrued interest, less what has been repaid.

    Informational only: repayment settles against principal alone, so a
    loan can reach REPAID with interest never collected. Terminal loans owe 0.
    """
    if record.is_terminal:
        return 0
    owed = record.principal + calculate_interest(record, at_time) - record.repaid_amount
    return max(0, owed)
