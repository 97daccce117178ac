"""
Pure domain layer.

Data transfer objects and domain logic with NO dependencies on:
- ORM sessions or the database
- Time/clock (except the Clock abstraction itself)
- I/O

All domain objects are immutable and deterministic.
"""

from oceanre_kernel.domain.balances import compute_balances
from oceanre_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from oceanre_kernel.domain.dtos import (
    AccountBalanceRow,
    AccountInfo,
    BalanceReport,
    JournalEntryInfo,
    JournalLineInfo,
    LineInput,
    PeriodInfo,
    ValidationReport,
    Violation,
    ViolationCode,
)
from oceanre_kernel.domain.validation import normalize_line_amounts, scan_period

__all__ = [
    "AccountBalanceRow",
    "AccountInfo",
    "BalanceReport",
    "Clock",
    "DeterministicClock",
    "JournalEntryInfo",
    "JournalLineInfo",
    "LineInput",
    "PeriodInfo",
    "SystemClock",
    "ValidationReport",
    "Violation",
    "ViolationCode",
    "compute_balances",
    "normalize_line_amounts",
    "scan_period",
]
