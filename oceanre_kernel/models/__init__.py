"""Domain models for the OceanRe kernel."""

from oceanre_kernel.models.account import (
    Account,
    AccountType,
    NormalBalance,
    normal_balance_for,
)
from oceanre_kernel.models.fiscal_period import (
    ACTIVE_STATUSES,
    TRANSIENT_STATUSES,
    FiscalPeriod,
    PeriodStatus,
)
from oceanre_kernel.models.journal import JournalEntry, JournalLine
from oceanre_kernel.models.period_balance import PeriodBalance

__all__ = [
    "Account",
    "AccountType",
    "NormalBalance",
    "normal_balance_for",
    "ACTIVE_STATUSES",
    "TRANSIENT_STATUSES",
    "FiscalPeriod",
    "PeriodStatus",
    "JournalEntry",
    "JournalLine",
    "PeriodBalance",
]
