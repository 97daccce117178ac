"""Services for the OceanRe kernel (write side)."""

from oceanre_kernel.services.account_registry import AccountRegistry
from oceanre_kernel.services.journal_store import JournalStore
from oceanre_kernel.services.period_guard import PeriodGuard, default_guard
from oceanre_kernel.services.period_service import PeriodLifecycleService

__all__ = [
    "AccountRegistry",
    "JournalStore",
    "PeriodGuard",
    "PeriodLifecycleService",
    "default_guard",
]
