"""Routers package."""

from .accounts import router as accounts_router
from .journal_entries import router as journal_entries_router
from .journal_entry_lines import router as journal_entry_lines_router
from .periods import router as periods_router

__all__ = [
    "accounts_router",
    "journal_entries_router",
    "journal_entry_lines_router",
    "periods_router",
]
