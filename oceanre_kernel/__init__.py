"""
OceanRe Ledger Kernel

Chart of accounts, journal entries and the accounting period lifecycle:
- Accounts with postable/header distinction
- Double-entry journal entries scoped to periods
- validate -> calculate -> lock period close with balance carry-forward
"""

__version__ = "0.1.0"
