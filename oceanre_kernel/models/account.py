"""
Module: oceanre_kernel.models.account
Responsibility: ORM persistence for the Chart of Accounts -- the target
    of every journal line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique (uq_account_code).
    - account_type is one of the closed AccountType enumeration.
    - Only postable (leaf) accounts receive journal lines; enforced by
      JournalStore at write time and re-checked by period validation.
    - code and account_type are immutable once any JournalLine references
      the account (AccountRegistry guard).

Failure modes:
    - AccountNotFoundError when a posting references a non-existent account.
    - NonPostableAccountError when a line targets a header account.
    - AccountReferencedError on deletion / structural edit of a referenced account.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from oceanre_kernel.db.base import TrackedBase

if TYPE_CHECKING:
    from oceanre_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


_DEBIT_NORMAL_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})


def normal_balance_for(account_type: AccountType) -> NormalBalance:
    """Normal balance side implied by an account type."""
    if AccountType(account_type) in _DEBIT_NORMAL_TYPES:
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


class Account(TrackedBase):
    """
    Chart of Accounts entry.

    Contract:
        Account.code is globally unique.  Once an account is referenced by
        a JournalLine, its code and account_type MUST NOT change, it cannot
        be marked non-postable, and it is never deleted.

    Non-goals:
        - Hierarchy (parent/child headers) is not modelled; is_postable is
          the only distinction between leaf and summary accounts.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
    )

    # Human-assigned account code (e.g., "1000")
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    # Leaf accounts only may receive journal lines
    is_postable: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(self.account_type)
