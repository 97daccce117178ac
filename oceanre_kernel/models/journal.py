"""
Module: oceanre_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - entry_number is unique (uq_journal_entry_number).
    - An entry owns its lines exclusively: deleting the entry deletes its
      lines (cascade="all, delete-orphan").
    - Line amounts are non-negative and exactly one side is nonzero
      (JournalStore at write time; ck_journal_line_* as backstop).
    - Debits == credits per entry is NOT enforced at write time; the
      period validation pass reports unbalanced entries.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from oceanre_kernel.db.base import TrackedBase, UUIDString
from oceanre_kernel.db.types import Amount

if TYPE_CHECKING:
    from oceanre_kernel.models.account import Account
    from oceanre_kernel.models.fiscal_period import FiscalPeriod


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the unit of double-entry accounting.

    Contract:
        Each entry belongs to exactly one period and its posting_date lies
        within that period's date range at creation time.  Balance is a
        read-side property here; the validation pass decides whether a
        period may proceed to calculation.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("entry_number", name="uq_journal_entry_number"),
        Index("idx_journal_period", "period_id"),
        Index("idx_journal_posting_date", "posting_date"),
    )

    entry_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Accounting date (must fall inside the period)
    posting_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Upstream document reference (invoice number, receipt id, ...)
    source_reference: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_periods.id"),
        nullable=False,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_number",
    )

    period: Mapped["FiscalPeriod"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} {self.posting_date}>"

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        """Check if debits equal credits (read-side convenience)."""
        return self.total_debits == self.total_credits


class JournalLine(TrackedBase):
    """
    Individual debit or credit line within a journal entry.

    Contract:
        Exactly one of debit / credit is nonzero; both are non-negative.
        Two lines on the same account are never merged.
    """

    __tablename__ = "journal_lines"

    # CAST keeps the checks numeric where amounts are stored as text (SQLite).
    __table_args__ = (
        Index("idx_line_entry", "entry_id"),
        Index("idx_line_account", "account_id"),
        CheckConstraint(
            "CAST(debit AS NUMERIC) >= 0 AND CAST(credit AS NUMERIC) >= 0",
            name="ck_journal_line_non_negative",
        ),
        CheckConstraint(
            "(CAST(debit AS NUMERIC) = 0 AND CAST(credit AS NUMERIC) > 0)"
            " OR (CAST(credit AS NUMERIC) = 0 AND CAST(debit AS NUMERIC) > 0)",
            name="ck_journal_line_one_side",
        ),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit: Mapped[Amount] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    credit: Mapped[Amount] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    memo: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Position within the entry, assigned by JournalStore
    line_number: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines", lazy="joined")

    def __repr__(self) -> str:
        return f"<JournalLine {self.line_number} dr={self.debit} cr={self.credit}>"

    @property
    def is_debit(self) -> bool:
        return self.debit > 0
