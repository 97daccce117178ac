"""
Module: oceanre_kernel.models.period_balance
Responsibility: Persisted closing balances produced by period calculation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per (period, account) (uq_period_balance_account).
    - Rows for a period are replaced as a whole by each calculation, inside
      a savepoint; a failed calculation leaves the previous rows untouched.
    - closing_balance == opening_balance + debit_total - credit_total.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from oceanre_kernel.db.base import TrackedBase, UUIDString
from oceanre_kernel.db.types import Amount


class PeriodBalance(TrackedBase):
    """Per-account balance for one period, as of its last calculation."""

    __tablename__ = "period_balances"

    __table_args__ = (
        UniqueConstraint("period_id", "account_id", name="uq_period_balance_account"),
        Index("idx_period_balance_period", "period_id"),
    )

    period_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_periods.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    # Carried forward from the preceding period's closing balance
    opening_balance: Mapped[Amount] = mapped_column(nullable=False, default=Decimal("0"))

    debit_total: Mapped[Amount] = mapped_column(nullable=False, default=Decimal("0"))

    credit_total: Mapped[Amount] = mapped_column(nullable=False, default=Decimal("0"))

    closing_balance: Mapped[Amount] = mapped_column(nullable=False, default=Decimal("0"))

    # Period revision the balance was calculated at
    revision: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<PeriodBalance {self.period_id}/{self.account_id}: {self.closing_balance}>"
