"""
Module: oceanre_kernel.models.fiscal_period
Responsibility: ORM persistence for the accounting period lifecycle --
    controls which date ranges accept postings and tracks how far a period
    has progressed towards LOCKED.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - name is unique (uq_period_name).
    - start_date < end_date; ranges never overlap (PeriodLifecycleService).
    - status is changed only by PeriodLifecycleService.  VALIDATING and
      CALCULATING are transient and held only while the corresponding
      operation runs.
    - revision increases on every mutation of the period's journal entries
      or date range.  validated_revision / calculated_revision record the
      revision at which the last clean validation / successful calculation
      ran; a mismatch with revision means that result is stale.

Failure modes:
    - PeriodLockedError when mutating entries of a LOCKED period.
    - PeriodBusyError while a lifecycle operation is in flight.
    - StaleValidationError / StaleCalculationError on out-of-order lifecycle calls.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from oceanre_kernel.db.base import TrackedBase, UUIDString


class PeriodStatus(str, Enum):
    """Lifecycle status of an accounting period.

    Contract: OPEN/REOPENED -> VALIDATING -> OPEN/REOPENED,
    OPEN/REOPENED -> CALCULATING -> OPEN/REOPENED,
    OPEN/REOPENED -> LOCKED.  LOCKED is left only through an explicit
    status override (normally to REOPENED).
    """

    OPEN = "OPEN"
    VALIDATING = "VALIDATING"
    CALCULATING = "CALCULATING"
    LOCKED = "LOCKED"
    REOPENED = "REOPENED"


# Statuses from which validate / calculate / lock may start
ACTIVE_STATUSES = frozenset({PeriodStatus.OPEN, PeriodStatus.REOPENED})

# Statuses held only while an operation runs
TRANSIENT_STATUSES = frozenset({PeriodStatus.VALIDATING, PeriodStatus.CALCULATING})


class FiscalPeriod(TrackedBase):
    """
    Accounting period.

    Contract:
        Journal entries reference a period and must carry a posting_date
        inside [start_date, end_date].  Once LOCKED, none of the period's
        entries or lines may change until the period is reopened.

    Non-goals:
        - This model does NOT enforce non-overlapping date ranges or status
          transition rules; PeriodLifecycleService does.
    """

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("name", name="uq_period_name"),
        Index("idx_period_dates", "start_date", "end_date"),
        Index("idx_period_status", "status"),
    )

    # Human-readable unique name (e.g., "January 2024")
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Period boundaries (inclusive)
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[PeriodStatus] = mapped_column(
        String(20),
        default=PeriodStatus.OPEN.value,
        nullable=False,
    )

    # Mutation counter for the period's journal content
    revision: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    # Revision at which the last clean validation ran
    validated_revision: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    # Revision at which the last successful calculation ran
    calculated_revision: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    last_validated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    last_calculated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    locked_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    reopened_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    reopened_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.name}: {PeriodStatus(self.status).value}>"

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED

    @property
    def is_active(self) -> bool:
        """Check if the period accepts lifecycle operations and postings."""
        return PeriodStatus(self.status) in ACTIVE_STATUSES

    @property
    def is_transient(self) -> bool:
        return PeriodStatus(self.status) in TRANSIENT_STATUSES

    @property
    def has_clean_validation(self) -> bool:
        """Last clean validation ran at the current revision."""
        return self.validated_revision is not None and self.validated_revision == self.revision

    @property
    def has_current_calculation(self) -> bool:
        """Last calculation ran at the current revision."""
        return self.calculated_revision is not None and self.calculated_revision == self.revision

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date

    def mark_dirty(self) -> None:
        """Record a mutation; any earlier validation or calculation is now stale."""
        self.revision = (self.revision or 0) + 1
