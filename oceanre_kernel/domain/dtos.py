"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the service boundary:
    entity snapshots (AccountInfo, PeriodInfo, JournalEntryInfo,
    JournalLineInfo), write inputs (LineInput), and lifecycle results
    (Violation, ValidationReport, AccountBalanceRow, BalanceReport).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters, invoked only from
    the service and selector layers.

Invariants enforced:
    - Services return DTOs, never ORM entities.
    - Monetary fields are Decimal, never float.
    - BalanceReport carries no timestamps, so two calculations over the same
      entries compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from oceanre_kernel.models.account import Account as AccountModel
    from oceanre_kernel.models.fiscal_period import FiscalPeriod as FiscalPeriodModel
    from oceanre_kernel.models.journal import (
        JournalEntry as JournalEntryModel,
        JournalLine as JournalLineModel,
    )


def _enum_value(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class AccountInfo:
    """Immutable snapshot of a chart-of-accounts entry."""

    id: UUID
    code: str
    name: str
    account_type: str
    normal_balance: str
    is_postable: bool
    created_by_id: UUID | None = None
    updated_by_id: UUID | None = None

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            account_type=_enum_value(model.account_type),
            normal_balance=_enum_value(model.normal_balance),
            is_postable=model.is_postable,
            created_by_id=model.created_by_id,
            updated_by_id=model.updated_by_id,
        )


@dataclass(frozen=True)
class PeriodInfo:
    """
    Immutable snapshot of an accounting period.

    Used by domain logic to check period status and range without ORM access.
    """

    id: UUID
    name: str
    start_date: date
    end_date: date
    status: str
    revision: int = 0
    validated_revision: int | None = None
    calculated_revision: int | None = None
    last_validated_at: datetime | None = None
    last_calculated_at: datetime | None = None
    locked_at: datetime | None = None
    locked_by_id: UUID | None = None
    reopened_at: datetime | None = None
    reopened_by_id: UUID | None = None

    @property
    def is_validation_current(self) -> bool:
        return self.validated_revision is not None and self.validated_revision == self.revision

    @property
    def is_calculation_current(self) -> bool:
        return self.calculated_revision is not None and self.calculated_revision == self.revision

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date

    @classmethod
    def from_model(cls, model: FiscalPeriodModel) -> PeriodInfo:
        return cls(
            id=model.id,
            name=model.name,
            start_date=model.start_date,
            end_date=model.end_date,
            status=_enum_value(model.status),
            revision=model.revision or 0,
            validated_revision=model.validated_revision,
            calculated_revision=model.calculated_revision,
            last_validated_at=model.last_validated_at,
            last_calculated_at=model.last_calculated_at,
            locked_at=model.locked_at,
            locked_by_id=model.locked_by_id,
            reopened_at=model.reopened_at,
            reopened_by_id=model.reopened_by_id,
        )


@dataclass(frozen=True)
class LineInput:
    """
    Requested journal line, before validation.

    Amounts stay as given (Decimal, int or str) until JournalStore
    normalizes them; floats are rejected there.
    """

    account_id: UUID
    debit: Any = Decimal("0")
    credit: Any = Decimal("0")
    memo: str | None = None


@dataclass(frozen=True)
class JournalLineInfo:
    """Immutable snapshot of a journal line with its account's posting flag."""

    id: UUID
    entry_id: UUID
    line_number: int
    account_id: UUID
    account_code: str
    account_is_postable: bool
    debit: Decimal
    credit: Decimal
    memo: str | None = None

    @classmethod
    def from_model(cls, model: JournalLineModel) -> JournalLineInfo:
        return cls(
            id=model.id,
            entry_id=model.entry_id,
            line_number=model.line_number,
            account_id=model.account_id,
            account_code=model.account.code,
            account_is_postable=model.account.is_postable,
            debit=model.debit,
            credit=model.credit,
            memo=model.memo,
        )


@dataclass(frozen=True)
class JournalEntryInfo:
    """Immutable snapshot of a journal entry and its lines."""

    id: UUID
    entry_number: str
    posting_date: date
    period_id: UUID
    description: str | None = None
    source_reference: str | None = None
    lines: tuple[JournalLineInfo, ...] = field(default_factory=tuple)
    created_by_id: UUID | None = None

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))

    @classmethod
    def from_model(cls, model: JournalEntryModel) -> JournalEntryInfo:
        return cls(
            id=model.id,
            entry_number=model.entry_number,
            posting_date=model.posting_date,
            period_id=model.period_id,
            description=model.description,
            source_reference=model.source_reference,
            lines=tuple(JournalLineInfo.from_model(line) for line in model.lines),
            created_by_id=model.created_by_id,
        )


class ViolationCode(str, Enum):
    """Kinds of consistency violation found by period validation."""

    UNBALANCED_ENTRY = "UNBALANCED_ENTRY"
    NON_POSTABLE_ACCOUNT = "NON_POSTABLE_ACCOUNT"
    POSTING_DATE_OUT_OF_RANGE = "POSTING_DATE_OUT_OF_RANGE"


@dataclass(frozen=True)
class Violation:
    """
    A single consistency violation.

    Does NOT raise -- it IS the violation representation.
    """

    code: ViolationCode
    entry_id: UUID
    entry_number: str
    message: str
    line_id: UUID | None = None
    details: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "entry_id": str(self.entry_id),
            "entry_number": self.entry_number,
            "line_id": str(self.line_id) if self.line_id else None,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class ValidationReport:
    """
    Result of a validation pass over one period.

    ``is_clean`` is True only when there are no violations.
    """

    period_id: UUID
    revision: int
    entries_checked: int
    lines_checked: int
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return self.is_clean

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_id": str(self.period_id),
            "revision": self.revision,
            "entries_checked": self.entries_checked,
            "lines_checked": self.lines_checked,
            "is_clean": self.is_clean,
            "violations": [v.to_dict() for v in self.violations],
        }


@dataclass(frozen=True)
class AccountBalanceRow:
    """
    Balance of one account within one period.

    closing_balance == opening_balance + debit_total - credit_total
    (debit-positive sign convention).
    """

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    opening_balance: Decimal
    debit_total: Decimal
    credit_total: Decimal

    @property
    def net_change(self) -> Decimal:
        return self.debit_total - self.credit_total

    @property
    def closing_balance(self) -> Decimal:
        return self.opening_balance + self.net_change

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": str(self.account_id),
            "account_code": self.account_code,
            "account_name": self.account_name,
            "account_type": self.account_type,
            "opening_balance": str(self.opening_balance),
            "debit_total": str(self.debit_total),
            "credit_total": str(self.credit_total),
            "net_change": str(self.net_change),
            "closing_balance": str(self.closing_balance),
        }


@dataclass(frozen=True)
class BalanceReport:
    """
    Per-account balances of a period, ordered by account code.

    Contains no timestamps: equal inputs give equal reports.
    """

    period_id: UUID
    revision: int
    rows: tuple[AccountBalanceRow, ...] = field(default_factory=tuple)
    prior_period_id: UUID | None = None

    @property
    def total_debits(self) -> Decimal:
        return sum((row.debit_total for row in self.rows), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((row.credit_total for row in self.rows), Decimal("0"))

    def row_for(self, account_code: str) -> AccountBalanceRow | None:
        for row in self.rows:
            if row.account_code == account_code:
                return row
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_id": str(self.period_id),
            "revision": self.revision,
            "prior_period_id": str(self.prior_period_id) if self.prior_period_id else None,
            "total_debits": str(self.total_debits),
            "total_credits": str(self.total_credits),
            "accounts": [row.to_dict() for row in self.rows],
        }
