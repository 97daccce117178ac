"""
JournalStore -- journal entries and their debit/credit lines.

Responsibility:
    Creates, updates and deletes journal entries and lines scoped to an
    accounting period, rejecting writes the period's status does not allow,
    and marking the period dirty after every successful mutation.

Architecture position:
    Kernel > Services -- imperative shell.  Reads accounts directly from
    the ORM; PeriodLifecycleService consumes the entries this store writes.

Invariants enforced:
    - Lines target postable accounts only (NonPostableAccountError).
    - Line amounts: non-negative, exactly one side nonzero, at most
      ``amount_places`` decimals (InvalidLineAmountError).
    - posting_date lies inside the owning period (PostingDateOutOfRangeError).
    - No mutation while the period is LOCKED (PeriodLockedError) or while a
      lifecycle operation is in flight (PeriodBusyError).
    - Every mutation bumps FiscalPeriod.revision, invalidating any earlier
      validation or calculation.
    - Entry balance is NOT enforced here; validation reports it.

Failure modes:
    - ValidationError subclasses for malformed input.
    - ConflictError subclasses for period-status guards.
    - NotFoundError subclasses for missing period/entry/line/account.
"""

from contextlib import ExitStack
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from oceanre_kernel.db.types import DEFAULT_AMOUNT_PLACES
from oceanre_kernel.domain.dtos import JournalEntryInfo, JournalLineInfo, LineInput
from oceanre_kernel.domain.validation import normalize_line_amounts
from oceanre_kernel.exceptions import (
    AccountNotFoundError,
    DuplicateEntryNumberError,
    JournalEntryNotFoundError,
    JournalLineNotFoundError,
    NonPostableAccountError,
    PeriodBusyError,
    PeriodLockedError,
    PeriodNotFoundError,
    PostingDateOutOfRangeError,
    ValidationError,
)
from oceanre_kernel.logging_config import get_logger
from oceanre_kernel.models.account import Account
from oceanre_kernel.models.fiscal_period import FiscalPeriod, PeriodStatus
from oceanre_kernel.models.journal import JournalEntry, JournalLine
from oceanre_kernel.services.base import BaseService
from oceanre_kernel.services.period_guard import PeriodGuard, default_guard

logger = get_logger("services.journal")

_UNSET: Any = object()


class JournalStore(BaseService[JournalEntry]):
    """
    Service for journal entries and lines.

    Contract:
        Public methods return frozen ``JournalEntryInfo`` /
        ``JournalLineInfo`` DTOs and flush within the caller's transaction.
        Each mutation holds the owning period's guard for its duration.
    """

    def __init__(
        self,
        session: Session,
        amount_places: int = DEFAULT_AMOUNT_PLACES,
        guard: PeriodGuard | None = None,
    ):
        super().__init__(session)
        self._places = amount_places
        self._guard = guard or default_guard

    # ------------------------------------------------------------------
    # Internal lookups
    # ------------------------------------------------------------------

    def _period_for_write(self, period_id: UUID, action: str) -> FiscalPeriod:
        """Load the period with a row lock and check it accepts mutations."""
        period = self.session.execute(
            select(FiscalPeriod)
            .where(FiscalPeriod.id == period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(period_id)

        if period.is_locked:
            logger.warning(
                "locked_period_mutation_rejected",
                extra={"period_id": str(period_id), "action": action},
            )
            raise PeriodLockedError(period.name, action)

        if period.is_transient:
            raise PeriodBusyError(period.id, PeriodStatus(period.status).value)

        return period

    def _get_entry_orm(self, entry_id: UUID) -> JournalEntry:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(entry_id)
        return entry

    def _get_line_orm(self, line_id: UUID) -> JournalLine:
        line = self.session.get(JournalLine, line_id)
        if line is None:
            raise JournalLineNotFoundError(line_id)
        return line

    def _postable_account(self, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        if not account.is_postable:
            raise NonPostableAccountError(account.code)
        return account

    def _check_posting_date(self, posting_date: date, period: FiscalPeriod) -> None:
        if not period.contains_date(posting_date):
            raise PostingDateOutOfRangeError(
                posting_date=str(posting_date),
                period_name=period.name,
                start_date=str(period.start_date),
                end_date=str(period.end_date),
            )

    def _check_entry_number(self, entry_number: str, exclude_id: UUID | None = None) -> str:
        entry_number = (entry_number or "").strip()
        if not entry_number:
            raise ValidationError("Journal entry number is required")
        stmt = select(JournalEntry.id).where(JournalEntry.entry_number == entry_number)
        if exclude_id is not None:
            stmt = stmt.where(JournalEntry.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicateEntryNumberError(entry_number)
        return entry_number

    def _next_line_number(self, entry_id: UUID) -> int:
        current = self.session.execute(
            select(func.max(JournalLine.line_number)).where(JournalLine.entry_id == entry_id)
        ).scalar()
        return (current or 0) + 1

    def _build_line(self, entry: JournalEntry, line: LineInput, line_number: int, actor_id: UUID) -> JournalLine:
        debit, credit = normalize_line_amounts(line.debit, line.credit, self._places)
        account = self._postable_account(line.account_id)
        return JournalLine(
            entry=entry,
            account_id=account.id,
            debit=debit,
            credit=credit,
            memo=line.memo,
            line_number=line_number,
            created_by_id=actor_id,
        )

    def _entry_info(self, entry: JournalEntry) -> JournalEntryInfo:
        self.session.refresh(entry, attribute_names=["lines"])
        return JournalEntryInfo.from_model(entry)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo:
        return JournalEntryInfo.from_model(self._get_entry_orm(entry_id))

    def list_entries(self, period_id: UUID | None = None) -> list[JournalEntryInfo]:
        stmt = select(JournalEntry).order_by(JournalEntry.posting_date, JournalEntry.entry_number)
        if period_id is not None:
            stmt = stmt.where(JournalEntry.period_id == period_id)
        return [JournalEntryInfo.from_model(e) for e in self.session.execute(stmt).scalars().all()]

    def get_line(self, line_id: UUID) -> JournalLineInfo:
        return JournalLineInfo.from_model(self._get_line_orm(line_id))

    def get_lines_by_entry(self, entry_id: UUID) -> list[JournalLineInfo]:
        self._get_entry_orm(entry_id)
        result = self.session.execute(
            select(JournalLine)
            .where(JournalLine.entry_id == entry_id)
            .order_by(JournalLine.line_number)
        )
        return [JournalLineInfo.from_model(line) for line in result.scalars().all()]

    # ------------------------------------------------------------------
    # Entry writes
    # ------------------------------------------------------------------

    def create_entry(
        self,
        entry_number: str,
        posting_date: date,
        period_id: UUID,
        actor_id: UUID,
        lines: list[LineInput] | tuple[LineInput, ...] = (),
        description: str | None = None,
        source_reference: str | None = None,
    ) -> JournalEntryInfo:
        """
        Create a journal entry with its initial lines.

        Lines may be empty; they can be added later with ``add_line``.

        Raises:
            PeriodLockedError / PeriodBusyError: Period does not accept writes.
            PostingDateOutOfRangeError: posting_date outside the period.
            DuplicateEntryNumberError: entry_number already used.
            NonPostableAccountError / InvalidLineAmountError: bad line.
        """
        with self._guard.hold(period_id, "create_entry"):
            period = self._period_for_write(period_id, "create journal entry")
            self._check_posting_date(posting_date, period)
            entry_number = self._check_entry_number(entry_number)

            entry = JournalEntry(
                entry_number=entry_number,
                posting_date=posting_date,
                description=description,
                source_reference=source_reference,
                period_id=period.id,
                created_by_id=actor_id,
            )
            built = [
                self._build_line(entry, line, number, actor_id)
                for number, line in enumerate(lines, start=1)
            ]
            self.session.add(entry)
            self.session.add_all(built)
            period.mark_dirty()
            self.session.flush()

            logger.info(
                "journal_entry_created",
                extra={
                    "entry_number": entry_number,
                    "period_id": str(period.id),
                    "line_count": len(built),
                    "revision": period.revision,
                },
            )

            return self._entry_info(entry)

    def update_entry(
        self,
        entry_id: UUID,
        actor_id: UUID,
        *,
        entry_number: str | None = None,
        posting_date: date | None = None,
        period_id: UUID | None = None,
        description: Any = _UNSET,
        source_reference: Any = _UNSET,
    ) -> JournalEntryInfo:
        """
        Update an entry header.  Moving an entry to another period requires
        both periods to accept writes and marks both dirty.

        Raises:
            Same guards as ``create_entry``.
        """
        entry = self._get_entry_orm(entry_id)
        source_id = entry.period_id
        target_id = period_id or source_id

        with ExitStack() as stack:
            stack.enter_context(self._guard.hold(source_id, "update_entry"))
            if target_id != source_id:
                stack.enter_context(self._guard.hold(target_id, "update_entry"))

            source = self._period_for_write(source_id, "update journal entry")
            target = (
                self._period_for_write(target_id, "move journal entry into")
                if target_id != source_id
                else source
            )

            new_date = posting_date or entry.posting_date
            self._check_posting_date(new_date, target)

            if entry_number is not None and entry_number.strip() != entry.entry_number:
                entry.entry_number = self._check_entry_number(entry_number, exclude_id=entry.id)

            entry.posting_date = new_date
            entry.period_id = target.id
            if description is not _UNSET:
                entry.description = description
            if source_reference is not _UNSET:
                entry.source_reference = source_reference
            entry.updated_by_id = actor_id

            source.mark_dirty()
            if target is not source:
                target.mark_dirty()
            self.session.flush()

            logger.info(
                "journal_entry_updated",
                extra={"entry_number": entry.entry_number, "period_id": str(target.id)},
            )

            return self._entry_info(entry)

    def delete_entry(self, entry_id: UUID, actor_id: UUID) -> None:
        """Delete an entry and, through the ORM cascade, all its lines."""
        entry = self._get_entry_orm(entry_id)

        with self._guard.hold(entry.period_id, "delete_entry"):
            period = self._period_for_write(entry.period_id, "delete journal entry")
            entry_number = entry.entry_number

            self.session.delete(entry)
            period.mark_dirty()
            self.session.flush()

            logger.info(
                "journal_entry_deleted",
                extra={
                    "entry_number": entry_number,
                    "period_id": str(period.id),
                    "deleted_by": str(actor_id),
                },
            )

    # ------------------------------------------------------------------
    # Line writes
    # ------------------------------------------------------------------

    def add_line(
        self,
        entry_id: UUID,
        account_id: UUID,
        actor_id: UUID,
        debit: Any = 0,
        credit: Any = 0,
        memo: str | None = None,
    ) -> JournalLineInfo:
        """
        Append a line to an existing entry.

        Raises:
            PeriodLockedError / PeriodBusyError: Period is LOCKED, VALIDATING
                or CALCULATING.
            NonPostableAccountError / InvalidLineAmountError: bad line.
        """
        entry = self._get_entry_orm(entry_id)

        with self._guard.hold(entry.period_id, "add_line"):
            period = self._period_for_write(entry.period_id, "add journal line")
            line = self._build_line(
                entry,
                LineInput(account_id=account_id, debit=debit, credit=credit, memo=memo),
                self._next_line_number(entry.id),
                actor_id,
            )
            self.session.add(line)
            period.mark_dirty()
            self.session.flush()

            logger.info(
                "journal_line_added",
                extra={
                    "entry_number": entry.entry_number,
                    "line_number": line.line_number,
                    "debit": line.debit,
                    "credit": line.credit,
                    "revision": period.revision,
                },
            )

            return JournalLineInfo.from_model(line)

    def update_line(
        self,
        line_id: UUID,
        actor_id: UUID,
        *,
        account_id: UUID | None = None,
        debit: Any = None,
        credit: Any = None,
        memo: Any = _UNSET,
    ) -> JournalLineInfo:
        """
        Change a line's account, amounts or memo.  Unspecified amounts keep
        their current value; the result must still satisfy the line rules.
        """
        line = self._get_line_orm(line_id)
        entry = line.entry

        with self._guard.hold(entry.period_id, "update_line"):
            period = self._period_for_write(entry.period_id, "update journal line")

            new_debit, new_credit = normalize_line_amounts(
                line.debit if debit is None else debit,
                line.credit if credit is None else credit,
                self._places,
            )
            if account_id is not None and account_id != line.account_id:
                line.account_id = self._postable_account(account_id).id

            line.debit = new_debit
            line.credit = new_credit
            if memo is not _UNSET:
                line.memo = memo
            line.updated_by_id = actor_id

            period.mark_dirty()
            self.session.flush()
            self.session.refresh(line)

            logger.info(
                "journal_line_updated",
                extra={"entry_number": entry.entry_number, "line_number": line.line_number},
            )

            return JournalLineInfo.from_model(line)

    def delete_line(self, line_id: UUID, actor_id: UUID) -> None:
        line = self._get_line_orm(line_id)
        entry = line.entry

        with self._guard.hold(entry.period_id, "delete_line"):
            period = self._period_for_write(entry.period_id, "delete journal line")
            line_number = line.line_number

            entry.lines.remove(line)
            period.mark_dirty()
            self.session.flush()

            logger.info(
                "journal_line_deleted",
                extra={
                    "entry_number": entry.entry_number,
                    "line_number": line_number,
                    "deleted_by": str(actor_id),
                },
            )
