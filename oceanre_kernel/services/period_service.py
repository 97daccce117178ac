"""
PeriodLifecycleService -- accounting period CRUD and the close lifecycle.

Responsibility:
    Manages periods and drives them through validate -> calculate -> lock,
    with an administrative status override for reopening and repair.

Architecture position:
    Kernel > Services -- imperative shell.
    Reads entries and balances through LedgerSelector, runs the pure
    checks in domain/validation.py and domain/balances.py, and persists
    the results.

Invariants enforced:
    - Periods never overlap; start_date < end_date; names are unique.
    - validate/calculate move the status OPEN|REOPENED -> transient ->
      source status using a conditional UPDATE, so two transactions can
      never both claim the same period.
    - calculate requires a clean validation at the current revision.
    - lock requires validation and calculation both at the current revision.
    - PeriodBalance rows are replaced inside a savepoint; a failed
      calculation leaves the previous rows and the source status in place.
    - change_status never sets VALIDATING or CALCULATING and clears both
      validation and calculation marks.
    - Flush-only: never commits or rolls back the caller's transaction.

Failure modes:
    - InvalidPeriodRangeError / PeriodOverlapError / DuplicatePeriodNameError.
    - StaleValidationError / StaleCalculationError on out-of-order calls.
    - PeriodBusyError when another operation holds the period.
    - InvalidPeriodTransitionError when the period is LOCKED.
    - ActivePeriodConflictError under enforce_single_open_period.

Audit relevance:
    Every transition is logged with period_id, status and revision.
    Validation violations are logged at WARNING level.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from oceanre_kernel.db.types import DEFAULT_AMOUNT_PLACES, fits_storage
from oceanre_kernel.domain.balances import compute_balances
from oceanre_kernel.domain.clock import Clock, SystemClock
from oceanre_kernel.domain.dtos import BalanceReport, PeriodInfo, ValidationReport
from oceanre_kernel.domain.validation import scan_period
from oceanre_kernel.exceptions import (
    ActivePeriodConflictError,
    DuplicatePeriodNameError,
    InvalidPeriodRangeError,
    InvalidPeriodTransitionError,
    InvalidStatusOverrideError,
    PeriodBusyError,
    PeriodHasEntriesError,
    PeriodLockedError,
    PeriodNotFoundError,
    PeriodOverlapError,
    StaleCalculationError,
    StaleValidationError,
    ValidationError,
)
from oceanre_kernel.logging_config import get_logger
from oceanre_kernel.models.fiscal_period import (
    ACTIVE_STATUSES,
    TRANSIENT_STATUSES,
    FiscalPeriod,
    PeriodStatus,
)
from oceanre_kernel.models.journal import JournalEntry
from oceanre_kernel.models.period_balance import PeriodBalance
from oceanre_kernel.selectors.ledger_selector import LedgerSelector
from oceanre_kernel.services.base import BaseService
from oceanre_kernel.services.period_guard import PeriodGuard, default_guard

logger = get_logger("services.period")


def _parse_status(value: PeriodStatus | str) -> PeriodStatus:
    try:
        return PeriodStatus(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown period status: {value!r}") from None


class PeriodLifecycleService(BaseService[FiscalPeriod]):
    """
    Service for accounting periods.

    Contract:
        Public methods return frozen DTOs (``PeriodInfo``,
        ``ValidationReport``, ``BalanceReport``).  Lifecycle methods hold
        the period's guard and a row lock for their whole duration.

    Non-goals:
        - Does NOT post or edit journal entries (JournalStore does).
        - Does NOT decide who may call it (oceanre_services does).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        amount_places: int = DEFAULT_AMOUNT_PLACES,
        enforce_single_open_period: bool = False,
        guard: PeriodGuard | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._places = amount_places
        self._single_open = enforce_single_open_period
        self._guard = guard or default_guard
        self._ledger = LedgerSelector(session)

    # ------------------------------------------------------------------
    # Internal lookups
    # ------------------------------------------------------------------

    def _get_orm(self, period_id: UUID) -> FiscalPeriod:
        period = self.session.get(FiscalPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period

    def _get_for_update(self, period_id: UUID) -> FiscalPeriod:
        """Load with a row lock, refreshing any stale identity-map copy."""
        period = self.session.execute(
            select(FiscalPeriod)
            .where(FiscalPeriod.id == period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period

    def _check_name(self, name: str, exclude_id: UUID | None = None) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Period name is required")
        stmt = select(FiscalPeriod.id).where(FiscalPeriod.name == name)
        if exclude_id is not None:
            stmt = stmt.where(FiscalPeriod.id != exclude_id)
        if self.session.execute(stmt).first() is not None:
            raise DuplicatePeriodNameError(name)
        return name

    def _validate_no_overlap(
        self,
        name: str,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> None:
        """
        Two inclusive ranges overlap if start1 <= end2 AND start2 <= end1.

        Raises:
            PeriodOverlapError: If any existing period overlaps.
        """
        if start_date >= end_date:
            raise InvalidPeriodRangeError(str(start_date), str(end_date))

        stmt = (
            select(FiscalPeriod)
            .where(
                FiscalPeriod.start_date <= end_date,
                FiscalPeriod.end_date >= start_date,
            )
            .order_by(FiscalPeriod.start_date)
        )
        if exclude_id is not None:
            stmt = stmt.where(FiscalPeriod.id != exclude_id)
        overlapping = self.session.execute(stmt).scalars().first()

        if overlapping is not None:
            raise PeriodOverlapError(
                period_name=name,
                existing_period_name=overlapping.name,
                overlap_start=str(max(start_date, overlapping.start_date)),
                overlap_end=str(min(end_date, overlapping.end_date)),
            )

    def _check_single_active(self, period_name: str, exclude_id: UUID | None = None) -> None:
        if not self._single_open:
            return
        stmt = select(FiscalPeriod).where(
            FiscalPeriod.status.in_([s.value for s in ACTIVE_STATUSES])
        )
        if exclude_id is not None:
            stmt = stmt.where(FiscalPeriod.id != exclude_id)
        active = self.session.execute(stmt).scalars().first()
        if active is not None:
            raise ActivePeriodConflictError(period_name, active.name)

    def _ensure_not_transient(self, period: FiscalPeriod) -> None:
        if period.is_transient:
            raise PeriodBusyError(period.id, PeriodStatus(period.status).value)

    def _ensure_startable(self, period: FiscalPeriod, operation: str) -> PeriodStatus:
        """Check a lifecycle operation may start; return the source status."""
        status = PeriodStatus(period.status)
        if status in TRANSIENT_STATUSES:
            raise PeriodBusyError(period.id, status.value)
        if status not in ACTIVE_STATUSES:
            raise InvalidPeriodTransitionError(period.name, status.value, operation)
        return status

    def _claim(self, period: FiscalPeriod, source: PeriodStatus, target: PeriodStatus) -> None:
        """
        Move ``period`` from ``source`` to ``target`` with a conditional UPDATE.

        Raises:
            PeriodBusyError: If the row no longer has ``source`` status.
        """
        result = self.session.execute(
            update(FiscalPeriod)
            .where(FiscalPeriod.id == period.id, FiscalPeriod.status == source.value)
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "period_transition_lost",
                extra={
                    "period_id": str(period.id),
                    "from_status": source.value,
                    "to_status": target.value,
                },
            )
            raise PeriodBusyError(period.id)
        set_committed_value(period, "status", target.value)

    def _check_storable(self, report: BalanceReport) -> None:
        oversized = [
            row.account_code
            for row in report.rows
            if not all(
                fits_storage(amount)
                for amount in (
                    row.opening_balance,
                    row.debit_total,
                    row.credit_total,
                    row.closing_balance,
                )
            )
        ]
        if oversized:
            raise ValidationError(
                f"Balances too large to store for account(s): {', '.join(oversized)}"
            )

    def _restore(self, period: FiscalPeriod, source: PeriodStatus) -> None:
        period.status = source.value
        self.session.flush()

    def _balance_rows(
        self, period: FiscalPeriod, report: BalanceReport, actor_id: UUID
    ) -> list[PeriodBalance]:
        return [
            PeriodBalance(
                period_id=period.id,
                account_id=row.account_id,
                opening_balance=row.opening_balance,
                debit_total=row.debit_total,
                credit_total=row.credit_total,
                closing_balance=row.closing_balance,
                revision=report.revision,
                created_by_id=actor_id,
            )
            for row in report.rows
        ]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_period(self, period_id: UUID) -> PeriodInfo:
        return PeriodInfo.from_model(self._get_orm(period_id))

    def list_periods(self) -> list[PeriodInfo]:
        result = self.session.execute(select(FiscalPeriod).order_by(FiscalPeriod.start_date))
        return [PeriodInfo.from_model(p) for p in result.scalars().all()]

    def get_period_for_date(self, check_date: date) -> PeriodInfo | None:
        period = self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.start_date <= check_date,
                FiscalPeriod.end_date >= check_date,
            )
        ).scalars().first()
        return PeriodInfo.from_model(period) if period else None

    def get_balance_report(self, period_id: UUID) -> BalanceReport:
        return self._ledger.get_balance_report(period_id, places=self._places)

    # ------------------------------------------------------------------
    # Period CRUD
    # ------------------------------------------------------------------

    def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
    ) -> PeriodInfo:
        """
        Create a new OPEN period.

        Args:
            name: Unique human-readable name (e.g., "January 2024").
            start_date: First day of the period (inclusive).
            end_date: Last day of the period (inclusive).
            actor_id: Who is creating the period.

        Raises:
            InvalidPeriodRangeError: If start_date >= end_date.
            DuplicatePeriodNameError: If the name is taken.
            PeriodOverlapError: If the range overlaps an existing period.
            ActivePeriodConflictError: If single-open enforcement is on and
                another period is active.
        """
        name = self._check_name(name)
        self._validate_no_overlap(name, start_date, end_date)
        self._check_single_active(name)

        period = FiscalPeriod(
            name=name,
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.OPEN.value,
            revision=0,
            created_by_id=actor_id,
        )
        self.session.add(period)
        self.session.flush()

        logger.info(
            "period_created",
            extra={
                "period_id": str(period.id),
                "period_name": name,
                "start_date": str(start_date),
                "end_date": str(end_date),
            },
        )

        return PeriodInfo.from_model(period)

    def update_period(
        self,
        period_id: UUID,
        actor_id: UUID,
        *,
        name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> PeriodInfo:
        """
        Rename a period or move its boundaries.

        A boundary change bumps the revision: entries may now fall outside
        the range, which the next validation reports.

        Raises:
            PeriodLockedError: If the period is LOCKED.
            PeriodBusyError: If a lifecycle operation is in flight.
        """
        with self._guard.hold(period_id, "update_period"):
            period = self._get_for_update(period_id)
            if period.is_locked:
                raise PeriodLockedError(period.name, "update period")
            self._ensure_not_transient(period)

            if name is not None and name.strip() != period.name:
                period.name = self._check_name(name, exclude_id=period.id)

            new_start = start_date or period.start_date
            new_end = end_date or period.end_date
            if (new_start, new_end) != (period.start_date, period.end_date):
                self._validate_no_overlap(period.name, new_start, new_end, exclude_id=period.id)
                period.start_date = new_start
                period.end_date = new_end
                period.mark_dirty()

            period.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "period_updated",
                extra={
                    "period_id": str(period.id),
                    "period_name": period.name,
                    "revision": period.revision,
                },
            )

            return PeriodInfo.from_model(period)

    def delete_period(self, period_id: UUID, actor_id: UUID | None = None) -> None:
        """
        Delete an empty, unlocked period together with its calculated balances.

        Raises:
            PeriodLockedError: If the period is LOCKED.
            PeriodHasEntriesError: If journal entries still reference it.
        """
        with self._guard.hold(period_id, "delete_period"):
            period = self._get_for_update(period_id)
            if period.is_locked:
                raise PeriodLockedError(period.name, "delete period")
            self._ensure_not_transient(period)

            entry_count = self.session.execute(
                select(func.count(JournalEntry.id)).where(JournalEntry.period_id == period.id)
            ).scalar()
            if entry_count:
                raise PeriodHasEntriesError(period.name, entry_count)

            name = period.name
            self.session.execute(delete(PeriodBalance).where(PeriodBalance.period_id == period.id))
            self.session.delete(period)
            self.session.flush()

            logger.info(
                "period_deleted",
                extra={
                    "period_id": str(period_id),
                    "period_name": name,
                    "deleted_by": str(actor_id) if actor_id else None,
                },
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def validate(self, period_id: UUID, actor_id: UUID) -> ValidationReport:
        """
        Scan every entry of the period for consistency violations.

        Violations are returned in the report, not raised.  A clean report
        marks the current revision as validated; a report with violations
        clears the mark.

        Raises:
            PeriodBusyError: If another operation holds the period.
            InvalidPeriodTransitionError: If the period is LOCKED.
        """
        with self._guard.hold(period_id, "validate"):
            period = self._get_for_update(period_id)
            source = self._ensure_startable(period, "validate")
            self._claim(period, source, PeriodStatus.VALIDATING)

            try:
                report = scan_period(
                    PeriodInfo.from_model(period),
                    self._ledger.entries_for_period(period.id),
                    self._places,
                )
            except Exception:
                self._restore(period, source)
                logger.exception("period_validation_failed", extra={"period_id": str(period.id)})
                raise

            period.status = source.value
            period.last_validated_at = self._clock.now()
            period.validated_revision = period.revision if report.is_clean else None
            period.updated_by_id = actor_id
            self.session.flush()

            if report.is_clean:
                logger.info(
                    "period_validated",
                    extra={
                        "period_id": str(period.id),
                        "revision": period.revision,
                        "entries_checked": report.entries_checked,
                    },
                )
            else:
                logger.warning(
                    "validation_violations_found",
                    extra={
                        "period_id": str(period.id),
                        "revision": period.revision,
                        "violation_count": len(report.violations),
                        "violation_codes": sorted({v.code.value for v in report.violations}),
                    },
                )

            return report

    def calculate(self, period_id: UUID, actor_id: UUID) -> BalanceReport:
        """
        Compute and persist per-account balances for the period.

        Opening balances come from the immediately preceding period's
        persisted closing balances.  Running it again over unchanged entries
        produces an equal report.

        Raises:
            StaleValidationError: No clean validation at the current revision.
            ValidationError: A balance is too large for the amount columns.
            PeriodBusyError: If another operation holds the period.
            InvalidPeriodTransitionError: If the period is LOCKED.
        """
        with self._guard.hold(period_id, "calculate"):
            period = self._get_for_update(period_id)
            source = self._ensure_startable(period, "calculate")
            if not period.has_clean_validation:
                raise StaleValidationError(period.name, period.revision, period.validated_revision)
            self._claim(period, source, PeriodStatus.CALCULATING)

            try:
                entries = self._ledger.entries_for_period(period.id)
                prior_id, opening = self._ledger.opening_balances(period.id)
                account_ids = {line.account_id for e in entries for line in e.lines}
                accounts = self._ledger.accounts_by_id(account_ids | set(opening))

                report = compute_balances(
                    period_id=period.id,
                    revision=period.revision,
                    entries=entries,
                    accounts=accounts,
                    opening_balances=opening,
                    places=self._places,
                    prior_period_id=prior_id,
                )
                self._check_storable(report)

                with self.session.begin_nested():
                    self.session.execute(
                        delete(PeriodBalance).where(PeriodBalance.period_id == period.id)
                    )
                    self.session.add_all(self._balance_rows(period, report, actor_id))
                    self.session.flush()
            except Exception:
                self._restore(period, source)
                logger.exception(
                    "period_calculation_failed",
                    extra={"period_id": str(period.id), "revision": period.revision},
                )
                raise

            period.status = source.value
            period.calculated_revision = period.revision
            period.last_calculated_at = self._clock.now()
            period.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "period_calculated",
                extra={
                    "period_id": str(period.id),
                    "revision": period.revision,
                    "account_count": len(report.rows),
                    "prior_period_id": str(prior_id) if prior_id else None,
                },
            )

            return report

    def lock(self, period_id: UUID, actor_id: UUID) -> PeriodInfo:
        """
        Lock the period against further journal mutations.

        Raises:
            StaleCalculationError: Validation and calculation are not both
                current.
            PeriodBusyError: If another operation holds the period.
            InvalidPeriodTransitionError: If the period is already LOCKED.
        """
        with self._guard.hold(period_id, "lock"):
            period = self._get_for_update(period_id)
            source = self._ensure_startable(period, "lock")
            if not (period.has_clean_validation and period.has_current_calculation):
                raise StaleCalculationError(
                    period.name, period.revision, period.calculated_revision
                )
            self._claim(period, source, PeriodStatus.LOCKED)

            period.locked_at = self._clock.now()
            period.locked_by_id = actor_id
            period.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "period_locked",
                extra={
                    "period_id": str(period.id),
                    "period_name": period.name,
                    "revision": period.revision,
                    "locked_by": str(actor_id),
                },
            )

            return PeriodInfo.from_model(period)

    def change_status(
        self,
        period_id: UUID,
        new_status: PeriodStatus | str,
        actor_id: UUID,
    ) -> PeriodInfo:
        """
        Administrative status override.

        Any status except the transient ones may be set, including from a
        period left VALIDATING or CALCULATING by a crashed process.  The
        validation and calculation marks are cleared, so a LOCKED period
        reached this way must be revalidated after its next reopen.

        Raises:
            InvalidStatusOverrideError: new_status is VALIDATING or CALCULATING.
            PeriodBusyError: If an operation currently holds the period.
            ActivePeriodConflictError: Single-open enforcement rejects the
                activation.
        """
        target = _parse_status(new_status)
        if target in TRANSIENT_STATUSES:
            raise InvalidStatusOverrideError(period_id, target.value)

        with self._guard.hold(period_id, "change_status"):
            period = self._get_for_update(period_id)
            previous = PeriodStatus(period.status)

            if target in ACTIVE_STATUSES and previous not in ACTIVE_STATUSES:
                self._check_single_active(period.name, exclude_id=period.id)

            now = self._clock.now()
            period.status = target.value
            period.validated_revision = None
            period.calculated_revision = None
            if target == PeriodStatus.REOPENED:
                period.reopened_at = now
                period.reopened_by_id = actor_id
            elif target == PeriodStatus.LOCKED:
                period.locked_at = now
                period.locked_by_id = actor_id
            period.updated_by_id = actor_id
            self.session.flush()

            logger.warning(
                "period_status_overridden",
                extra={
                    "period_id": str(period.id),
                    "from_status": previous.value,
                    "to_status": target.value,
                    "actor_id": str(actor_id),
                },
            )

            return PeriodInfo.from_model(period)
