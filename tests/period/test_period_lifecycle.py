"""
Period lifecycle: validate -> calculate -> lock, and the status override.

Verifies:
- Validation returns violations as data and marks only clean revisions
- Calculation requires a clean validation at the current revision
- Lock requires validation and calculation at the current revision
- Any journal mutation invalidates both marks
- A failed calculation leaves the previous balances and status in place
- LOCKED periods reject every mutation until reopened
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from oceanre_kernel.domain.dtos import ViolationCode
from oceanre_kernel.exceptions import (
    ConflictError,
    InvalidPeriodTransitionError,
    PeriodLockedError,
    StaleCalculationError,
    StaleValidationError,
)
from oceanre_kernel.services.period_service import PeriodLifecycleService


@pytest.fixture
def cash(standard_accounts):
    return standard_accounts["cash"]


@pytest.fixture
def revenue(standard_accounts):
    return standard_accounts["revenue"]


@pytest.fixture
def balanced_entry(post_entry, january_period, cash, revenue):
    return post_entry(january_period, "E1", date(2024, 1, 10), [(cash, "100", 0), (revenue, 0, "100")])


def _close(period_service, period_id, actor_id):
    period_service.validate(period_id, actor_id)
    period_service.calculate(period_id, actor_id)
    return period_service.lock(period_id, actor_id)


class TestCloseScenario:
    """Entry goes unbalanced after a clean validation."""

    def test_clean_then_unbalanced(
        self, balanced_entry, january_period, period_service, journal_store, cash, test_actor_id
    ):
        first = period_service.validate(january_period.id, test_actor_id)
        assert first.is_clean
        assert first.entries_checked == 1

        journal_store.add_line(balanced_entry.id, cash.id, test_actor_id, debit=Decimal("50"))
        second = period_service.validate(january_period.id, test_actor_id)

        assert len(second.violations) == 1
        violation = second.violations[0]
        assert violation.code == ViolationCode.UNBALANCED_ENTRY
        assert violation.entry_id == balanced_entry.id
        assert violation.details["total_debits"] == "150.00"
        assert violation.details["total_credits"] == "100.00"

        with pytest.raises(StaleValidationError):
            period_service.calculate(january_period.id, test_actor_id)
        with pytest.raises(StaleCalculationError):
            period_service.lock(january_period.id, test_actor_id)

        period = period_service.get_period(january_period.id)
        assert period.status == "OPEN"
        assert period.validated_revision is None

    def test_full_close(self, balanced_entry, january_period, period_service, test_actor_id):
        locked = _close(period_service, january_period.id, test_actor_id)

        assert locked.status == "LOCKED"
        assert locked.locked_by_id == test_actor_id
        assert locked.locked_at is not None
        assert locked.is_validation_current
        assert locked.is_calculation_current


class TestValidate:
    def test_clean_validation_marks_revision(
        self, balanced_entry, january_period, period_service, test_actor_id
    ):
        report = period_service.validate(january_period.id, test_actor_id)
        period = period_service.get_period(january_period.id)

        assert report.revision == period.revision
        assert period.validated_revision == period.revision
        assert period.last_validated_at is not None
        assert period.status == "OPEN"

    def test_empty_period_validates_clean(self, january_period, period_service, test_actor_id):
        assert period_service.validate(january_period.id, test_actor_id).is_clean

    def test_logs_violations(
        self, post_entry, january_period, period_service, cash, test_actor_id, captured_logs
    ):
        post_entry(january_period, "E1", date(2024, 1, 10), [(cash, "10", 0)])

        period_service.validate(january_period.id, test_actor_id)

        warnings = [r for r in captured_logs() if r["message"] == "validation_violations_found"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["violation_count"] == 1
        assert warnings[0]["violation_codes"] == ["UNBALANCED_ENTRY"]

    def test_non_postable_account_detected(
        self, balanced_entry, january_period, period_service, account_registry, session, test_actor_id
    ):
        # Header flag flipped behind the registry's back
        from oceanre_kernel.models.account import Account

        account = session.get(Account, balanced_entry.lines[0].account_id)
        account.is_postable = False
        session.flush()

        report = period_service.validate(january_period.id, test_actor_id)

        assert [v.code for v in report.violations] == [ViolationCode.NON_POSTABLE_ACCOUNT]

    def test_boundary_shrink_reports_date_violation(
        self, balanced_entry, january_period, period_service, test_actor_id
    ):
        period_service.update_period(january_period.id, test_actor_id, end_date=date(2024, 1, 9))

        report = period_service.validate(january_period.id, test_actor_id)

        assert [v.code for v in report.violations] == [ViolationCode.POSTING_DATE_OUT_OF_RANGE]


class TestCalculate:
    def test_requires_validation(self, balanced_entry, january_period, period_service, test_actor_id):
        with pytest.raises(StaleValidationError) as exc_info:
            period_service.calculate(january_period.id, test_actor_id)

        assert exc_info.value.validated_revision is None

    def test_validation_stale_after_mutation(
        self, balanced_entry, january_period, period_service, journal_store, test_actor_id
    ):
        period_service.validate(january_period.id, test_actor_id)
        journal_store.update_entry(balanced_entry.id, test_actor_id, description="edited")

        with pytest.raises(StaleValidationError):
            period_service.calculate(january_period.id, test_actor_id)

    def test_persists_balances(self, balanced_entry, january_period, period_service, test_actor_id):
        period_service.validate(january_period.id, test_actor_id)

        report = period_service.calculate(january_period.id, test_actor_id)
        period = period_service.get_period(january_period.id)

        assert [r.account_code for r in report.rows] == ["1000", "4000"]
        assert report.row_for("1000").closing_balance == Decimal("100.00")
        assert report.row_for("4000").closing_balance == Decimal("-100.00")
        assert period.calculated_revision == period.revision
        assert period.last_calculated_at is not None
        assert period.status == "OPEN"
        assert period_service.get_balance_report(january_period.id) == report

    def test_idempotent(self, balanced_entry, january_period, period_service, test_actor_id):
        period_service.validate(january_period.id, test_actor_id)

        first = period_service.calculate(january_period.id, test_actor_id)
        second = period_service.calculate(january_period.id, test_actor_id)

        assert first == second
        assert len(period_service.get_balance_report(january_period.id).rows) == 2

    def test_recalculation_replaces_rows(
        self, balanced_entry, january_period, period_service, journal_store, cash, revenue, test_actor_id
    ):
        period_service.validate(january_period.id, test_actor_id)
        period_service.calculate(january_period.id, test_actor_id)

        journal_store.add_line(balanced_entry.id, cash.id, test_actor_id, debit="20")
        journal_store.add_line(balanced_entry.id, revenue.id, test_actor_id, credit="20")
        period_service.validate(january_period.id, test_actor_id)
        report = period_service.calculate(january_period.id, test_actor_id)

        assert report.row_for("1000").debit_total == Decimal("120.00")
        assert period_service.get_balance_report(january_period.id) == report

    def test_failure_keeps_previous_balances(
        self, balanced_entry, january_period, period_service, test_actor_id, monkeypatch, captured_logs
    ):
        period_service.validate(january_period.id, test_actor_id)
        previous = period_service.calculate(january_period.id, test_actor_id)
        calculated_revision = period_service.get_period(january_period.id).calculated_revision

        def boom(self, period, report, actor_id):
            raise RuntimeError("disk full")

        monkeypatch.setattr(PeriodLifecycleService, "_balance_rows", boom)

        with pytest.raises(RuntimeError, match="disk full"):
            period_service.calculate(january_period.id, test_actor_id)

        period = period_service.get_period(january_period.id)
        assert period.status == "OPEN"
        assert period.calculated_revision == calculated_revision
        assert period_service.get_balance_report(january_period.id) == previous
        assert any(r["message"] == "period_calculation_failed" for r in captured_logs())

    def test_failure_restores_reopened_status(
        self, balanced_entry, january_period, period_service, test_actor_id, monkeypatch
    ):
        period_service.change_status(january_period.id, "REOPENED", test_actor_id)
        period_service.validate(january_period.id, test_actor_id)

        def boom(self, period, report, actor_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(PeriodLifecycleService, "_balance_rows", boom)

        with pytest.raises(RuntimeError):
            period_service.calculate(january_period.id, test_actor_id)

        assert period_service.get_period(january_period.id).status == "REOPENED"

    def test_uncalculated_period_report_is_empty(self, january_period, period_service):
        report = period_service.get_balance_report(january_period.id)

        assert report.rows == ()
        assert report.revision == 0


class TestCarryForward:
    def test_opening_from_preceding_period(
        self,
        balanced_entry,
        january_period,
        february_period,
        period_service,
        post_entry,
        cash,
        revenue,
        test_actor_id,
    ):
        _close(period_service, january_period.id, test_actor_id)
        post_entry(february_period, "E2", date(2024, 2, 3), [(cash, "10", 0), (revenue, 0, "10")])

        period_service.validate(february_period.id, test_actor_id)
        report = period_service.calculate(february_period.id, test_actor_id)

        assert report.prior_period_id == january_period.id
        cash_row = report.row_for("1000")
        assert cash_row.opening_balance == Decimal("100.00")
        assert cash_row.closing_balance == Decimal("110.00")
        assert report.row_for("4000").closing_balance == Decimal("-110.00")

    def test_opening_only_account_carried(
        self, balanced_entry, january_period, february_period, period_service, test_actor_id
    ):
        _close(period_service, january_period.id, test_actor_id)
        period_service.validate(february_period.id, test_actor_id)

        report = period_service.calculate(february_period.id, test_actor_id)

        assert [r.account_code for r in report.rows] == ["1000", "4000"]
        assert report.total_debits == Decimal("0.00")

    def test_uncalculated_predecessor_contributes_nothing(
        self, balanced_entry, january_period, february_period, period_service, test_actor_id
    ):
        period_service.validate(february_period.id, test_actor_id)

        report = period_service.calculate(february_period.id, test_actor_id)

        assert report.prior_period_id == january_period.id
        assert report.rows == ()


class TestLock:
    def test_requires_calculation(self, balanced_entry, january_period, period_service, test_actor_id):
        period_service.validate(january_period.id, test_actor_id)

        with pytest.raises(StaleCalculationError):
            period_service.lock(january_period.id, test_actor_id)

    def test_calculation_stale_after_mutation(
        self, balanced_entry, january_period, period_service, journal_store, test_actor_id
    ):
        period_service.validate(january_period.id, test_actor_id)
        period_service.calculate(january_period.id, test_actor_id)
        journal_store.delete_line(balanced_entry.lines[1].id, test_actor_id)

        with pytest.raises(StaleCalculationError):
            period_service.lock(january_period.id, test_actor_id)

    def test_locked_period_rejects_lifecycle_operations(
        self, balanced_entry, january_period, period_service, test_actor_id
    ):
        _close(period_service, january_period.id, test_actor_id)

        for operation in (period_service.validate, period_service.calculate, period_service.lock):
            with pytest.raises(InvalidPeriodTransitionError):
                operation(january_period.id, test_actor_id)


class TestLockedPeriodMutations:
    @pytest.fixture
    def locked(self, balanced_entry, january_period, period_service, test_actor_id):
        _close(period_service, january_period.id, test_actor_id)
        return january_period

    def test_create_entry_rejected(self, locked, journal_store, test_actor_id):
        with pytest.raises(PeriodLockedError):
            journal_store.create_entry("E9", date(2024, 1, 12), locked.id, test_actor_id)

    def test_line_and_entry_changes_rejected(
        self, locked, balanced_entry, journal_store, cash, test_actor_id
    ):
        line_id = balanced_entry.lines[0].id
        attempts = [
            lambda: journal_store.add_line(balanced_entry.id, cash.id, test_actor_id, debit="1"),
            lambda: journal_store.update_line(line_id, test_actor_id, memo="x"),
            lambda: journal_store.delete_line(line_id, test_actor_id),
            lambda: journal_store.update_entry(balanced_entry.id, test_actor_id, description="x"),
            lambda: journal_store.delete_entry(balanced_entry.id, test_actor_id),
        ]

        for attempt in attempts:
            with pytest.raises(ConflictError):
                attempt()

    def test_period_changes_rejected(self, locked, period_service, test_actor_id):
        with pytest.raises(PeriodLockedError):
            period_service.update_period(locked.id, test_actor_id, name="Renamed")
        with pytest.raises(PeriodLockedError):
            period_service.delete_period(locked.id, test_actor_id)

    def test_move_into_locked_period_rejected(
        self, locked, february_period, post_entry, journal_store, cash, test_actor_id
    ):
        entry = post_entry(february_period, "E2", date(2024, 2, 3), [(cash, "1", 0)])

        with pytest.raises(PeriodLockedError):
            journal_store.update_entry(
                entry.id, test_actor_id, period_id=locked.id, posting_date=date(2024, 1, 15)
            )

    def test_rejection_logged(self, locked, journal_store, test_actor_id, captured_logs):
        with pytest.raises(PeriodLockedError):
            journal_store.create_entry("E9", date(2024, 1, 12), locked.id, test_actor_id)

        assert any(r["message"] == "locked_period_mutation_rejected" for r in captured_logs())

    def test_reopen_allows_mutations_and_requires_new_close(
        self, locked, period_service, post_entry, cash, revenue, test_actor_id
    ):
        reopened = period_service.change_status(locked.id, "REOPENED", test_actor_id)

        assert reopened.status == "REOPENED"
        assert reopened.reopened_by_id == test_actor_id
        assert reopened.validated_revision is None
        assert reopened.calculated_revision is None

        post_entry(locked, "E3", date(2024, 1, 20), [(cash, "5", 0), (revenue, 0, "5")])
        with pytest.raises(StaleValidationError):
            period_service.calculate(locked.id, test_actor_id)

        relocked = _close(period_service, locked.id, test_actor_id)
        assert relocked.status == "LOCKED"
