"""
Per-period mutual exclusion.

While one operation holds a period, every other lifecycle operation or
journal mutation on that period is rejected with PeriodBusyError rather
than queued.  Operations on different periods never block each other.

These tests run real threads against PeriodGuard and against
PeriodLifecycleService.validate; the lost conditional status UPDATE is
exercised against the service directly.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from threading import Barrier, Event
from uuid import uuid4

import pytest
from sqlalchemy import update

from oceanre_kernel.exceptions import PeriodBusyError, PeriodNotFoundError
from oceanre_kernel.models.fiscal_period import FiscalPeriod, PeriodStatus
from oceanre_kernel.services import period_service as period_service_module
from oceanre_kernel.services.period_guard import PeriodGuard


class TestPeriodGuardThreads:
    def test_only_one_holder_at_a_time(self):
        guard = PeriodGuard()
        period_id = uuid4()
        workers = 8
        barrier = Barrier(workers)
        release = Event()

        def attempt():
            barrier.wait()
            try:
                with guard.hold(period_id, "validate"):
                    release.wait(timeout=5)
                    return "held"
            except PeriodBusyError:
                return "busy"

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(attempt) for _ in range(workers)]
            # Rejected workers return at once; the holder waits for release
            deadline = time.monotonic() + 5
            while sum(f.done() for f in futures) < workers - 1 and time.monotonic() < deadline:
                time.sleep(0.01)
            release.set()
            outcomes = [f.result(timeout=5) for f in futures]

        assert outcomes.count("held") == 1
        assert outcomes.count("busy") == workers - 1
        assert not guard.is_held(period_id)

    def test_different_periods_do_not_block(self):
        guard = PeriodGuard()
        first, second = uuid4(), uuid4()

        with guard.hold(first, "calculate"):
            with guard.hold(second, "calculate"):
                assert guard.is_held(first)
                assert guard.is_held(second)

    def test_not_reentrant(self):
        guard = PeriodGuard()
        period_id = uuid4()

        with guard.hold(period_id, "lock"):
            with pytest.raises(PeriodBusyError) as exc_info:
                with guard.hold(period_id, "validate"):
                    pass

        assert exc_info.value.period_id == period_id

    def test_released_after_exception(self):
        guard = PeriodGuard()
        period_id = uuid4()

        with pytest.raises(RuntimeError):
            with guard.hold(period_id, "calculate"):
                raise RuntimeError("failed")

        assert not guard.is_held(period_id)
        with guard.hold(period_id, "calculate"):
            pass

    def test_entries_dropped_after_release(self):
        guard = PeriodGuard()
        period_id = uuid4()

        with guard.hold(period_id, "validate"):
            assert guard.tracked_count() == 1
            with pytest.raises(PeriodBusyError):
                with guard.hold(period_id, "calculate"):
                    pass
            assert guard.is_held(period_id)

        assert guard.tracked_count() == 0
        assert not guard.is_held(uuid4())
        assert guard.tracked_count() == 0

    def test_rejection_logged(self, captured_logs):
        guard = PeriodGuard()
        period_id = uuid4()

        with guard.hold(period_id, "calculate"):
            with pytest.raises(PeriodBusyError):
                with guard.hold(period_id, "validate"):
                    pass

        records = [r for r in captured_logs() if r["message"] == "period_busy_rejected"]
        assert records[0]["operation"] == "validate"
        assert records[0]["period_id"] == str(period_id)


class TestServicesRespectGuard:
    """A held period rejects the second operation."""

    @pytest.fixture
    def entry(self, post_entry, standard_accounts, january_period):
        return post_entry(
            january_period,
            "E1",
            date(2024, 1, 10),
            [(standard_accounts["cash"], "100", 0), (standard_accounts["revenue"], 0, "100")],
        )

    def test_lifecycle_rejected_while_held(
        self, entry, january_period, period_service, period_guard, test_actor_id
    ):
        period_service.validate(january_period.id, test_actor_id)

        with period_guard.hold(january_period.id, "calculate"):
            with pytest.raises(PeriodBusyError):
                period_service.validate(january_period.id, test_actor_id)
            with pytest.raises(PeriodBusyError):
                period_service.calculate(january_period.id, test_actor_id)
            with pytest.raises(PeriodBusyError):
                period_service.lock(january_period.id, test_actor_id)
            with pytest.raises(PeriodBusyError):
                period_service.change_status(january_period.id, "LOCKED", test_actor_id)

        assert period_service.get_period(january_period.id).status == "OPEN"
        assert period_service.calculate(january_period.id, test_actor_id).rows

    def test_journal_mutations_rejected_while_held(
        self, entry, january_period, journal_store, period_guard, standard_accounts, test_actor_id
    ):
        cash = standard_accounts["cash"]

        with period_guard.hold(january_period.id, "validate"):
            with pytest.raises(PeriodBusyError):
                journal_store.create_entry("E2", date(2024, 1, 11), january_period.id, test_actor_id)
            with pytest.raises(PeriodBusyError):
                journal_store.add_line(entry.id, cash.id, test_actor_id, debit="1")
            with pytest.raises(PeriodBusyError):
                journal_store.delete_entry(entry.id, test_actor_id)

        assert len(journal_store.list_entries(january_period.id)) == 1

    def test_other_period_unaffected(
        self, january_period, february_period, journal_store, period_service, period_guard, test_actor_id
    ):
        with period_guard.hold(january_period.id, "calculate"):
            journal_store.create_entry("E2", date(2024, 2, 2), february_period.id, test_actor_id)
            assert period_service.validate(february_period.id, test_actor_id).is_clean

    def test_unknown_periods_leave_no_locks(self, period_service, period_guard, test_actor_id):
        for _ in range(50):
            with pytest.raises(PeriodNotFoundError):
                period_service.update_period(uuid4(), test_actor_id, name="Ghost")

        assert period_guard.tracked_count() == 0

    def test_lost_status_claim_is_busy(
        self, january_period, period_service, session, test_actor_id, captured_logs
    ):
        """Another process moved the status between our read and our UPDATE."""
        period = session.get(FiscalPeriod, january_period.id)
        session.execute(
            update(FiscalPeriod)
            .where(FiscalPeriod.id == january_period.id)
            .values(status=PeriodStatus.CALCULATING.value)
            .execution_options(synchronize_session=False)
        )
        assert period.status == PeriodStatus.OPEN.value

        with pytest.raises(PeriodBusyError):
            period_service._claim(period, PeriodStatus.OPEN, PeriodStatus.VALIDATING)

        assert any(r["message"] == "period_transition_lost" for r in captured_logs())


class TestConcurrentValidation:
    """Two validate calls on real threads against the same period."""

    def test_second_validate_rejected_while_first_runs(
        self, monkeypatch, post_entry, standard_accounts, january_period, period_service, test_actor_id
    ):
        post_entry(
            january_period,
            "E1",
            date(2024, 1, 10),
            [(standard_accounts["cash"], "100", 0), (standard_accounts["revenue"], 0, "100")],
        )
        barrier = Barrier(2)
        scanning = Event()
        release = Event()
        real_scan = period_service_module.scan_period

        def slow_scan(*args, **kwargs):
            scanning.set()
            release.wait(timeout=5)
            return real_scan(*args, **kwargs)

        monkeypatch.setattr(period_service_module, "scan_period", slow_scan)

        def attempt():
            barrier.wait()
            try:
                return period_service.validate(january_period.id, test_actor_id)
            except PeriodBusyError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(attempt) for _ in range(2)]
            # The rejected call returns while the winner is still scanning
            deadline = time.monotonic() + 5
            while not any(f.done() for f in futures) and time.monotonic() < deadline:
                time.sleep(0.01)
            release.set()
            outcomes = [f.result(timeout=5) for f in futures]

        busy = [o for o in outcomes if isinstance(o, PeriodBusyError)]
        reports = [o for o in outcomes if not isinstance(o, PeriodBusyError)]
        assert scanning.is_set()
        assert len(busy) == 1
        assert len(reports) == 1
        assert reports[0].is_clean

        period = period_service.get_period(january_period.id)
        assert period.status == "OPEN"
        assert period.validated_revision == period.revision
        assert not period_service._guard.is_held(january_period.id)
