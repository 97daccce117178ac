"""
Pytest fixtures for the OceanRe ledger test suite.

Provides:
- An in-memory SQLite engine shared by the whole run (StaticPool)
- Per-test sessions isolated by an outer transaction that is rolled back
- Kernel service fixtures with a deterministic clock and a private guard
- Structured log capture
- A FastAPI TestClient bound to the per-test session

Environment Variables:
- OCEANRE_TEST_DATABASE_URL: run against another database (e.g. PostgreSQL)
  instead of in-memory SQLite.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from oceanre_api.database import get_db
from oceanre_api.main import create_app
from oceanre_config.settings import (
    ACCOUNTING_READ,
    ACCOUNTING_WRITE,
    PERIOD_LIFECYCLE,
    PERIOD_STATUS_OVERRIDE,
    Settings,
)
from oceanre_kernel.db.engine import build_engine, create_tables, drop_tables
from oceanre_kernel.domain.clock import DeterministicClock
from oceanre_kernel.domain.dtos import LineInput
from oceanre_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from oceanre_kernel.services.account_registry import AccountRegistry
from oceanre_kernel.services.journal_store import JournalStore
from oceanre_kernel.services.period_guard import PeriodGuard
from oceanre_kernel.services.period_service import PeriodLifecycleService

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_TEST_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture oceanre_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, period_service):
            period_service.validate(...)
            logs = captured_logs()
            assert any(r["message"] == "period_validated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("oceanre_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session, tables created once."""
    eng = build_engine(os.environ.get("OCEANRE_TEST_DATABASE_URL", DEFAULT_TEST_URL))
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture(scope="function")
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Uses the SQLAlchemy 2.0 ``join_transaction_mode`` pattern:
    - Opens a dedicated connection with an outer transaction
    - Any ``session.commit()`` inside the test releases a savepoint
    - At teardown the outer transaction is rolled back
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def period_guard() -> PeriodGuard:
    """A guard private to the test, so held locks never leak between tests."""
    return PeriodGuard()


@pytest.fixture
def account_registry(session) -> AccountRegistry:
    return AccountRegistry(session)


@pytest.fixture
def journal_store(session, period_guard) -> JournalStore:
    return JournalStore(session, amount_places=2, guard=period_guard)


@pytest.fixture
def period_service(session, deterministic_clock, period_guard) -> PeriodLifecycleService:
    return PeriodLifecycleService(
        session,
        clock=deterministic_clock,
        amount_places=2,
        guard=period_guard,
    )


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture
def standard_accounts(account_registry, test_actor_id) -> dict:
    """Small chart of accounts keyed by role."""
    return {
        "cash": account_registry.create_account("1000", "Cash", "ASSET", test_actor_id),
        "receivable": account_registry.create_account(
            "1100", "Premiums Receivable", "ASSET", test_actor_id
        ),
        "payable": account_registry.create_account(
            "2000", "Claims Payable", "LIABILITY", test_actor_id
        ),
        "revenue": account_registry.create_account(
            "4000", "Premium Revenue", "REVENUE", test_actor_id
        ),
        "expense": account_registry.create_account(
            "5000", "Claims Expense", "EXPENSE", test_actor_id
        ),
        "header": account_registry.create_account(
            "1", "Assets", "ASSET", test_actor_id, is_postable=False
        ),
    }


@pytest.fixture
def january_period(period_service, test_actor_id):
    return period_service.create_period(
        "January 2024", date(2024, 1, 1), date(2024, 1, 31), test_actor_id
    )


@pytest.fixture
def february_period(period_service, test_actor_id):
    return period_service.create_period(
        "February 2024", date(2024, 2, 1), date(2024, 2, 29), test_actor_id
    )


@pytest.fixture
def post_entry(journal_store, test_actor_id):
    """
    Create a journal entry from ``(account, debit, credit)`` tuples.

    Usage::

        entry = post_entry(period, "JE-1", date(2024, 1, 5),
                           [(cash, "100", 0), (revenue, 0, "100")])
    """

    def _post(period, entry_number, posting_date, lines, description=None):
        return journal_store.create_entry(
            entry_number=entry_number,
            posting_date=posting_date,
            period_id=period.id,
            actor_id=test_actor_id,
            lines=[
                LineInput(account_id=account.id, debit=Decimal(str(dr)), credit=Decimal(str(cr)))
                for account, dr, cr in lines
            ],
            description=description,
        )

    return _post


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def api_settings() -> Settings:
    return Settings(
        database_url=DEFAULT_TEST_URL,
        amount_places=2,
        enforce_single_open_period=False,
        role_capabilities={
            "ACCOUNTANT": frozenset(
                {ACCOUNTING_READ, ACCOUNTING_WRITE, PERIOD_LIFECYCLE, PERIOD_STATUS_OVERRIDE}
            ),
            "ADMIN": frozenset({ACCOUNTING_READ, ACCOUNTING_WRITE, PERIOD_STATUS_OVERRIDE}),
            "SALESPERSON": frozenset({ACCOUNTING_READ}),
        },
    )


def actor_headers(role: str, actor_id: UUID = TEST_ACTOR_ID) -> dict[str, str]:
    return {"X-Actor-Id": str(actor_id), "X-Actor-Role": role}


@pytest.fixture
def client(session, api_settings) -> Generator[TestClient, None, None]:
    """TestClient whose requests share the per-test session."""
    app = create_app(settings=api_settings, init_database=False)

    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield session
        finally:
            session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        test_client.headers.update(actor_headers("ACCOUNTANT"))
        yield test_client
