"""
Module: oceanre_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries used by the period lifecycle:
    DTO snapshots of a period's entries, the accounts they touch, the
    preceding period's persisted closing balances, and the balance report
    of a calculated period.
Architecture position: Kernel > Selectors.  May import from models/,
    domain DTOs and selectors/base.py.

Invariants enforced:
    - "Preceding period" is the period with the latest end_date strictly
      before the given period's start_date.  Carry-forward reads only its
      persisted PeriodBalance rows; an uncalculated predecessor contributes
      nothing.
    - Balance report rows are ordered by account code.

Failure modes:
    - PeriodNotFoundError if the period does not exist.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from oceanre_kernel.db.types import round_amount
from oceanre_kernel.domain.dtos import (
    AccountBalanceRow,
    AccountInfo,
    BalanceReport,
    JournalEntryInfo,
    PeriodInfo,
)
from oceanre_kernel.exceptions import PeriodNotFoundError
from oceanre_kernel.models.account import Account, AccountType
from oceanre_kernel.models.fiscal_period import FiscalPeriod
from oceanre_kernel.models.journal import JournalEntry
from oceanre_kernel.models.period_balance import PeriodBalance
from oceanre_kernel.selectors.base import BaseSelector


def _present(value: Decimal, places: int | None) -> Decimal:
    return value if places is None else round_amount(value, places)


class LedgerSelector(BaseSelector[PeriodBalance]):
    """
    Selector for period-scoped ledger reads.

    Guarantees:
        - All amounts are Decimal.
        - get_balance_report() returns exactly what the last calculation
          persisted; it never recomputes.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _get_period(self, period_id: UUID) -> FiscalPeriod:
        period = self.session.get(FiscalPeriod, period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period

    def entries_for_period(self, period_id: UUID) -> list[JournalEntryInfo]:
        """Snapshot every journal entry of the period, with its lines."""
        result = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.period_id == period_id)
            .order_by(JournalEntry.entry_number)
        )
        return [JournalEntryInfo.from_model(e) for e in result.scalars().all()]

    def accounts_by_id(self, account_ids: Iterable[UUID]) -> dict[UUID, AccountInfo]:
        ids = set(account_ids)
        if not ids:
            return {}
        result = self.session.execute(select(Account).where(Account.id.in_(ids)))
        return {a.id: AccountInfo.from_model(a) for a in result.scalars().all()}

    def find_prior_period(self, period_id: UUID) -> PeriodInfo | None:
        """Return the period immediately preceding ``period_id``, if any."""
        period = self._get_period(period_id)
        prior = self.session.execute(
            select(FiscalPeriod)
            .where(FiscalPeriod.end_date < period.start_date)
            .order_by(FiscalPeriod.end_date.desc())
            .limit(1)
        ).scalar_one_or_none()
        return PeriodInfo.from_model(prior) if prior else None

    def closing_balances(self, period_id: UUID) -> dict[UUID, Decimal]:
        """Persisted closing balance per account for a calculated period."""
        result = self.session.execute(
            select(PeriodBalance.account_id, PeriodBalance.closing_balance)
            .where(PeriodBalance.period_id == period_id)
        )
        return {account_id: closing for account_id, closing in result.all()}

    def opening_balances(self, period_id: UUID) -> tuple[UUID | None, dict[UUID, Decimal]]:
        """
        Opening balances of a period: the preceding period's closing balances.

        Returns:
            (prior_period_id, balances).  prior_period_id is None when there
            is no preceding period.
        """
        prior = self.find_prior_period(period_id)
        if prior is None:
            return None, {}
        return prior.id, self.closing_balances(prior.id)

    def get_balance_report(self, period_id: UUID, places: int | None = None) -> BalanceReport:
        """
        Balance report as persisted by the period's last calculation.

        An uncalculated period yields an empty report at revision 0.  With
        ``places`` the stored amounts are quantized for presentation.
        """
        period = self._get_period(period_id)
        result = self.session.execute(
            select(PeriodBalance, Account)
            .join(Account, Account.id == PeriodBalance.account_id)
            .where(PeriodBalance.period_id == period_id)
            .order_by(Account.code)
        )

        rows = []
        revision = 0
        for balance, account in result.all():
            revision = balance.revision
            rows.append(
                AccountBalanceRow(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    account_type=AccountType(account.account_type).value,
                    opening_balance=_present(balance.opening_balance, places),
                    debit_total=_present(balance.debit_total, places),
                    credit_total=_present(balance.credit_total, places),
                )
            )

        prior = self.find_prior_period(period.id)
        return BalanceReport(
            period_id=period.id,
            revision=period.calculated_revision if period.calculated_revision is not None else revision,
            rows=tuple(rows),
            prior_period_id=prior.id if prior else None,
        )
