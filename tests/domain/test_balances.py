"""
Balance aggregation.

closing = opening + debits - credits for every account, accounts ordered
by code, and a report that carries no timestamps.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from oceanre_kernel.domain.balances import compute_balances
from oceanre_kernel.domain.dtos import AccountInfo, JournalEntryInfo, JournalLineInfo


def _account(code, name, account_type="ASSET"):
    return AccountInfo(
        id=uuid4(),
        code=code,
        name=name,
        account_type=account_type,
        normal_balance="DEBIT" if account_type in ("ASSET", "EXPENSE") else "CREDIT",
        is_postable=True,
    )


@pytest.fixture
def accounts():
    return {
        "cash": _account("1000", "Cash"),
        "revenue": _account("4000", "Premium Revenue", "REVENUE"),
        "expense": _account("5000", "Claims Expense", "EXPENSE"),
    }


def _entry(number, lines):
    entry_id = uuid4()
    return JournalEntryInfo(
        id=entry_id,
        entry_number=number,
        posting_date=date(2024, 1, 10),
        period_id=uuid4(),
        lines=tuple(
            JournalLineInfo(
                id=uuid4(),
                entry_id=entry_id,
                line_number=i,
                account_id=account.id,
                account_code=account.code,
                account_is_postable=True,
                debit=Decimal(dr),
                credit=Decimal(cr),
            )
            for i, (account, dr, cr) in enumerate(lines, start=1)
        ),
    )


def _by_id(accounts):
    return {a.id: a for a in accounts.values()}


class TestComputeBalances:
    def test_totals_per_account(self, accounts):
        cash, revenue, expense = accounts["cash"], accounts["revenue"], accounts["expense"]
        entries = [
            _entry("JE-1", [(cash, "100", "0"), (revenue, "0", "100")]),
            _entry("JE-2", [(expense, "30", "0"), (cash, "0", "30")]),
        ]

        report = compute_balances(uuid4(), 2, entries, _by_id(accounts), {}, 2)

        assert [r.account_code for r in report.rows] == ["1000", "4000", "5000"]
        cash_row = report.row_for("1000")
        assert cash_row.debit_total == Decimal("100.00")
        assert cash_row.credit_total == Decimal("30.00")
        assert cash_row.closing_balance == Decimal("70.00")
        assert report.row_for("4000").closing_balance == Decimal("-100.00")
        assert report.total_debits == report.total_credits == Decimal("130.00")

    def test_same_account_lines_within_entry_accumulate(self, accounts):
        cash, revenue = accounts["cash"], accounts["revenue"]
        entries = [_entry("JE-1", [(cash, "60", "0"), (cash, "40", "0"), (revenue, "0", "100")])]

        report = compute_balances(uuid4(), 1, entries, _by_id(accounts), {}, 2)

        assert report.row_for("1000").debit_total == Decimal("100.00")

    def test_opening_balance_carried(self, accounts):
        cash, revenue = accounts["cash"], accounts["revenue"]
        prior_id = uuid4()
        entries = [_entry("JE-1", [(cash, "10", "0"), (revenue, "0", "10")])]
        opening = {cash.id: Decimal("70"), revenue.id: Decimal("-70")}

        report = compute_balances(
            uuid4(), 1, entries, _by_id(accounts), opening, 2, prior_period_id=prior_id
        )

        assert report.prior_period_id == prior_id
        assert report.row_for("1000").opening_balance == Decimal("70.00")
        assert report.row_for("1000").closing_balance == Decimal("80.00")
        assert report.row_for("4000").closing_balance == Decimal("-80.00")

    def test_account_with_only_opening_balance_included(self, accounts):
        expense = accounts["expense"]

        report = compute_balances(
            uuid4(), 0, [], _by_id(accounts), {expense.id: Decimal("5")}, 2
        )

        assert [r.account_code for r in report.rows] == ["5000"]
        assert report.rows[0].net_change == Decimal("0.00")

    def test_zero_opening_without_activity_excluded(self, accounts):
        report = compute_balances(
            uuid4(), 0, [], _by_id(accounts), {accounts["cash"].id: Decimal("0")}, 2
        )

        assert report.rows == ()

    def test_equal_inputs_give_equal_reports(self, accounts):
        cash, revenue = accounts["cash"], accounts["revenue"]
        period_id = uuid4()
        entries = [_entry("JE-1", [(cash, "100", "0"), (revenue, "0", "100")])]

        first = compute_balances(period_id, 4, entries, _by_id(accounts), {}, 2)
        second = compute_balances(period_id, 4, list(reversed(entries)), _by_id(accounts), {}, 2)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_missing_account_raises(self, accounts):
        cash, revenue = accounts["cash"], accounts["revenue"]
        entries = [_entry("JE-1", [(cash, "1", "0"), (revenue, "0", "1")])]

        with pytest.raises(KeyError):
            compute_balances(uuid4(), 0, entries, {cash.id: cash}, {}, 2)
