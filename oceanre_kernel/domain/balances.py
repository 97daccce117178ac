"""
Balance aggregation for period calculation.

Pure function, no I/O.  Given a period's entries, the accounts they touch,
and the opening balances carried forward from the preceding period, builds
the per-account BalanceReport that PeriodLifecycleService persists.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from oceanre_kernel.db.types import ZERO, round_amount
from oceanre_kernel.domain.dtos import (
    AccountBalanceRow,
    AccountInfo,
    BalanceReport,
    JournalEntryInfo,
)


def compute_balances(
    period_id: UUID,
    revision: int,
    entries: Iterable[JournalEntryInfo],
    accounts: Mapping[UUID, AccountInfo],
    opening_balances: Mapping[UUID, Decimal],
    places: int,
    prior_period_id: UUID | None = None,
) -> BalanceReport:
    """
    Aggregate debits and credits per account.

    Every line contributes to its account's totals, including several lines
    on the same account within one entry.  Accounts appear in the report
    when they have activity in the period or a nonzero opening balance.

    Args:
        period_id: Period being calculated.
        revision: Period revision the entries were read at.
        entries: The period's journal entries.
        accounts: AccountInfo for every account referenced by entries or
            opening_balances.
        opening_balances: Closing balances of the preceding period by account.
        places: Decimal places for the reported amounts.
        prior_period_id: Source of opening_balances, if any.

    Raises:
        KeyError: If a referenced account is missing from ``accounts``.
    """
    debit_totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    credit_totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)

    for entry in entries:
        for line in entry.lines:
            debit_totals[line.account_id] += line.debit
            credit_totals[line.account_id] += line.credit

    touched = set(debit_totals) | set(credit_totals)
    touched |= {acct_id for acct_id, amount in opening_balances.items() if amount != ZERO}

    rows = []
    for account_id in touched:
        account = accounts[account_id]
        rows.append(
            AccountBalanceRow(
                account_id=account_id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                opening_balance=round_amount(opening_balances.get(account_id, ZERO), places),
                debit_total=round_amount(debit_totals[account_id], places),
                credit_total=round_amount(credit_totals[account_id], places),
            )
        )

    rows.sort(key=lambda r: r.account_code)

    return BalanceReport(
        period_id=period_id,
        revision=revision,
        rows=tuple(rows),
        prior_period_id=prior_period_id,
    )
