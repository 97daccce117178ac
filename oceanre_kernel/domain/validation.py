"""
Period consistency checks and journal line amount rules.

Pure checks with no I/O.  JournalStore calls ``normalize_line_amounts``
on every write; PeriodLifecycleService feeds DTO snapshots to
``scan_period`` during validation.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from oceanre_kernel.db.types import (
    AMOUNT_LIMIT,
    ZERO,
    fits_precision,
    fits_storage,
    round_amount,
    to_amount,
)
from oceanre_kernel.domain.dtos import (
    JournalEntryInfo,
    PeriodInfo,
    ValidationReport,
    Violation,
    ViolationCode,
)
from oceanre_kernel.exceptions import InvalidLineAmountError


def normalize_line_amounts(debit: Any, credit: Any, places: int) -> tuple[Decimal, Decimal]:
    """
    Convert and check a line's amounts.

    A line is either a debit or a credit: both amounts non-negative, exactly
    one nonzero, neither finer than ``places`` decimal places nor wider than
    the amount columns.  A line with debit == credit == 0 carries no
    accounting meaning and is rejected.

    Returns:
        (debit, credit) quantized to ``places``.

    Raises:
        InvalidLineAmountError: on any rule violation.
    """
    try:
        dr = to_amount(debit if debit is not None else ZERO)
        cr = to_amount(credit if credit is not None else ZERO)
    except ValueError as exc:
        raise InvalidLineAmountError(debit, credit, str(exc)) from exc

    if dr < ZERO or cr < ZERO:
        raise InvalidLineAmountError(dr, cr, "amounts must be non-negative")
    if dr == ZERO and cr == ZERO:
        raise InvalidLineAmountError(dr, cr, "line must carry a nonzero debit or credit")
    if dr != ZERO and cr != ZERO:
        raise InvalidLineAmountError(dr, cr, "line cannot be both a debit and a credit")
    if not (fits_storage(dr) and fits_storage(cr)):
        raise InvalidLineAmountError(dr, cr, f"amounts must be below {AMOUNT_LIMIT:,}")
    if not (fits_precision(dr, places) and fits_precision(cr, places)):
        raise InvalidLineAmountError(dr, cr, f"amounts allow at most {places} decimal places")

    return round_amount(dr, places), round_amount(cr, places)


def _entry_violations(
    period: PeriodInfo, entry: JournalEntryInfo, places: int
) -> list[Violation]:
    found: list[Violation] = []

    debits = round_amount(entry.total_debits, places)
    credits = round_amount(entry.total_credits, places)
    if debits != credits:
        found.append(
            Violation(
                code=ViolationCode.UNBALANCED_ENTRY,
                entry_id=entry.id,
                entry_number=entry.entry_number,
                message=(
                    f"Entry {entry.entry_number} is unbalanced: "
                    f"{debits} debit vs {credits} credit"
                ),
                details={
                    "total_debits": str(debits),
                    "total_credits": str(credits),
                    "difference": str(debits - credits),
                },
            )
        )

    # Each line is checked on its own; two lines on one account are never merged.
    for line in entry.lines:
        if not line.account_is_postable:
            found.append(
                Violation(
                    code=ViolationCode.NON_POSTABLE_ACCOUNT,
                    entry_id=entry.id,
                    entry_number=entry.entry_number,
                    line_id=line.id,
                    message=(
                        f"Entry {entry.entry_number} line {line.line_number} "
                        f"posts to non-postable account {line.account_code}"
                    ),
                    details={"account_code": line.account_code},
                )
            )

    if not period.contains_date(entry.posting_date):
        found.append(
            Violation(
                code=ViolationCode.POSTING_DATE_OUT_OF_RANGE,
                entry_id=entry.id,
                entry_number=entry.entry_number,
                message=(
                    f"Entry {entry.entry_number} posting date {entry.posting_date} "
                    f"is outside {period.start_date}..{period.end_date}"
                ),
                details={
                    "posting_date": entry.posting_date.isoformat(),
                    "start_date": period.start_date.isoformat(),
                    "end_date": period.end_date.isoformat(),
                },
            )
        )

    return found


def scan_period(
    period: PeriodInfo,
    entries: Iterable[JournalEntryInfo],
    places: int,
) -> ValidationReport:
    """
    Run the read-only consistency pass over a period's entries.

    The report is clean iff every entry balances at ``places`` precision,
    every line's account is postable, and every posting date is inside the
    period.  Violations are listed in entry-number order.
    """
    violations: list[Violation] = []
    entries_checked = 0
    lines_checked = 0

    for entry in sorted(entries, key=lambda e: e.entry_number):
        entries_checked += 1
        lines_checked += len(entry.lines)
        violations.extend(_entry_violations(period, entry, places))

    return ValidationReport(
        period_id=period.id,
        revision=period.revision,
        entries_checked=entries_checked,
        lines_checked=lines_checked,
        violations=tuple(violations),
    )
