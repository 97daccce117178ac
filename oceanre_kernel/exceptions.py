"""
Typed exception hierarchy for the OceanRe ledger kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers at the request boundary map failures to HTTP responses and UI
messages.  They must do that by catching a type and reading a ``code``,
never by parsing message text:

    try:
        lifecycle.lock(period_id, actor_id)
    except StaleCalculationError as e:
        api_response(code=e.code, period=e.period_id)

Every exception carries:
  1. A ``code`` class attribute (machine-readable, API-safe)
  2. Structured attributes describing the failure
  3. A ``detail`` property used by the API error body

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    OceanReError (base)
    |
    +-- ValidationError            malformed or rule-violating input
    |   +-- DuplicateAccountCodeError
    |   +-- InvalidAccountTypeError
    |   +-- InvalidLineAmountError
    |   +-- NonPostableAccountError
    |   +-- PostingDateOutOfRangeError
    |   +-- DuplicateEntryNumberError
    |   +-- DuplicatePeriodNameError
    |   +-- InvalidPeriodRangeError
    |   +-- PeriodOverlapError
    |   +-- InvalidStatusOverrideError
    |
    +-- ConflictError              state-guard violation, retry after refresh
    |   +-- AccountReferencedError
    |   +-- PeriodLockedError
    |   +-- PeriodBusyError
    |   +-- InvalidPeriodTransitionError
    |   +-- StaleValidationError
    |   +-- StaleCalculationError
    |   +-- PeriodHasEntriesError
    |   +-- ActivePeriodConflictError
    |
    +-- NotFoundError              referenced entity absent
    |   +-- AccountNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- JournalEntryNotFoundError
    |   +-- JournalLineNotFoundError
    |
    +-- AuthorizationError         role lacks the capability

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ValidationError is never retried automatically; the caller fixes input.
2. ConflictError may be retried after re-reading the period state.
3. "Period has violations" is NOT an exception: ``validate`` returns a
   ValidationReport.  Only guard failures raise.
===============================================================================
"""

from typing import Any


class OceanReError(Exception):
    """
    Base exception for all OceanRe kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "OCEANRE_ERROR"

    @property
    def detail(self) -> dict[str, Any]:
        """Structured attributes of this error, for API payloads."""
        return {
            k: (str(v) if v is not None and not isinstance(v, (int, bool)) else v)
            for k, v in vars(self).items()
            if not k.startswith("_")
        }


# =============================================================================
# Category bases
# =============================================================================


class ValidationError(OceanReError):
    """Input is malformed or violates a business rule."""

    code: str = "VALIDATION_ERROR"


class ConflictError(OceanReError):
    """Operation conflicts with the current state of an entity."""

    code: str = "CONFLICT"


class NotFoundError(OceanReError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"


class AuthorizationError(OceanReError):
    """Actor's role does not grant the required capability."""

    code: str = "FORBIDDEN"

    def __init__(self, role: str, capability: str):
        self.role = role
        self.capability = capability
        super().__init__(f"Role '{role}' is not allowed to perform '{capability}'")


# =============================================================================
# Validation errors
# =============================================================================


class DuplicateAccountCodeError(ValidationError):
    """Account code is already in use."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class InvalidAccountTypeError(ValidationError):
    """Account type is outside the chart-of-accounts enumeration."""

    code: str = "INVALID_ACCOUNT_TYPE"

    def __init__(self, account_type: str):
        self.account_type = account_type
        super().__init__(f"Invalid account type: {account_type!r}")


class InvalidLineAmountError(ValidationError):
    """
    Journal line amounts are malformed.

    A line is either a debit or a credit: amounts are non-negative, exactly
    one side is nonzero, and no amount exceeds the configured precision or
    the width of the amount columns.
    """

    code: str = "INVALID_LINE_AMOUNT"

    def __init__(self, debit: Any, credit: Any, reason: str):
        self.debit = debit
        self.credit = credit
        self.reason = reason
        super().__init__(f"Invalid line amount (debit={debit}, credit={credit}): {reason}")


class NonPostableAccountError(ValidationError):
    """Journal line targets a header (non-postable) account."""

    code: str = "NON_POSTABLE_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} does not accept journal lines")


class PostingDateOutOfRangeError(ValidationError):
    """Posting date falls outside the period's date range."""

    code: str = "POSTING_DATE_OUT_OF_RANGE"

    def __init__(self, posting_date: str, period_name: str, start_date: str, end_date: str):
        self.posting_date = posting_date
        self.period_name = period_name
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Posting date {posting_date} is outside period {period_name} "
            f"({start_date} to {end_date})"
        )


class DuplicateEntryNumberError(ValidationError):
    """Journal entry number is already in use."""

    code: str = "DUPLICATE_ENTRY_NUMBER"

    def __init__(self, entry_number: str):
        self.entry_number = entry_number
        super().__init__(f"Journal entry number already exists: {entry_number}")


class DuplicatePeriodNameError(ValidationError):
    """Period name is already in use."""

    code: str = "DUPLICATE_PERIOD_NAME"

    def __init__(self, period_name: str):
        self.period_name = period_name
        super().__init__(f"Period name already exists: {period_name}")


class InvalidPeriodRangeError(ValidationError):
    """Period start date is not strictly before its end date."""

    code: str = "INVALID_PERIOD_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"start_date ({start_date}) must be before end_date ({end_date})")


class PeriodOverlapError(ValidationError):
    """Period date range overlaps an existing period."""

    code: str = "PERIOD_OVERLAP"

    def __init__(
        self,
        period_name: str,
        existing_period_name: str,
        overlap_start: str,
        overlap_end: str,
    ):
        self.period_name = period_name
        self.existing_period_name = existing_period_name
        self.overlap_start = overlap_start
        self.overlap_end = overlap_end
        super().__init__(
            f"Period {period_name} overlaps with {existing_period_name} "
            f"from {overlap_start} to {overlap_end}"
        )


class InvalidStatusOverrideError(ValidationError):
    """
    Status override targets a transient state.

    VALIDATING and CALCULATING are only reachable by running validate and
    calculate; an override must never put a period there.
    """

    code: str = "INVALID_STATUS_OVERRIDE"

    def __init__(self, period_id: Any, requested_status: str):
        self.period_id = period_id
        self.requested_status = requested_status
        super().__init__(
            f"Status {requested_status} cannot be set directly on period {period_id}"
        )


# =============================================================================
# Conflict errors
# =============================================================================


class AccountReferencedError(ConflictError):
    """Account has journal lines and cannot be changed that way."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_code: str, action: str):
        self.account_code = account_code
        self.action = action
        super().__init__(
            f"Cannot {action} account {account_code}: it is referenced by journal lines"
        )


class PeriodLockedError(ConflictError):
    """Mutation attempted against a LOCKED period."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period_name: str, action: str):
        self.period_name = period_name
        self.action = action
        super().__init__(f"Cannot {action}: period {period_name} is locked")


class PeriodBusyError(ConflictError):
    """A lifecycle operation is already in flight for the period."""

    code: str = "PERIOD_BUSY"

    def __init__(self, period_id: Any, status: str | None = None):
        self.period_id = period_id
        self.status = status
        suffix = f" (status {status})" if status else ""
        super().__init__(f"Period {period_id} has an operation in progress{suffix}")


class InvalidPeriodTransitionError(ConflictError):
    """Lifecycle operation is not allowed from the period's current status."""

    code: str = "INVALID_PERIOD_TRANSITION"

    def __init__(self, period_name: str, current_status: str, operation: str):
        self.period_name = period_name
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} period {period_name} in status {current_status}"
        )


class StaleValidationError(ConflictError):
    """Calculate requested without a clean validation at the current revision."""

    code: str = "STALE_VALIDATION"

    def __init__(self, period_name: str, revision: int, validated_revision: int | None):
        self.period_name = period_name
        self.revision = revision
        self.validated_revision = validated_revision
        super().__init__(
            f"Period {period_name} has no clean validation for revision {revision} "
            f"(last clean validation: {validated_revision})"
        )


class StaleCalculationError(ConflictError):
    """Lock requested without a successful calculation at the current revision."""

    code: str = "STALE_CALCULATION"

    def __init__(self, period_name: str, revision: int, calculated_revision: int | None):
        self.period_name = period_name
        self.revision = revision
        self.calculated_revision = calculated_revision
        super().__init__(
            f"Period {period_name} has no calculation for revision {revision} "
            f"(last calculation: {calculated_revision})"
        )


class PeriodHasEntriesError(ConflictError):
    """Period still owns journal entries."""

    code: str = "PERIOD_HAS_ENTRIES"

    def __init__(self, period_name: str, entry_count: int):
        self.period_name = period_name
        self.entry_count = entry_count
        super().__init__(f"Period {period_name} still has {entry_count} journal entries")


class ActivePeriodConflictError(ConflictError):
    """Another period is already OPEN or REOPENED."""

    code: str = "ACTIVE_PERIOD_CONFLICT"

    def __init__(self, period_name: str, active_period_name: str):
        self.period_name = period_name
        self.active_period_name = active_period_name
        super().__init__(
            f"Cannot activate period {period_name}: period {active_period_name} is already open"
        )


# =============================================================================
# Not-found errors
# =============================================================================


class AccountNotFoundError(NotFoundError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: Any):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class PeriodNotFoundError(NotFoundError):
    """Period with given ID was not found."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: Any):
        self.period_id = period_id
        super().__init__(f"Period not found: {period_id}")


class JournalEntryNotFoundError(NotFoundError):
    """Journal entry with given ID was not found."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: Any):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class JournalLineNotFoundError(NotFoundError):
    """Journal line with given ID was not found."""

    code: str = "JOURNAL_LINE_NOT_FOUND"

    def __init__(self, line_id: Any):
        self.line_id = line_id
        super().__init__(f"Journal line not found: {line_id}")
