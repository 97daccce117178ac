"""
AccountRegistry -- chart-of-accounts maintenance.

Responsibility:
    Creates, reads, updates and deletes ledger accounts while protecting
    accounts that journal lines already reference.

Architecture position:
    Kernel > Services -- imperative shell.  Leaf component: JournalStore and
    PeriodLifecycleService read accounts but the registry depends on
    nothing above models/.

Invariants enforced:
    - code is unique; account_type is one of AccountType.
    - A referenced account keeps its code and account_type, cannot be
      marked non-postable, and is never deleted.

Failure modes:
    - DuplicateAccountCodeError / InvalidAccountTypeError (ValidationError).
    - AccountReferencedError (ConflictError).
    - AccountNotFoundError (NotFoundError).
"""

from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from oceanre_kernel.domain.dtos import AccountInfo
from oceanre_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountCodeError,
    InvalidAccountTypeError,
    ValidationError,
)
from oceanre_kernel.logging_config import get_logger
from oceanre_kernel.models.account import Account, AccountType
from oceanre_kernel.models.journal import JournalLine
from oceanre_kernel.models.period_balance import PeriodBalance
from oceanre_kernel.services.base import BaseService

logger = get_logger("services.accounts")


def _parse_account_type(value: AccountType | str) -> AccountType:
    try:
        return AccountType(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise InvalidAccountTypeError(str(value)) from None


class AccountRegistry(BaseService[Account]):
    """
    Service for the chart of accounts.

    Contract:
        All public methods return frozen ``AccountInfo`` DTOs.  Writes flush
        within the caller's transaction.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # ------------------------------------------------------------------
    # Internal lookups
    # ------------------------------------------------------------------

    def _get_orm(self, account_id: UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def _code_taken(self, code: str, exclude_id: UUID | None = None) -> bool:
        stmt = select(Account.id).where(Account.code == code)
        if exclude_id is not None:
            stmt = stmt.where(Account.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    def is_referenced(self, account_id: UUID) -> bool:
        """Check whether any journal line references the account."""
        self._get_orm(account_id)
        return bool(
            self.session.execute(
                select(exists().where(JournalLine.account_id == account_id))
            ).scalar()
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_account(self, account_id: UUID) -> AccountInfo:
        return AccountInfo.from_model(self._get_orm(account_id))

    def get_account_by_code(self, code: str) -> AccountInfo | None:
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        return AccountInfo.from_model(account) if account else None

    def list_accounts(self) -> list[AccountInfo]:
        result = self.session.execute(select(Account).order_by(Account.code))
        return [AccountInfo.from_model(a) for a in result.scalars().all()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        is_postable: bool = True,
    ) -> AccountInfo:
        """
        Create a new ledger account.

        Raises:
            ValidationError: If code or name is blank.
            InvalidAccountTypeError: If account_type is not in AccountType.
            DuplicateAccountCodeError: If code is already used.
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("Account code is required")
        if not name:
            raise ValidationError("Account name is required")

        parsed_type = _parse_account_type(account_type)

        if self._code_taken(code):
            raise DuplicateAccountCodeError(code)

        account = Account(
            code=code,
            name=name,
            account_type=parsed_type.value,
            is_postable=is_postable,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_code": code,
                "account_type": parsed_type.value,
                "is_postable": is_postable,
            },
        )

        return AccountInfo.from_model(account)

    def update_account(
        self,
        account_id: UUID,
        actor_id: UUID,
        *,
        code: str | None = None,
        name: str | None = None,
        account_type: AccountType | str | None = None,
        is_postable: bool | None = None,
    ) -> AccountInfo:
        """
        Update an account.

        ``name`` may always change.  ``code`` and ``account_type`` may change
        only while no journal line references the account.  ``is_postable``
        changes go through ``mark_postable`` / ``mark_non_postable``.

        Raises:
            AccountReferencedError: On a structural change to a referenced account.
            DuplicateAccountCodeError: If the new code is taken.
        """
        account = self._get_orm(account_id)

        new_code = code.strip() if code is not None else None
        new_type = _parse_account_type(account_type) if account_type is not None else None
        structural = (new_code is not None and new_code != account.code) or (
            new_type is not None and new_type != AccountType(account.account_type)
        )

        if structural or (is_postable is False and account.is_postable):
            if self.is_referenced(account_id):
                action = "change code or type of" if structural else "mark non-postable"
                raise AccountReferencedError(account.code, action)

        if new_code is not None and new_code != account.code:
            if not new_code:
                raise ValidationError("Account code is required")
            if self._code_taken(new_code, exclude_id=account_id):
                raise DuplicateAccountCodeError(new_code)
            account.code = new_code

        if new_type is not None:
            account.account_type = new_type.value

        if name is not None:
            if not name.strip():
                raise ValidationError("Account name is required")
            account.name = name.strip()

        account.updated_by_id = actor_id
        self.session.flush()

        if is_postable is True and not account.is_postable:
            return self.mark_postable(account_id, actor_id)
        if is_postable is False and account.is_postable:
            return self.mark_non_postable(account_id, actor_id)

        logger.info("account_updated", extra={"account_code": account.code})
        return AccountInfo.from_model(account)

    def mark_non_postable(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """
        Turn an account into a header (summary) account.

        Raises:
            AccountReferencedError: If journal lines already reference it.
        """
        account = self._get_orm(account_id)
        if self.is_referenced(account_id):
            raise AccountReferencedError(account.code, "mark non-postable")

        account.is_postable = False
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info("account_marked_non_postable", extra={"account_code": account.code})
        return AccountInfo.from_model(account)

    def mark_postable(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        """Allow an account to receive journal lines."""
        account = self._get_orm(account_id)
        account.is_postable = True
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info("account_marked_postable", extra={"account_code": account.code})
        return AccountInfo.from_model(account)

    def delete_account(self, account_id: UUID, actor_id: UUID) -> None:
        """
        Delete an unreferenced account.

        Raises:
            AccountReferencedError: If journal lines or calculated balances reference it.
        """
        account = self._get_orm(account_id)
        has_balances = self.session.execute(
            select(exists().where(PeriodBalance.account_id == account_id))
        ).scalar()
        if has_balances or self.is_referenced(account_id):
            raise AccountReferencedError(account.code, "delete")

        self.session.delete(account)
        self.session.flush()

        logger.info(
            "account_deleted",
            extra={"account_code": account.code, "deleted_by": str(actor_id)},
        )
