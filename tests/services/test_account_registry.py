"""
Chart-of-accounts maintenance.

Verifies:
- Account codes are unique and account types are validated
- normal_balance follows the account type
- Referenced accounts keep code/type, stay postable and cannot be deleted
"""

from datetime import date
from uuid import uuid4

import pytest

from oceanre_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    ConflictError,
    DuplicateAccountCodeError,
    InvalidAccountTypeError,
    ValidationError,
)


class TestCreateAccount:
    def test_create_asset_account(self, account_registry, test_actor_id):
        account = account_registry.create_account("1000", "Cash", "ASSET", test_actor_id)

        assert account.code == "1000"
        assert account.account_type == "ASSET"
        assert account.normal_balance == "DEBIT"
        assert account.is_postable is True
        assert account.created_by_id == test_actor_id

    def test_type_is_case_insensitive(self, account_registry, test_actor_id):
        account = account_registry.create_account("2000", "Payables", "liability", test_actor_id)

        assert account.account_type == "LIABILITY"
        assert account.normal_balance == "CREDIT"

    def test_duplicate_code_rejected(self, account_registry, test_actor_id):
        account_registry.create_account("1000", "Cash", "ASSET", test_actor_id)

        with pytest.raises(DuplicateAccountCodeError) as exc_info:
            account_registry.create_account("1000", "Other cash", "ASSET", test_actor_id)

        assert exc_info.value.account_code == "1000"

    def test_unknown_type_rejected(self, account_registry, test_actor_id):
        with pytest.raises(InvalidAccountTypeError):
            account_registry.create_account("9000", "Misc", "CONTINGENCY", test_actor_id)

    @pytest.mark.parametrize("code, name", [("", "Cash"), ("1000", "  ")])
    def test_blank_fields_rejected(self, account_registry, test_actor_id, code, name):
        with pytest.raises(ValidationError):
            account_registry.create_account(code, name, "ASSET", test_actor_id)

    def test_header_account(self, account_registry, test_actor_id):
        account = account_registry.create_account(
            "1", "Assets", "ASSET", test_actor_id, is_postable=False
        )

        assert account.is_postable is False


class TestReadAccounts:
    def test_list_ordered_by_code(self, standard_accounts, account_registry):
        codes = [a.code for a in account_registry.list_accounts()]

        assert codes == sorted(codes)
        assert len(codes) == len(standard_accounts)

    def test_get_by_code(self, standard_accounts, account_registry):
        found = account_registry.get_account_by_code("4000")

        assert found == standard_accounts["revenue"]
        assert account_registry.get_account_by_code("nope") is None

    def test_get_missing(self, account_registry):
        with pytest.raises(AccountNotFoundError):
            account_registry.get_account(uuid4())


class TestUpdateUnreferenced:
    def test_rename_and_recode(self, standard_accounts, account_registry, test_actor_id):
        cash = standard_accounts["cash"]

        updated = account_registry.update_account(
            cash.id, test_actor_id, code="1010", name="Cash at bank", account_type="ASSET"
        )

        assert updated.code == "1010"
        assert updated.name == "Cash at bank"
        assert updated.updated_by_id == test_actor_id

    def test_recode_to_taken_code(self, standard_accounts, account_registry, test_actor_id):
        with pytest.raises(DuplicateAccountCodeError):
            account_registry.update_account(
                standard_accounts["cash"].id, test_actor_id, code="4000"
            )

    def test_toggle_postable(self, standard_accounts, account_registry, test_actor_id):
        cash = standard_accounts["cash"]

        header = account_registry.mark_non_postable(cash.id, test_actor_id)
        again = account_registry.update_account(cash.id, test_actor_id, is_postable=True)

        assert header.is_postable is False
        assert again.is_postable is True

    def test_delete(self, standard_accounts, account_registry, test_actor_id):
        cash = standard_accounts["cash"]

        account_registry.delete_account(cash.id, test_actor_id)

        with pytest.raises(AccountNotFoundError):
            account_registry.get_account(cash.id)


class TestReferencedAccountProtection:
    @pytest.fixture
    def referenced(self, standard_accounts, january_period, post_entry):
        post_entry(
            january_period,
            "JE-1",
            date(2024, 1, 5),
            [(standard_accounts["cash"], "100", 0), (standard_accounts["revenue"], 0, "100")],
        )
        return standard_accounts["cash"]

    def test_is_referenced(self, referenced, standard_accounts, account_registry):
        assert account_registry.is_referenced(referenced.id)
        assert not account_registry.is_referenced(standard_accounts["expense"].id)

    def test_code_change_rejected(self, referenced, account_registry, test_actor_id):
        with pytest.raises(AccountReferencedError):
            account_registry.update_account(referenced.id, test_actor_id, code="1999")

    def test_type_change_rejected(self, referenced, account_registry, test_actor_id):
        with pytest.raises(AccountReferencedError):
            account_registry.update_account(referenced.id, test_actor_id, account_type="EXPENSE")

    def test_rename_allowed(self, referenced, account_registry, test_actor_id):
        updated = account_registry.update_account(referenced.id, test_actor_id, name="Petty cash")

        assert updated.name == "Petty cash"
        assert updated.code == referenced.code

    def test_mark_non_postable_rejected(self, referenced, account_registry, test_actor_id):
        with pytest.raises(AccountReferencedError) as exc_info:
            account_registry.mark_non_postable(referenced.id, test_actor_id)

        assert exc_info.value.code == "ACCOUNT_REFERENCED"

    def test_delete_rejected(self, referenced, account_registry, test_actor_id):
        with pytest.raises(ConflictError):
            account_registry.delete_account(referenced.id, test_actor_id)

        assert account_registry.get_account(referenced.id).code == "1000"
