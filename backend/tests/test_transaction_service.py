"""Tests for transaction create/update/delete and their balance effects."""

import pytest
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import update

from treasury.exceptions import NotFoundError, ValidationError, VersionConflictError
from treasury.models.account import Account
from treasury.models.history import EditType, TransactionEditHistory
from treasury.models.transaction import Transaction, TransactionStatus, TransactionType
from treasury.schemas.transaction import (
    CheckVersion,
    EditHistoryResponse,
    ForceOverwrite,
    TransactionCreate,
    TransactionFilters,
    TransactionUpdate,
)
from treasury.services import edit_history_service, transaction_service


def _update(db_session, organization, txn, user, **fields):
    return transaction_service.update_transaction(
        db_session,
        organization.id,
        txn.account_id,
        txn.id,
        TransactionUpdate(**fields),
        user.id,
    )


class TestCreateTransaction:
    """Test transaction creation."""

    def test_expense_with_fee(self, db_session, checking_account, make_transaction, read_balance):
        """EXPENSE 100 with a 5.00 fee on 1000 should leave 895."""
        checking_account.transaction_fee = Decimal("5.00")
        db_session.commit()

        txn = make_transaction("100.00", apply_fee=True)

        assert Decimal(txn.fee_amount) == Decimal("5.00")
        assert txn.version == 1
        assert txn.status == TransactionStatus.UNCLEARED
        assert read_balance(checking_account) == Decimal("895.00")

    def test_fee_not_applied_by_default(self, checking_account, make_transaction, read_balance):
        """Without apply_fee the account fee should be ignored."""
        txn = make_transaction("100.00")
        assert txn.fee_amount is None
        assert read_balance(checking_account) == Decimal("900.00")

    def test_income_credits_account(self, checking_account, make_transaction, read_balance):
        """Income should raise the balance."""
        make_transaction("250.00", transaction_type="INCOME")
        assert read_balance(checking_account) == Decimal("1250.00")

    def test_transfer_moves_between_accounts(
        self, checking_account, savings_account, make_transaction, read_balance
    ):
        """Transfer should debit source and credit destination."""
        make_transaction(
            "50.00",
            transaction_type="TRANSFER",
            destination_account_id=savings_account.id,
        )
        assert read_balance(checking_account) == Decimal("950.00")
        assert read_balance(savings_account) == Decimal("550.00")

    def test_records_creator(self, make_transaction, user):
        """Creator should be set and hydrated."""
        txn = make_transaction()
        assert txn.created_by_id == user.id
        assert txn.created_by_name == "Tess Treasurer"
        assert txn.created_by_email == "treasurer@example.org"

    def test_split_category_created_by_name(self, db_session, organization, make_transaction):
        """Unknown category names should become root categories."""
        txn = make_transaction(splits=[{"amount": Decimal("100.00"), "category_name": "Outreach"}])
        assert txn.splits[0].category_name == "Outreach"
        assert txn.splits[0].category.depth == 0

    def test_split_category_matched_ignoring_case(self, sample_category, make_transaction):
        """Existing root category should be reused regardless of case."""
        txn = make_transaction(splits=[{"amount": Decimal("100.00"), "category_name": "PROGRAMS"}])
        assert txn.splits[0].category_id == sample_category.id

    def test_splits_keep_entry_order(self, make_transaction):
        """Splits should come back in the order they were entered."""
        txn = make_transaction(splits=[
            {"amount": Decimal("70.00"), "category_name": "Zeta"},
            {"amount": Decimal("30.00"), "category_name": "Alpha"},
        ])
        assert [s.category_name for s in txn.splits] == ["Zeta", "Alpha"]

    def test_split_total_within_tolerance(self, make_transaction):
        """A difference of 0.009 should be accepted."""
        txn = make_transaction(splits=[
            {"amount": Decimal("60.00"), "category_name": "A"},
            {"amount": Decimal("39.991"), "category_name": "B"},
        ])
        assert len(txn.splits) == 2

    def test_split_total_at_tolerance_rejected(self, make_transaction):
        """A difference of exactly 0.01 should be rejected."""
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(splits=[
                {"amount": Decimal("60.00"), "category_name": "A"},
                {"amount": Decimal("39.99"), "category_name": "B"},
            ])
        assert exc_info.value.message == "Split amounts must equal the transaction amount"

    def test_expense_with_destination_rejected(self, savings_account, make_transaction):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(destination_account_id=savings_account.id)
        assert "only be provided for transfer" in exc_info.value.message

    def test_transfer_without_destination_rejected(self, make_transaction):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(transaction_type="TRANSFER")
        assert exc_info.value.message == "Destination account is required for transfers"

    def test_transfer_to_same_account_rejected(self, checking_account, make_transaction):
        with pytest.raises(ValidationError) as exc_info:
            make_transaction(transaction_type="TRANSFER", destination_account_id=checking_account.id)
        assert exc_info.value.message == "Source and destination accounts must be different"

    def test_transfer_to_other_organization_rejected(
        self, db_session, other_organization, make_transaction
    ):
        """Destination must belong to the same organization."""
        foreign = Account(organization_id=other_organization.id, name="Foreign")
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(NotFoundError) as exc_info:
            make_transaction(transaction_type="TRANSFER", destination_account_id=foreign.id)
        assert exc_info.value.message == "Destination account not found"

    def test_unknown_vendor_rejected(self, make_transaction):
        with pytest.raises(NotFoundError) as exc_info:
            make_transaction(vendor_id=str(uuid.uuid4()))
        assert exc_info.value.message == "Vendor not found or inactive"

    def test_unknown_account_rejected(self, db_session, organization, user):
        data = TransactionCreate(
            amount=Decimal("10"),
            splits=[{"amount": Decimal("10"), "category_name": "General"}],
        )
        with pytest.raises(NotFoundError):
            transaction_service.create_transaction(
                db_session, organization.id, str(uuid.uuid4()), data, user.id
            )

    def test_failure_leaves_no_trace(self, db_session, checking_account, make_transaction, read_balance):
        """A missing category id should roll back the whole create."""
        with pytest.raises(NotFoundError) as exc_info:
            make_transaction(splits=[{"amount": Decimal("100.00"), "category_id": str(uuid.uuid4())}])

        assert exc_info.value.message.startswith("Category ")
        assert db_session.query(Transaction).count() == 0
        assert read_balance(checking_account) == Decimal("1000.00")

    def test_aware_date_stored_as_utc(self, make_transaction):
        """Timezone-aware dates should be stored as naive UTC."""
        eastern = timezone(timedelta(hours=-5))
        txn = make_transaction(date=datetime(2024, 3, 1, 10, 0, tzinfo=eastern))
        assert txn.date == datetime(2024, 3, 1, 15, 0)


class TestUpdateTransaction:
    """Test partial updates, versioning and edit history."""

    def test_amount_change_moves_balance_by_delta(
        self, db_session, organization, checking_account, user, make_transaction, read_balance
    ):
        """100 -> 150 with an unchanged 5.00 fee should take 50 more."""
        checking_account.transaction_fee = Decimal("5.00")
        db_session.commit()
        txn = make_transaction("100.00", apply_fee=True)

        updated = _update(db_session, organization, txn, user, amount=Decimal("150.00"), version=1)

        assert updated.version == 2
        assert Decimal(updated.fee_amount) == Decimal("5.00")
        assert read_balance(checking_account) == Decimal("845.00")

    def test_expense_to_transfer(
        self, db_session, organization, checking_account, savings_account, user,
        make_transaction, read_balance
    ):
        """Switching to a transfer should only credit the new destination."""
        checking_account.transaction_fee = Decimal("5.00")
        db_session.commit()
        txn = make_transaction("150.00", apply_fee=True)
        assert read_balance(checking_account) == Decimal("845.00")

        _update(
            db_session, organization, txn, user,
            transaction_type=TransactionType.TRANSFER,
            destination_account_id=savings_account.id,
            version=1,
        )

        assert read_balance(checking_account) == Decimal("845.00")
        assert read_balance(savings_account) == Decimal("650.00")

    def test_transfer_to_expense_requires_clearing_destination(
        self, db_session, organization, savings_account, user, make_transaction
    ):
        """Leaving the old destination in place should be rejected."""
        txn = make_transaction(
            "20.00", transaction_type="TRANSFER", destination_account_id=savings_account.id
        )
        with pytest.raises(ValidationError):
            _update(db_session, organization, txn, user, transaction_type=TransactionType.EXPENSE, version=1)

        updated = _update(
            db_session, organization, txn, user,
            transaction_type=TransactionType.EXPENSE,
            destination_account_id=None,
            version=1,
        )
        assert updated.destination_account_id is None

    def test_version_increments_on_every_update(self, db_session, organization, user, make_transaction):
        """Each successful update should add exactly one to the version."""
        txn = make_transaction()
        for expected in range(1, 5):
            txn = _update(db_session, organization, txn, user, memo=f"edit {expected}", version=expected)
            assert txn.version == expected + 1

    def test_stale_version_conflicts(self, db_session, organization, user, other_user, make_transaction):
        """Second editor holding the old version should get a conflict."""
        txn = make_transaction()
        _update(db_session, organization, txn, other_user, memo="first", version=1)

        with pytest.raises(VersionConflictError) as exc_info:
            _update(db_session, organization, txn, user, memo="second", version=1)

        error = exc_info.value
        assert error.current_version == 2
        assert error.last_modified_by_id == other_user.id
        assert error.last_modified_by_name == "Bo Keeper"
        assert error.current_transaction.memo == "first"

    def test_conflict_leaves_state_untouched(
        self, db_session, organization, checking_account, user, make_transaction, read_balance
    ):
        txn = make_transaction("100.00")
        _update(db_session, organization, txn, user, memo="first", version=1)

        with pytest.raises(VersionConflictError):
            _update(db_session, organization, txn, user, amount=Decimal("999.00"), version=1)

        assert read_balance(checking_account) == Decimal("900.00")
        assert edit_history_service.get_edit_count(db_session, txn.id) == 1

    def test_force_overwrites_stale_version(self, db_session, organization, user, make_transaction):
        """force should skip the version check."""
        txn = make_transaction()
        _update(db_session, organization, txn, user, memo="first", version=1)

        updated = _update(db_session, organization, txn, user, memo="forced", force=True)

        assert updated.memo == "forced"
        assert updated.version == 3

    def test_explicit_policy_overrides_payload(self, db_session, organization, user, make_transaction):
        """A passed policy should win over the payload's version."""
        txn = make_transaction()
        _update(db_session, organization, txn, user, memo="first", version=1)

        updated = transaction_service.update_transaction(
            db_session, organization.id, txn.account_id, txn.id,
            TransactionUpdate(memo="again", version=1), user.id,
            version_policy=ForceOverwrite(),
        )
        assert updated.version == 3

        with pytest.raises(VersionConflictError):
            transaction_service.update_transaction(
                db_session, organization.id, txn.account_id, txn.id,
                TransactionUpdate(memo="stale", force=True), user.id,
                version_policy=CheckVersion(2),
            )

    def test_write_race_detected_at_commit(
        self, db_session, organization, checking_account, user, make_transaction,
        read_balance, monkeypatch
    ):
        """A version bump between read and write should abort the update."""
        txn = make_transaction("100.00")
        real_detect = transaction_service.detect_field_changes

        def racing_detect(existing, incoming, new_splits=None):
            db_session.execute(
                update(Transaction)
                .where(Transaction.id == existing.id)
                .values(version=Transaction.version + 1)
                .execution_options(synchronize_session=False)
            )
            return real_detect(existing, incoming, new_splits)

        monkeypatch.setattr(transaction_service, "detect_field_changes", racing_detect)

        with pytest.raises(VersionConflictError):
            _update(db_session, organization, txn, user, amount=Decimal("300.00"), version=1)

        assert read_balance(checking_account) == Decimal("900.00")

    def test_version_required_without_force(self):
        with pytest.raises(ValueError):
            TransactionUpdate(memo="x")

    def test_null_amount_rejected(self):
        with pytest.raises(ValueError):
            TransactionUpdate(amount=None, version=1)

    def test_no_history_when_nothing_changed(self, db_session, organization, user, make_transaction):
        """Same values should bump the version but write no history."""
        txn = make_transaction("100.00", memo="rent")

        updated = _update(
            db_session, organization, txn, user,
            memo="rent", amount=Decimal("100.0000"), version=1,
        )

        assert updated.version == 2
        assert edit_history_service.get_edit_count(db_session, txn.id) == 0

    def test_history_records_changed_fields(self, db_session, organization, user, make_transaction):
        txn = make_transaction("100.00", memo="rent")

        _update(db_session, organization, txn, user, memo="March rent", amount=Decimal("150"), version=1)

        entry = edit_history_service.get_latest_edit(db_session, txn.id)
        assert entry.edit_type == EditType.UPDATE
        assert entry.edited_by_id == user.id
        assert entry.changes == [
            {"field": "memo", "old_value": "rent", "new_value": "March rent"},
            {"field": "amount", "old_value": "100", "new_value": "150"},
        ]
        assert entry.previous_state["memo"] == "rent"
        assert entry.previous_state["amount"] == "100"

    def test_history_readable_without_editor(self, db_session, organization, user, make_transaction):
        """Removing the editor clears the reference but keeps the history row."""
        column = TransactionEditHistory.__table__.c.edited_by_id
        assert column.nullable
        assert next(iter(column.foreign_keys)).ondelete == "SET NULL"

        txn = make_transaction()
        _update(db_session, organization, txn, user, memo="edited", version=1)
        entry = edit_history_service.get_latest_edit(db_session, txn.id)
        entry.edited_by_id = None
        db_session.commit()
        db_session.refresh(entry)

        response = EditHistoryResponse.model_validate(entry)
        assert response.edited_by_id is None
        assert response.edited_by_name is None

    def test_split_change_classified(self, db_session, organization, user, make_transaction):
        """Changing splits should be recorded as SPLIT_CHANGE."""
        txn = make_transaction("100.00", memo="supplies")

        updated = _update(
            db_session, organization, txn, user,
            splits=[
                {"amount": Decimal("40.00"), "category_name": "Office"},
                {"amount": Decimal("60.00"), "category_name": "Programs"},
            ],
            version=1,
        )

        assert [s.category_name for s in updated.splits] == ["Office", "Programs"]
        entry = edit_history_service.get_latest_edit(db_session, txn.id)
        assert entry.edit_type == EditType.SPLIT_CHANGE
        assert entry.changes[-1]["field"] == "splits"
        assert len(entry.changes[-1]["new_value"]) == 2

    def test_single_split_follows_amount(self, db_session, organization, user, make_transaction):
        """A lone split should take the new amount."""
        txn = make_transaction("100.00")

        updated = _update(db_session, organization, txn, user, amount=Decimal("120.00"), version=1)

        assert len(updated.splits) == 1
        assert Decimal(updated.splits[0].amount) == Decimal("120.00")

    def test_multiple_splits_must_match_new_amount(self, db_session, organization, user, make_transaction):
        txn = make_transaction("100.00", splits=[
            {"amount": Decimal("50.00"), "category_name": "A"},
            {"amount": Decimal("50.00"), "category_name": "B"},
        ])

        with pytest.raises(ValidationError):
            _update(db_session, organization, txn, user, amount=Decimal("120.00"), version=1)

    def test_absent_vendor_kept_null_vendor_cleared(
        self, db_session, organization, user, sample_vendor, make_transaction
    ):
        """Leaving vendor_id out keeps it; sending null clears it."""
        txn = make_transaction(vendor_id=sample_vendor.id)

        kept = _update(db_session, organization, txn, user, memo="note", version=1)
        assert kept.vendor_id == sample_vendor.id
        assert kept.vendor_name == "City Grocers"

        cleared = _update(db_session, organization, txn, user, vendor_id=None, version=2)
        assert cleared.vendor_id is None

        entry = edit_history_service.get_latest_edit(db_session, txn.id)
        assert entry.changes == [
            {"field": "vendor_id", "old_value": sample_vendor.id, "new_value": None},
        ]

    def test_apply_fee_false_removes_fee(
        self, db_session, organization, checking_account, user, make_transaction, read_balance
    ):
        txn = make_transaction("100.00", apply_fee=True)
        assert read_balance(checking_account) == Decimal("897.50")

        updated = _update(db_session, organization, txn, user, apply_fee=False, version=1)

        assert updated.fee_amount is None
        assert read_balance(checking_account) == Decimal("900.00")

    def test_records_last_modifier(self, db_session, organization, user, other_user, make_transaction):
        txn = make_transaction()
        updated = _update(db_session, organization, txn, other_user, memo="x", version=1)
        assert updated.last_modified_by_id == other_user.id
        assert updated.last_modified_by_email == "bookkeeper@example.org"

    def test_transaction_on_other_account_not_found(
        self, db_session, organization, savings_account, user, make_transaction
    ):
        txn = make_transaction()
        with pytest.raises(NotFoundError):
            transaction_service.update_transaction(
                db_session, organization.id, savings_account.id, txn.id,
                TransactionUpdate(memo="x", version=1), user.id,
            )


class TestDeleteTransaction:
    """Test deletion and balance reversal."""

    def test_delete_transfer_restores_both_accounts(
        self, db_session, organization, checking_account, savings_account,
        make_transaction, read_balance
    ):
        """Deleting a 50.00 transfer with a 2.00 fee should give back 52 and take back 50."""
        checking_account.transaction_fee = Decimal("2.00")
        db_session.commit()
        txn = make_transaction(
            "50.00",
            transaction_type="TRANSFER",
            destination_account_id=savings_account.id,
            apply_fee=True,
        )
        assert read_balance(checking_account) == Decimal("948.00")
        assert read_balance(savings_account) == Decimal("550.00")

        transaction_service.delete_transaction(db_session, organization.id, checking_account.id, txn.id)

        assert read_balance(checking_account) == Decimal("1000.00")
        assert read_balance(savings_account) == Decimal("500.00")

    def test_create_then_delete_is_exact(
        self, db_session, organization, checking_account, make_transaction, read_balance
    ):
        txn = make_transaction("33.33", apply_fee=True)
        transaction_service.delete_transaction(db_session, organization.id, checking_account.id, txn.id)
        assert read_balance(checking_account) == Decimal("1000.00")

    def test_smallest_unit_cycles_are_exact(
        self, db_session, organization, checking_account, make_transaction, read_balance
    ):
        """Twenty create/delete cycles of a 0.0001 expense should leave the balance untouched."""
        for _ in range(20):
            txn = make_transaction("0.0001")
            transaction_service.delete_transaction(
                db_session, organization.id, checking_account.id, txn.id
            )
        assert read_balance(checking_account) == Decimal("1000.0000")

    def test_amount_beyond_stored_precision_rejected(self):
        """Amounts with more than four decimal places never reach the ledger."""
        with pytest.raises(ValueError):
            TransactionCreate(
                amount=Decimal("0.00009"),
                splits=[{"amount": Decimal("0.00009"), "category_name": "General"}],
            )
        with pytest.raises(ValueError):
            TransactionUpdate(amount=Decimal("1.00001"), force=True)

    def test_delete_removes_history(
        self, db_session, organization, checking_account, user, make_transaction
    ):
        """Splits and history should go with the transaction."""
        txn = make_transaction()
        _update(db_session, organization, txn, user, memo="edited", version=1)

        transaction_service.delete_transaction(db_session, organization.id, checking_account.id, txn.id)

        assert db_session.query(Transaction).count() == 0
        assert db_session.query(TransactionEditHistory).count() == 0

    def test_delete_missing_raises(self, db_session, organization, checking_account):
        with pytest.raises(NotFoundError):
            transaction_service.delete_transaction(
                db_session, organization.id, checking_account.id, str(uuid.uuid4())
            )


class TestListTransactions:
    """Test listing and filters."""

    def test_newest_first_with_total(self, db_session, organization, checking_account, make_transaction):
        make_transaction("10.00", date=datetime(2024, 1, 1))
        make_transaction("20.00", date=datetime(2024, 2, 1))
        make_transaction("30.00", date=datetime(2024, 3, 1))

        items, total = transaction_service.list_transactions(
            db_session, organization.id, checking_account.id, TransactionFilters(limit=2)
        )

        assert total == 3
        assert [Decimal(t.amount) for t in items] == [Decimal("30.00"), Decimal("20.00")]

    def test_filter_by_date_and_type(self, db_session, organization, checking_account, make_transaction):
        make_transaction("10.00", date=datetime(2024, 1, 1))
        make_transaction("20.00", transaction_type="INCOME", date=datetime(2024, 2, 1))

        items, total = transaction_service.list_transactions(
            db_session, organization.id, checking_account.id,
            TransactionFilters(start_date=datetime(2024, 1, 15), transaction_type=TransactionType.INCOME),
        )
        assert total == 1
        assert items[0].transaction_type == TransactionType.INCOME

    def test_filter_by_category_substring(self, db_session, organization, checking_account, make_transaction):
        make_transaction(splits=[{"amount": Decimal("100.00"), "category_name": "Food Programs"}])
        make_transaction(splits=[{"amount": Decimal("100.00"), "category_name": "Rent"}])

        items, total = transaction_service.list_transactions(
            db_session, organization.id, checking_account.id, TransactionFilters(category="program"),
        )
        assert total == 1
        assert items[0].splits[0].category_name == "Food Programs"

    def test_limit_capped(self):
        with pytest.raises(ValueError):
            TransactionFilters(limit=101)
