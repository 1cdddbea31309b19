"""
Transaction mutation engine.

Creates, updates and deletes transactions together with their splits,
keeps account balances in step through ``ledger_service`` and records
field-level edit history. Each mutation is a single unit of work: the
transaction row, its splits, history rows and balance deltas commit
together or not at all.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload, selectinload

from treasury.config import settings
from treasury.exceptions import NotFoundError, ValidationError, VersionConflictError
from treasury.models.account import Account
from treasury.models.category import Category
from treasury.models.history import EditType, TransactionEditHistory
from treasury.models.transaction import (
    Transaction,
    TransactionSplit,
    TransactionStatus,
    TransactionType,
)
from treasury.models.types import quantize_money
from treasury.schemas.transaction import (
    CheckVersion,
    TransactionCreate,
    TransactionFilters,
    TransactionResponse,
    TransactionSplitInput,
    TransactionUpdate,
    VersionPolicy,
)
from treasury.services import ledger_service
from treasury.services.account_service import get_account_or_404
from treasury.services.category_service import resolve_category
from treasury.services.vendor_service import validate_vendor_ownership

logger = logging.getLogger(__name__)

SPLIT_TOTAL_MESSAGE = "Split amounts must equal the transaction amount"

# Fields an update can change, in the order changes are reported
TRACKED_FIELDS = (
    "memo",
    "amount",
    "transaction_type",
    "date",
    "vendor_id",
    "destination_account_id",
)


class _ConcurrentEdit(Exception):
    """Version moved between the read and the conditional write."""


@contextmanager
def _unit_of_work(db: Session):
    """Commit on success, roll back everything on any error."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def _with_details(query):
    return query.options(
        selectinload(Transaction.splits).joinedload(TransactionSplit.category),
        joinedload(Transaction.vendor),
        joinedload(Transaction.created_by),
        joinedload(Transaction.last_modified_by),
    )


def _load_transaction(db: Session, account_id: str, transaction_id: str) -> Optional[Transaction]:
    return _with_details(db.query(Transaction)).filter(
        Transaction.id == transaction_id,
        Transaction.account_id == account_id,
    ).first()


def _normalize_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Store naive UTC, matching ``datetime.utcnow`` column defaults."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return format(Decimal(value).normalize(), "f")


def _json_value(field: str, value: Any) -> Any:
    if value is None:
        return None
    if field in ("amount", "fee_amount"):
        return _decimal_str(value)
    if field == "date":
        return value.isoformat()
    if field == "transaction_type":
        return TransactionType(value).value
    return value


def _split_list(splits: Iterable[Tuple[Decimal, str]]) -> List[Dict[str, Any]]:
    return [{"amount": _decimal_str(amount), "category_id": category_id} for amount, category_id in splits]


def check_split_total(amount: Decimal, splits: Iterable[Any]) -> None:
    """Reject splits whose total is off from ``amount`` by the tolerance or more."""
    total = sum((Decimal(split.amount) for split in splits), Decimal("0"))
    if abs(total - Decimal(amount)) >= settings.split_tolerance:
        raise ValidationError(SPLIT_TOTAL_MESSAGE, field="splits")


def _validate_vendor(db: Session, organization_id: str, vendor_id: Optional[str]) -> None:
    if vendor_id and not validate_vendor_ownership(db, vendor_id, organization_id):
        raise NotFoundError("Vendor", vendor_id, "Vendor not found or inactive")


def _validate_destination(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_type: TransactionType,
    destination_account_id: Optional[str],
) -> None:
    """Transfers need a different, same-organization destination; others none."""
    if transaction_type != TransactionType.TRANSFER:
        if destination_account_id:
            raise ValidationError(
                "Destination account should only be provided for transfer transactions",
                field="destination_account_id",
            )
        return

    if not destination_account_id:
        raise ValidationError(
            "Destination account is required for transfers",
            field="destination_account_id",
        )
    if destination_account_id == account_id:
        raise ValidationError(
            "Source and destination accounts must be different",
            field="destination_account_id",
        )
    destination = db.query(Account.id).filter(
        Account.id == destination_account_id,
        Account.organization_id == organization_id,
    ).first()
    if destination is None:
        raise NotFoundError("Account", destination_account_id, "Destination account not found")


def _resolve_splits(
    db: Session,
    organization_id: str,
    splits: List[TransactionSplitInput],
) -> List[Tuple[Decimal, str]]:
    return [
        (
            split.amount,
            resolve_category(
                db,
                organization_id,
                category_id=split.category_id,
                category_name=split.category_name,
            ),
        )
        for split in splits
    ]


def _build_splits(resolved: List[Tuple[Decimal, str]]) -> List[TransactionSplit]:
    return [
        TransactionSplit(amount=amount, category_id=category_id, position=index)
        for index, (amount, category_id) in enumerate(resolved)
    ]


def snapshot_transaction(transaction: Transaction) -> Dict[str, Any]:
    """JSON-safe copy of the editable state, stored as ``previous_state``."""
    return {
        "memo": transaction.memo,
        "amount": _decimal_str(transaction.amount),
        "transaction_type": _json_value("transaction_type", transaction.transaction_type),
        "date": _json_value("date", transaction.date),
        "fee_amount": _decimal_str(transaction.fee_amount),
        "vendor_id": transaction.vendor_id,
        "destination_account_id": transaction.destination_account_id,
        "splits": _split_list((split.amount, split.category_id) for split in transaction.splits),
    }


def _splits_differ(
    old_splits: List[Tuple[Decimal, str]],
    new_splits: List[Tuple[Decimal, str]],
) -> bool:
    if len(old_splits) != len(new_splits):
        return True
    return any(
        Decimal(old_amount) != Decimal(new_amount) or old_category != new_category
        for (old_amount, old_category), (new_amount, new_category) in zip(old_splits, new_splits)
    )


def detect_field_changes(
    existing: Transaction,
    incoming: Dict[str, Any],
    new_splits: Optional[List[Tuple[Decimal, str]]] = None,
) -> List[Dict[str, Any]]:
    """
    Compare stored values with the incoming ones by value.

    ``incoming`` holds only the fields present in the update payload.
    Returns ``{field, old_value, new_value}`` entries for the fields that
    actually differ, in ``TRACKED_FIELDS`` order with splits last.
    """
    changes = []
    for field in TRACKED_FIELDS:
        if field not in incoming:
            continue
        old_value = getattr(existing, field)
        new_value = incoming[field]
        if field == "amount":
            differs = Decimal(old_value) != Decimal(new_value)
        else:
            differs = old_value != new_value
        if differs:
            changes.append({
                "field": field,
                "old_value": _json_value(field, old_value),
                "new_value": _json_value(field, new_value),
            })

    if new_splits is not None:
        old_splits = [(split.amount, split.category_id) for split in existing.splits]
        if _splits_differ(old_splits, new_splits):
            changes.append({
                "field": "splits",
                "old_value": _split_list(old_splits),
                "new_value": _split_list(new_splits),
            })

    return changes


def _conflict_error(transaction: Transaction) -> VersionConflictError:
    return VersionConflictError(
        current_version=transaction.version,
        last_modified_by_id=transaction.last_modified_by_id,
        last_modified_by_name=transaction.last_modified_by_name,
        last_modified_by_email=transaction.last_modified_by_email,
        last_modified_at=transaction.updated_at,
        current_transaction=TransactionResponse.model_validate(transaction),
    )


def get_transaction(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_id: str,
) -> Transaction:
    """Single transaction with splits, vendor and auditors loaded."""
    get_account_or_404(db, organization_id, account_id)
    transaction = _load_transaction(db, account_id, transaction_id)
    if not transaction:
        raise NotFoundError("Transaction", transaction_id)
    return transaction


def list_transactions(
    db: Session,
    organization_id: str,
    account_id: str,
    filters: Optional[TransactionFilters] = None,
) -> Tuple[List[Transaction], int]:
    """Transactions of an account, newest first, with the unpaged total."""
    get_account_or_404(db, organization_id, account_id)
    filters = filters or TransactionFilters()

    query = db.query(Transaction).filter(Transaction.account_id == account_id)

    if filters.start_date:
        query = query.filter(Transaction.date >= _normalize_datetime(filters.start_date))
    if filters.end_date:
        query = query.filter(Transaction.date <= _normalize_datetime(filters.end_date))
    if filters.transaction_type:
        query = query.filter(Transaction.transaction_type == filters.transaction_type)
    if filters.vendor_id:
        query = query.filter(Transaction.vendor_id == filters.vendor_id)
    if filters.category:
        query = query.filter(
            Transaction.splits.any(
                TransactionSplit.category.has(Category.name.ilike(f"%{filters.category}%"))
            )
        )
    if filters.status:
        query = query.filter(Transaction.status == filters.status)
    elif filters.statuses:
        query = query.filter(Transaction.status.in_(filters.statuses))
    if filters.cleared_after:
        query = query.filter(Transaction.cleared_at >= _normalize_datetime(filters.cleared_after))
    if filters.cleared_before:
        query = query.filter(Transaction.cleared_at <= _normalize_datetime(filters.cleared_before))
    if filters.reconciled_after:
        query = query.filter(Transaction.reconciled_at >= _normalize_datetime(filters.reconciled_after))
    if filters.reconciled_before:
        query = query.filter(Transaction.reconciled_at <= _normalize_datetime(filters.reconciled_before))

    total = query.count()
    items = (
        _with_details(query)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        .offset(filters.offset)
        .limit(filters.limit)
        .all()
    )
    return items, total


def create_transaction(
    db: Session,
    organization_id: str,
    account_id: str,
    data: TransactionCreate,
    user_id: Optional[str] = None,
) -> Transaction:
    """
    Create a transaction with its splits and apply its ledger effect.

    Raises:
        NotFoundError: account, vendor, destination account or category missing
        ValidationError: destination rules or split total violated
    """
    account = get_account_or_404(db, organization_id, account_id)
    _validate_vendor(db, organization_id, data.vendor_id)
    _validate_destination(
        db, organization_id, account_id, data.transaction_type, data.destination_account_id
    )
    check_split_total(data.amount, data.splits)

    # Snapshot of the account fee; later fee changes do not touch this row
    fee_amount = account.transaction_fee if data.apply_fee and account.transaction_fee else None

    logger.info(
        "Creating transaction",
        extra={
            "organization_id": organization_id,
            "account_id": account_id,
            "transaction_type": data.transaction_type.value,
            "amount": str(data.amount),
            "split_count": len(data.splits),
        },
    )

    with _unit_of_work(db):
        transaction = Transaction(
            account_id=account_id,
            destination_account_id=data.destination_account_id,
            vendor_id=data.vendor_id,
            memo=data.memo,
            amount=data.amount,
            transaction_type=data.transaction_type,
            date=_normalize_datetime(data.date) or datetime.utcnow(),
            fee_amount=fee_amount,
            status=TransactionStatus.UNCLEARED,
            version=1,
            created_by_id=user_id,
        )
        transaction.splits = _build_splits(_resolve_splits(db, organization_id, data.splits))
        db.add(transaction)
        db.flush()
        # Apply what was stored, not the request values
        db.refresh(transaction, ["amount", "fee_amount"])

        ledger_service.apply_effect(db, ledger_service.effect_of_transaction(transaction))
        transaction_id = transaction.id

    logger.info(
        "Transaction created",
        extra={"transaction_id": transaction_id, "account_id": account_id},
    )
    return _load_transaction(db, account_id, transaction_id)


def update_transaction(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_id: str,
    data: TransactionUpdate,
    user_id: str,
    version_policy: Optional[VersionPolicy] = None,
) -> Transaction:
    """
    Apply a partial update, bump the version and move balances by the delta.

    ``version_policy`` defaults to the one carried by ``data``. With
    ``CheckVersion`` a stale version raises ``VersionConflictError``;
    ``ForceOverwrite`` skips the check. The version is incremented on every
    successful call, even when no field changed; edit history is written
    only when something did.

    Raises:
        NotFoundError: account, transaction, vendor, destination or category missing
        ValidationError: destination rules or split total violated
        VersionConflictError: stored version differs from the expected one
    """
    if version_policy is None:
        version_policy = data.version_policy()

    account = get_account_or_404(db, organization_id, account_id)
    existing = _load_transaction(db, account_id, transaction_id)
    if not existing:
        raise NotFoundError("Transaction", transaction_id)

    check_version = isinstance(version_policy, CheckVersion)
    if check_version and existing.version != version_policy.expected:
        logger.warning(
            "Version conflict detected",
            extra={
                "transaction_id": transaction_id,
                "expected_version": version_policy.expected,
                "current_version": existing.version,
                "user_id": user_id,
            },
        )
        raise _conflict_error(existing)

    provided = data.model_fields_set - {"version", "force"}

    if "vendor_id" in provided:
        _validate_vendor(db, organization_id, data.vendor_id)

    old_effect = ledger_service.effect_of_transaction(existing)
    read_version = existing.version

    new_type = data.transaction_type if "transaction_type" in provided else existing.transaction_type
    new_amount = data.amount if "amount" in provided else Decimal(existing.amount)
    new_destination = (
        data.destination_account_id
        if "destination_account_id" in provided
        else existing.destination_account_id
    )

    new_fee = existing.fee_amount
    if "apply_fee" in provided and data.apply_fee is not None:
        if data.apply_fee and account.transaction_fee:
            new_fee = account.transaction_fee
        elif not data.apply_fee:
            new_fee = None

    _validate_destination(db, organization_id, account_id, new_type, new_destination)

    amount_changed = Decimal(existing.amount) != Decimal(new_amount)
    carry_single_split = False
    if "splits" in provided:
        check_split_total(new_amount, data.splits)
    elif amount_changed:
        if len(existing.splits) == 1:
            # A lone split follows the amount
            carry_single_split = True
        else:
            check_split_total(new_amount, existing.splits)

    incoming = {field: getattr(data, field) for field in TRACKED_FIELDS if field in provided}
    if "date" in incoming:
        incoming["date"] = _normalize_datetime(incoming["date"])

    try:
        with _unit_of_work(db):
            new_splits = None
            if "splits" in provided:
                new_splits = _resolve_splits(db, organization_id, data.splits)

            changes = detect_field_changes(existing, incoming, new_splits)
            previous_state = snapshot_transaction(existing)
            edit_type = (
                EditType.SPLIT_CHANGE
                if any(change["field"] == "splits" for change in changes)
                else EditType.UPDATE
            )

            logger.info(
                "Updating transaction",
                extra={
                    "transaction_id": transaction_id,
                    "user_id": user_id,
                    "force": not check_version,
                    "fields_changed": len(changes),
                    "edit_type": edit_type.value,
                },
            )

            for field, value in incoming.items():
                setattr(existing, field, value)
            existing.fee_amount = new_fee
            existing.last_modified_by_id = user_id
            if new_splits is not None:
                existing.splits = _build_splits(new_splits)
            elif carry_single_split:
                existing.splits[0].amount = new_amount
            db.flush()

            # Conditional bump: a concurrent writer that committed after our
            # read makes the WHERE miss
            bump = update(Transaction).where(Transaction.id == transaction_id)
            if check_version:
                bump = bump.where(Transaction.version == read_version)
            result = db.execute(
                bump.values(version=Transaction.version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise _ConcurrentEdit()

            if changes:
                db.add(TransactionEditHistory(
                    transaction_id=transaction_id,
                    edited_by_id=user_id,
                    edit_type=edit_type,
                    changes=changes,
                    previous_state=previous_state,
                ))

            new_effect = ledger_service.effect_of(
                account_id=account_id,
                transaction_type=new_type,
                amount=quantize_money(new_amount),
                fee_amount=quantize_money(new_fee),
                destination_account_id=new_destination,
            )
            ledger_service.apply_effect(db, old_effect.delta_to(new_effect))
    except _ConcurrentEdit:
        current = _load_transaction(db, account_id, transaction_id)
        if current is None:
            raise NotFoundError("Transaction", transaction_id)
        raise _conflict_error(current)

    db.expire_all()
    updated = _load_transaction(db, account_id, transaction_id)
    logger.info(
        "Transaction updated",
        extra={
            "transaction_id": transaction_id,
            "new_version": updated.version,
            "fields_changed": len(changes),
        },
    )
    return updated


def delete_transaction(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_id: str,
) -> None:
    """
    Delete a transaction and reverse its ledger effect.

    Callers are responsible for refusing reconciled transactions
    (``status_service.validate_not_reconciled``).
    """
    get_account_or_404(db, organization_id, account_id)
    existing = _load_transaction(db, account_id, transaction_id)
    if not existing:
        raise NotFoundError("Transaction", transaction_id)

    reversal = ledger_service.effect_of_transaction(existing).reversed()

    with _unit_of_work(db):
        db.delete(existing)
        db.flush()
        ledger_service.apply_effect(db, reversal)

    logger.info(
        "Transaction deleted",
        extra={"transaction_id": transaction_id, "account_id": account_id},
    )
