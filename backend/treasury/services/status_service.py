"""
Transaction status state machine and reconciliation summary.

UNCLEARED -> CLEARED -> RECONCILED, with CLEARED -> UNCLEARED allowed and
RECONCILED terminal. Status changes do not touch the transaction version;
each one appends a ``TransactionStatusHistory`` row.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy import func, type_coerce
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from treasury.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    RECONCILED_MESSAGE,
    StatusTransitionReason,
    already_in_status,
    invalid_transition,
)
from treasury.models.account import Account
from treasury.models.history import TransactionStatusHistory
from treasury.models.transaction import Transaction, TransactionStatus
from treasury.models.types import Money
from treasury.schemas.status import (
    BulkStatusChangeResult,
    BulkStatusFailure,
    BulkStatusSuccess,
    ReconciliationSummary,
    StatusTotals,
)
from treasury.services.account_service import get_account_or_404

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: Dict[TransactionStatus, FrozenSet[TransactionStatus]] = {
    TransactionStatus.UNCLEARED: frozenset({TransactionStatus.CLEARED}),
    TransactionStatus.CLEARED: frozenset({TransactionStatus.UNCLEARED, TransactionStatus.RECONCILED}),
    TransactionStatus.RECONCILED: frozenset(),
}


def is_valid_status_transition(current: TransactionStatus, new: TransactionStatus) -> bool:
    if current == new:
        return False
    return new in STATUS_TRANSITIONS[current]


def check_transition(current: TransactionStatus, new: TransactionStatus) -> Optional[InvalidStatusTransitionError]:
    """Return the error for a refused transition, or None when allowed."""
    if is_valid_status_transition(current, new):
        return None
    if current == new:
        return InvalidStatusTransitionError(
            already_in_status(new.value), StatusTransitionReason.ALREADY_IN_STATUS
        )
    if current == TransactionStatus.RECONCILED:
        return InvalidStatusTransitionError(
            RECONCILED_MESSAGE, StatusTransitionReason.RECONCILED_TERMINAL
        )
    return InvalidStatusTransitionError(
        invalid_transition(current.value, new.value), StatusTransitionReason.INVALID_TRANSITION
    )


def apply_status(transaction: Transaction, new_status: TransactionStatus, now: datetime) -> None:
    """Set status and its timestamps on the row (no flush)."""
    transaction.status = new_status
    if new_status == TransactionStatus.CLEARED:
        transaction.cleared_at = now
    elif new_status == TransactionStatus.RECONCILED:
        transaction.reconciled_at = now
        if transaction.cleared_at is None:
            transaction.cleared_at = now
    elif new_status == TransactionStatus.UNCLEARED:
        transaction.cleared_at = None
        transaction.reconciled_at = None


def _get_transaction_or_404(db: Session, account_id: str, transaction_id: str) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.account_id == account_id,
    ).first()
    if not transaction:
        raise NotFoundError("Transaction", transaction_id)
    return transaction


def change_transaction_status(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_id: str,
    user_id: str,
    status: TransactionStatus,
    notes: Optional[str] = None,
) -> TransactionStatusHistory:
    """
    Move one transaction to ``status`` and record the transition.

    Not guarded by the version: two concurrent callers that both read
    CLEARED can both reconcile, and the last commit wins.
    """
    get_account_or_404(db, organization_id, account_id)
    transaction = _get_transaction_or_404(db, account_id, transaction_id)

    error = check_transition(transaction.status, status)
    if error:
        raise error

    from_status = transaction.status
    try:
        apply_status(transaction, status, datetime.utcnow())
        history = TransactionStatusHistory(
            transaction_id=transaction_id,
            from_status=from_status,
            to_status=status,
            changed_by_id=user_id,
            notes=notes,
        )
        db.add(history)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Transaction status changed",
        extra={
            "transaction_id": transaction_id,
            "from_status": from_status.value,
            "to_status": status.value,
            "user_id": user_id,
        },
    )
    return db.query(TransactionStatusHistory).options(
        joinedload(TransactionStatusHistory.changed_by)
    ).filter(TransactionStatusHistory.id == history.id).one()


def bulk_change_transaction_status(
    db: Session,
    organization_id: str,
    account_id: str,
    user_id: str,
    transaction_ids: List[str],
    status: TransactionStatus,
    notes: Optional[str] = None,
) -> BulkStatusChangeResult:
    """
    Validate each transaction on its own, then write all valid ones at once.

    Refused items land in ``failed`` with their reason. The valid ones share
    one timestamp and commit together; if that write fails, every one of
    them is reported failed with the database error instead.
    """
    get_account_or_404(db, organization_id, account_id)

    transactions = db.query(Transaction).filter(
        Transaction.id.in_(transaction_ids),
        Transaction.account_id == account_id,
    ).all()
    by_id = {transaction.id: transaction for transaction in transactions}

    result = BulkStatusChangeResult()
    valid: List[Transaction] = []
    seen = set()

    for transaction_id in transaction_ids:
        if transaction_id in seen:
            continue
        seen.add(transaction_id)

        transaction = by_id.get(transaction_id)
        if transaction is None:
            result.failed.append(BulkStatusFailure(transaction_id=transaction_id, error="Transaction not found"))
            continue

        error = check_transition(transaction.status, status)
        if error:
            result.failed.append(BulkStatusFailure(transaction_id=transaction_id, error=error.message))
            continue

        valid.append(transaction)

    if not valid:
        return result

    valid_ids = [transaction.id for transaction in valid]
    now = datetime.utcnow()
    try:
        for transaction in valid:
            from_status = transaction.status
            apply_status(transaction, status, now)
            db.add(TransactionStatusHistory(
                transaction_id=transaction.id,
                from_status=from_status,
                to_status=status,
                changed_by_id=user_id,
                changed_at=now,
                notes=notes,
            ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Bulk status change failed",
            extra={"account_id": account_id, "count": len(valid), "error": str(exc)},
        )
        message = str(exc) or "Batch update failed"
        for transaction_id in valid_ids:
            result.failed.append(BulkStatusFailure(transaction_id=transaction_id, error=message))
        return result

    for transaction_id in valid_ids:
        result.successful.append(BulkStatusSuccess(transaction_id=transaction_id, status=status))

    logger.info(
        "Bulk status change completed",
        extra={
            "account_id": account_id,
            "to_status": status.value,
            "successful": len(result.successful),
            "failed": len(result.failed),
        },
    )
    return result


def get_transaction_status_history(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_id: str,
) -> List[TransactionStatusHistory]:
    """Status history of a transaction, newest first."""
    get_account_or_404(db, organization_id, account_id)
    _get_transaction_or_404(db, account_id, transaction_id)

    return db.query(TransactionStatusHistory).options(
        joinedload(TransactionStatusHistory.changed_by)
    ).filter(
        TransactionStatusHistory.transaction_id == transaction_id
    ).order_by(TransactionStatusHistory.changed_at.desc()).all()


def get_reconciliation_summary(
    db: Session,
    organization_id: str,
    account_id: str,
) -> ReconciliationSummary:
    """Count and amount total per status, plus the overall totals."""
    account = get_account_or_404(db, organization_id, account_id)

    rows = db.query(
        Transaction.status,
        func.count(Transaction.id),
        type_coerce(func.sum(Transaction.amount), Money),
    ).filter(
        Transaction.account_id == account_id
    ).group_by(Transaction.status).all()

    totals = {status: StatusTotals() for status in TransactionStatus}
    overall = StatusTotals()
    for status, count, amount_sum in rows:
        amount_total = amount_sum if amount_sum is not None else Decimal("0")
        totals[status] = StatusTotals(count=count, total=amount_total)
        overall = StatusTotals(count=overall.count + count, total=overall.total + amount_total)

    return ReconciliationSummary(
        account_id=account.id,
        account_name=account.name,
        uncleared=totals[TransactionStatus.UNCLEARED],
        cleared=totals[TransactionStatus.CLEARED],
        reconciled=totals[TransactionStatus.RECONCILED],
        overall=overall,
    )


def validate_not_reconciled(
    db: Session,
    transaction_id: str,
    organization_id: Optional[str] = None,
    account_id: Optional[str] = None,
) -> None:
    """
    Refuse changes to a reconciled transaction.

    With ``organization_id`` and ``account_id`` the lookup is limited to that
    account, so another tenant's transaction looks missing. Missing
    transactions pass; the guarded operation reports NotFound.
    """
    query = db.query(Transaction.status).filter(Transaction.id == transaction_id)
    if account_id is not None:
        query = query.filter(Transaction.account_id == account_id)
    if organization_id is not None:
        query = query.join(Account, Transaction.account_id == Account.id).filter(
            Account.organization_id == organization_id
        )
    status = query.scalar()
    if status == TransactionStatus.RECONCILED:
        raise InvalidStatusTransitionError(
            RECONCILED_MESSAGE, StatusTransitionReason.RECONCILED_TERMINAL
        )
