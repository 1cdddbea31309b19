"""Service for reading transaction edit history."""

from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from treasury.exceptions import NotFoundError
from treasury.models.history import TransactionEditHistory
from treasury.models.transaction import Transaction
from treasury.services.account_service import get_account_or_404


def get_transaction_edit_history(
    db: Session,
    organization_id: str,
    account_id: str,
    transaction_id: str,
) -> List[TransactionEditHistory]:
    """Edit history of a transaction, most recent first."""
    get_account_or_404(db, organization_id, account_id)
    exists = db.query(Transaction.id).filter(
        Transaction.id == transaction_id,
        Transaction.account_id == account_id,
    ).first()
    if exists is None:
        raise NotFoundError("Transaction", transaction_id)

    return db.query(TransactionEditHistory).options(
        joinedload(TransactionEditHistory.edited_by)
    ).filter(
        TransactionEditHistory.transaction_id == transaction_id
    ).order_by(TransactionEditHistory.edited_at.desc()).all()


def get_latest_edit(db: Session, transaction_id: str) -> Optional[TransactionEditHistory]:
    return db.query(TransactionEditHistory).filter(
        TransactionEditHistory.transaction_id == transaction_id
    ).order_by(TransactionEditHistory.edited_at.desc()).first()


def get_edit_count(db: Session, transaction_id: str) -> int:
    return db.query(TransactionEditHistory).filter(
        TransactionEditHistory.transaction_id == transaction_id
    ).count()
