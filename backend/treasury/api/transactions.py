"""
Transaction API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from treasury.dependencies import (
    get_current_user_id,
    get_db,
    prevent_reconciled_modification,
)
from treasury.models.transaction import TransactionStatus, TransactionType
from treasury.schemas.transaction import (
    EditHistoryResponse,
    TransactionCreate,
    TransactionFilters,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdate,
)
from treasury.services import edit_history_service, transaction_service

router = APIRouter(prefix="/accounts/{account_id}/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    organization_id: str,
    account_id: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    transaction_type: Optional[TransactionType] = None,
    vendor_id: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[TransactionStatus] = None,
    statuses: Optional[list[TransactionStatus]] = Query(None),
    cleared_after: Optional[datetime] = None,
    cleared_before: Optional[datetime] = None,
    reconciled_after: Optional[datetime] = None,
    reconciled_before: Optional[datetime] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """List transactions with filtering and pagination"""
    filters = TransactionFilters(
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        vendor_id=vendor_id,
        category=category,
        status=status,
        statuses=statuses,
        cleared_after=cleared_after,
        cleared_before=cleared_before,
        reconciled_after=reconciled_after,
        reconciled_before=reconciled_before,
        limit=limit,
        offset=offset,
    )
    transactions, total = transaction_service.list_transactions(
        db, organization_id, account_id, filters
    )

    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        limit=limit,
        offset=offset
    )


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(
    organization_id: str,
    account_id: str,
    transaction: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a transaction and apply it to the account balance"""
    created = transaction_service.create_transaction(
        db, organization_id, account_id, transaction, user_id
    )
    return TransactionResponse.model_validate(created)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Get a single transaction"""
    transaction = transaction_service.get_transaction(
        db, organization_id, account_id, transaction_id
    )
    return TransactionResponse.model_validate(transaction)


@router.patch(
    "/{transaction_id}",
    response_model=TransactionResponse,
    dependencies=[Depends(prevent_reconciled_modification)],
)
def update_transaction(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Update a transaction.

    The body carries the version the client last read; a stale version is
    answered with 409 and the current state. ``force`` skips the check.
    """
    updated = transaction_service.update_transaction(
        db, organization_id, account_id, transaction_id, update, user_id
    )
    return TransactionResponse.model_validate(updated)


@router.delete(
    "/{transaction_id}",
    status_code=204,
    dependencies=[Depends(prevent_reconciled_modification)],
)
def delete_transaction(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete a transaction and reverse its balance effect"""
    transaction_service.delete_transaction(db, organization_id, account_id, transaction_id)
    return None


@router.get("/{transaction_id}/history", response_model=list[EditHistoryResponse])
def get_edit_history(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Field-level edit history, most recent first"""
    return edit_history_service.get_transaction_edit_history(
        db, organization_id, account_id, transaction_id
    )
