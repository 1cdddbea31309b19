"""
Transaction status and reconciliation endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from treasury.dependencies import get_current_user_id, get_db
from treasury.schemas.status import (
    BulkStatusChangeRequest,
    BulkStatusChangeResult,
    ReconciliationSummary,
    StatusChangeRequest,
    StatusHistoryResponse,
)
from treasury.services import status_service

router = APIRouter(prefix="/accounts/{account_id}/transactions", tags=["transaction-status"])


@router.post("/status/bulk", response_model=BulkStatusChangeResult)
def bulk_change_status(
    organization_id: str,
    account_id: str,
    request: BulkStatusChangeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Change the status of several transactions.

    Answers 200 when every item succeeded and 207 when any failed.
    """
    result = status_service.bulk_change_transaction_status(
        db,
        organization_id,
        account_id,
        user_id,
        request.transaction_ids,
        request.status,
        request.notes,
    )
    status_code = 207 if result.failed else 200
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.get("/status/summary", response_model=ReconciliationSummary)
def reconciliation_summary(
    organization_id: str,
    account_id: str,
    db: Session = Depends(get_db)
):
    """Count and total per status for the account"""
    return status_service.get_reconciliation_summary(db, organization_id, account_id)


@router.patch("/{transaction_id}/status", response_model=StatusHistoryResponse)
def change_status(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    request: StatusChangeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    return status_service.change_transaction_status(
        db,
        organization_id,
        account_id,
        transaction_id,
        user_id,
        request.status,
        request.notes,
    )


@router.get("/{transaction_id}/status/history", response_model=list[StatusHistoryResponse])
def status_history(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Status transitions, newest first"""
    return status_service.get_transaction_status_history(
        db, organization_id, account_id, transaction_id
    )
