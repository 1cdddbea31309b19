"""
Transaction status and reconciliation schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from treasury.config import settings
from treasury.models.transaction import TransactionStatus


class StatusChangeRequest(BaseModel):
    status: TransactionStatus
    notes: Optional[str] = Field(None, max_length=500)


class BulkStatusChangeRequest(BaseModel):
    transaction_ids: list[str] = Field(..., min_length=1, max_length=settings.max_bulk_status_items)
    status: TransactionStatus
    notes: Optional[str] = Field(None, max_length=500)


class StatusHistoryResponse(BaseModel):
    id: str
    transaction_id: str
    from_status: Optional[TransactionStatus]
    to_status: TransactionStatus
    changed_by_id: str
    changed_by_name: Optional[str]
    changed_by_email: Optional[str]
    changed_at: datetime
    notes: Optional[str]

    class Config:
        from_attributes = True


class BulkStatusSuccess(BaseModel):
    transaction_id: str
    status: TransactionStatus


class BulkStatusFailure(BaseModel):
    transaction_id: str
    error: str


class BulkStatusChangeResult(BaseModel):
    successful: list[BulkStatusSuccess] = []
    failed: list[BulkStatusFailure] = []


class StatusTotals(BaseModel):
    count: int = 0
    total: Decimal = Decimal("0")


class ReconciliationSummary(BaseModel):
    account_id: str
    account_name: str
    uncleared: StatusTotals
    cleared: StatusTotals
    reconciled: StatusTotals
    overall: StatusTotals
