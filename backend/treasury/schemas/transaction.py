"""
Transaction schemas.
"""

from dataclasses import dataclass
from pydantic import BaseModel, Field, model_validator
from typing import Any, Optional, Union
from datetime import datetime
from decimal import Decimal

from treasury.models.history import EditType
from treasury.models.transaction import TransactionStatus, TransactionType


@dataclass(frozen=True)
class CheckVersion:
    """Reject the update unless the stored version equals ``expected``."""
    expected: int


@dataclass(frozen=True)
class ForceOverwrite:
    """Skip the version check (last write wins)."""


VersionPolicy = Union[CheckVersion, ForceOverwrite]


class TransactionSplitInput(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=4)
    category_name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[str] = None

    @model_validator(mode="after")
    def require_category(self):
        if not self.category_id and not self.category_name:
            raise ValueError("Either category_id or category_name is required")
        return self


class TransactionCreate(BaseModel):
    memo: Optional[str] = Field(None, max_length=1000)
    amount: Decimal = Field(..., gt=0, decimal_places=4)
    transaction_type: TransactionType = TransactionType.EXPENSE
    date: Optional[datetime] = None
    apply_fee: bool = False
    vendor_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    splits: list[TransactionSplitInput] = Field(..., min_length=1)


class TransactionUpdate(BaseModel):
    """Partial update.

    A field left out of the payload is unchanged; a field sent as ``null``
    is cleared. Use ``model_fields_set`` to tell the two apart.
    """
    memo: Optional[str] = Field(None, max_length=1000)
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=4)
    transaction_type: Optional[TransactionType] = None
    date: Optional[datetime] = None
    apply_fee: Optional[bool] = None
    vendor_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    splits: Optional[list[TransactionSplitInput]] = Field(None, min_length=1)
    version: Optional[int] = Field(None, ge=1)
    force: bool = False

    @model_validator(mode="after")
    def require_version(self):
        if not self.force and self.version is None:
            raise ValueError("version is required unless force is set")
        return self

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for field in ("amount", "transaction_type", "date", "splits"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def version_policy(self) -> VersionPolicy:
        if self.force:
            return ForceOverwrite()
        return CheckVersion(self.version)


class TransactionSplitResponse(BaseModel):
    id: str
    amount: Decimal
    category_id: str
    category_name: Optional[str]

    class Config:
        from_attributes = True


class TransactionResponse(BaseModel):
    id: str
    memo: Optional[str]
    amount: Decimal
    transaction_type: TransactionType
    date: datetime
    fee_amount: Optional[Decimal]
    vendor_id: Optional[str]
    vendor_name: Optional[str]
    account_id: str
    destination_account_id: Optional[str]
    status: TransactionStatus
    cleared_at: Optional[datetime]
    reconciled_at: Optional[datetime]
    version: int
    created_by_id: Optional[str]
    created_by_name: Optional[str]
    created_by_email: Optional[str]
    last_modified_by_id: Optional[str]
    last_modified_by_name: Optional[str]
    last_modified_by_email: Optional[str]
    splits: list[TransactionSplitResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
    limit: int
    offset: int


class TransactionFilters(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    transaction_type: Optional[TransactionType] = None
    vendor_id: Optional[str] = None
    category: Optional[str] = None
    status: Optional[TransactionStatus] = None
    statuses: Optional[list[TransactionStatus]] = None
    cleared_after: Optional[datetime] = None
    cleared_before: Optional[datetime] = None
    reconciled_after: Optional[datetime] = None
    reconciled_before: Optional[datetime] = None
    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)


class ConflictMetadata(BaseModel):
    current_version: int
    last_modified_by_id: Optional[str]
    last_modified_by_name: Optional[str]
    last_modified_by_email: Optional[str]
    last_modified_at: datetime


class VersionConflictResponse(BaseModel):
    message: str
    conflict: ConflictMetadata
    current_transaction: TransactionResponse


class FieldChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class EditHistoryResponse(BaseModel):
    id: str
    transaction_id: str
    edited_by_id: Optional[str]
    edited_by_name: Optional[str]
    edited_by_email: Optional[str]
    edited_at: datetime
    edit_type: EditType
    changes: list[FieldChange]
    previous_state: Optional[dict[str, Any]]

    class Config:
        from_attributes = True
