"""
Account Pydantic schemas for API validation.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from treasury.models.account import AccountType


class AccountBase(BaseModel):
    """Base account schema."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    institution: Optional[str] = Field(None, max_length=200)
    account_type: AccountType = AccountType.CHECKING
    currency: str = Field("USD", pattern=r"^[A-Z]{3}$")
    transaction_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=4)


class AccountCreate(AccountBase):
    """Schema for creating an account."""
    balance: Decimal = Field(Decimal("0"), decimal_places=4)  # Opening balance


class AccountUpdate(BaseModel):
    """Schema for updating an account. Balance is not editable."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    institution: Optional[str] = Field(None, max_length=200)
    account_type: Optional[AccountType] = None
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")
    is_active: Optional[bool] = None
    transaction_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=4)


class AccountResponse(AccountBase):
    """Schema for account response."""
    id: str
    organization_id: str
    balance: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccountList(BaseModel):
    """Schema for listing accounts."""
    items: list[AccountResponse]
    total: int
