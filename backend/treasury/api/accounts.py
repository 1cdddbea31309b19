"""
Account API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from treasury.dependencies import get_db
from treasury.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    AccountList,
)
from treasury.services import account_service

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=AccountList)
def list_accounts(
    organization_id: str,
    include_inactive: bool = False,
    db: Session = Depends(get_db)
):
    """List the organization's accounts."""
    accounts = account_service.list_accounts(db, organization_id, include_inactive)
    return AccountList(items=accounts, total=len(accounts))


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    organization_id: str,
    account: AccountCreate,
    db: Session = Depends(get_db)
):
    """Create a new account."""
    return account_service.create_account(db, organization_id, account)


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    organization_id: str,
    account_id: str,
    db: Session = Depends(get_db)
):
    """Get a specific account."""
    return account_service.get_account_or_404(db, organization_id, account_id)


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    organization_id: str,
    account_id: str,
    account_update: AccountUpdate,
    db: Session = Depends(get_db)
):
    """Update an account."""
    return account_service.update_account(db, organization_id, account_id, account_update)


@router.delete("/{account_id}", status_code=204)
def delete_account(
    organization_id: str,
    account_id: str,
    db: Session = Depends(get_db)
):
    """Soft delete an account (set is_active to False)."""
    account_service.delete_account(db, organization_id, account_id)
    return None
