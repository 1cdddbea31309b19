"""Service for account management."""

from typing import List

from sqlalchemy.orm import Session

from treasury.exceptions import NotFoundError
from treasury.models.account import Account
from treasury.schemas.account import AccountCreate, AccountUpdate


def get_account_or_404(db: Session, organization_id: str, account_id: str) -> Account:
    """Account scoped to the organization."""
    account = db.query(Account).filter(
        Account.id == account_id,
        Account.organization_id == organization_id,
    ).first()
    if not account:
        raise NotFoundError("Account", account_id)
    return account


def create_account(db: Session, organization_id: str, data: AccountCreate) -> Account:
    """Create an account with its opening balance."""
    account = Account(
        organization_id=organization_id,
        name=data.name,
        description=data.description,
        institution=data.institution,
        account_type=data.account_type,
        balance=data.balance,
        currency=data.currency,
        transaction_fee=data.transaction_fee,
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def list_accounts(db: Session, organization_id: str, include_inactive: bool = False) -> List[Account]:
    query = db.query(Account).filter(Account.organization_id == organization_id)
    if not include_inactive:
        query = query.filter(Account.is_active == True)
    return query.order_by(Account.created_at).all()


def update_account(
    db: Session,
    organization_id: str,
    account_id: str,
    data: AccountUpdate,
) -> Account:
    """Update descriptive fields. The balance is owned by the ledger."""
    account = get_account_or_404(db, organization_id, account_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field not in ("description", "institution", "transaction_fee"):
            continue
        setattr(account, field, value)

    db.commit()
    db.refresh(account)
    return account


def delete_account(db: Session, organization_id: str, account_id: str) -> None:
    """Soft delete an account (set is_active to False)."""
    account = get_account_or_404(db, organization_id, account_id)
    account.is_active = False
    db.commit()
