"""
FastAPI dependencies.
"""

from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from treasury.database import SessionLocal
from treasury.models.organization import Organization, User
from treasury.services import organization_service, status_service


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_organization(organization_id: str, db: Session = Depends(get_db)) -> Organization:
    """Resolve the ``organization_id`` path parameter."""
    return organization_service.get_organization(db, organization_id)


def get_current_user_id(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> str:
    """
    Acting user for audit columns.

    Authentication happens upstream; this only trusts the forwarded id and
    checks that the user exists.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    if db.get(User, x_user_id) is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return x_user_id


def prevent_reconciled_modification(
    organization_id: str,
    account_id: str,
    transaction_id: str,
    db: Session = Depends(get_db),
) -> None:
    """Guard for PATCH and DELETE on a transaction in the routed account."""
    status_service.validate_not_reconciled(db, transaction_id, organization_id, account_id)
