"""Service for organizations and the users that act on them."""

import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from treasury.exceptions import NotFoundError, ValidationError
from treasury.models.organization import Organization, User
from treasury.schemas.organization import OrganizationCreate, OrganizationUpdate, UserCreate

logger = logging.getLogger(__name__)


def get_organization(db: Session, organization_id: str) -> Organization:
    organization = db.get(Organization, organization_id)
    if not organization:
        raise NotFoundError("Organization", organization_id)
    return organization


def list_organizations(db: Session) -> List[Organization]:
    return db.query(Organization).order_by(Organization.created_at, Organization.name).all()


def create_organization(db: Session, data: OrganizationCreate) -> Organization:
    organization = Organization(name=data.name.strip())
    db.add(organization)
    db.commit()
    db.refresh(organization)
    logger.info("Created organization", extra={"organization_id": organization.id})
    return organization


def update_organization(
    db: Session,
    organization_id: str,
    data: OrganizationUpdate,
) -> Organization:
    organization = get_organization(db, organization_id)
    organization.name = data.name.strip()
    db.commit()
    db.refresh(organization)
    return organization


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def create_user(db: Session, data: UserCreate) -> User:
    """Register a user. Emails are unique ignoring case and stored lowercased."""
    email = data.email.strip().lower()
    if db.query(User.id).filter(func.lower(User.email) == email).first():
        raise ValidationError("A user with this email already exists", field="email")

    user = User(email=email, name=data.name)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user", extra={"user_id": user.id})
    return user
