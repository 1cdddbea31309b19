"""
Organization API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from treasury.dependencies import get_db
from treasury.schemas.organization import (
    OrganizationCreate,
    OrganizationList,
    OrganizationResponse,
    OrganizationUpdate,
)
from treasury.services import organization_service

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("", response_model=OrganizationList)
def list_organizations(db: Session = Depends(get_db)):
    organizations = organization_service.list_organizations(db)
    return OrganizationList(items=organizations, total=len(organizations))


@router.post("", response_model=OrganizationResponse, status_code=201)
def create_organization(
    organization: OrganizationCreate,
    db: Session = Depends(get_db)
):
    return organization_service.create_organization(db, organization)


@router.get("/{organization_id}", response_model=OrganizationResponse)
def get_organization(organization_id: str, db: Session = Depends(get_db)):
    return organization_service.get_organization(db, organization_id)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
def update_organization(
    organization_id: str,
    organization: OrganizationUpdate,
    db: Session = Depends(get_db)
):
    """Rename an organization."""
    return organization_service.update_organization(db, organization_id, organization)
