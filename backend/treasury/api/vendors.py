"""
Vendor API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from treasury.dependencies import get_db
from treasury.schemas.vendor import (
    VendorCreate,
    VendorUpdate,
    VendorResponse,
    VendorWithStats,
    VendorList,
)
from treasury.services import vendor_service

router = APIRouter(prefix="/vendors", tags=["vendors"])


@router.get("", response_model=VendorList)
def list_vendors(
    organization_id: str,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    vendors, total = vendor_service.list_vendors(db, organization_id, search, limit, offset)
    return VendorList(items=vendors, total=total)


@router.post("", response_model=VendorResponse, status_code=201)
def create_vendor(
    organization_id: str,
    vendor: VendorCreate,
    db: Session = Depends(get_db)
):
    return vendor_service.create_vendor(db, organization_id, vendor)


@router.get("/{vendor_id}", response_model=VendorWithStats)
def get_vendor(
    organization_id: str,
    vendor_id: str,
    db: Session = Depends(get_db)
):
    """Get a vendor with its transaction count."""
    return vendor_service.get_vendor(db, organization_id, vendor_id)


@router.patch("/{vendor_id}", response_model=VendorResponse)
def update_vendor(
    organization_id: str,
    vendor_id: str,
    vendor_update: VendorUpdate,
    db: Session = Depends(get_db)
):
    return vendor_service.update_vendor(db, organization_id, vendor_id, vendor_update)


@router.delete("/{vendor_id}", status_code=204)
def delete_vendor(
    organization_id: str,
    vendor_id: str,
    db: Session = Depends(get_db)
):
    """Delete a vendor that no transaction references."""
    vendor_service.delete_vendor(db, organization_id, vendor_id)
    return None
