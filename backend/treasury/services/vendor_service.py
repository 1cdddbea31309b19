"""Service for vendor management."""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from treasury.exceptions import NotFoundError, ValidationError
from treasury.models.transaction import Transaction
from treasury.models.vendor import Vendor
from treasury.schemas.vendor import VendorCreate, VendorUpdate, VendorWithStats

logger = logging.getLogger(__name__)

DUPLICATE_VENDOR_MESSAGE = "A vendor with this name already exists"


def _find_by_name(
    db: Session,
    organization_id: str,
    name: str,
    exclude_id: Optional[str] = None,
) -> Optional[Vendor]:
    query = db.query(Vendor).filter(
        Vendor.organization_id == organization_id,
        func.lower(Vendor.name) == name.strip().lower(),
    )
    if exclude_id:
        query = query.filter(Vendor.id != exclude_id)
    return query.first()


def get_vendor_or_404(db: Session, organization_id: str, vendor_id: str) -> Vendor:
    vendor = db.query(Vendor).filter(
        Vendor.id == vendor_id,
        Vendor.organization_id == organization_id,
    ).first()
    if not vendor:
        raise NotFoundError("Vendor", vendor_id)
    return vendor


def validate_vendor_ownership(db: Session, vendor_id: str, organization_id: str) -> bool:
    """Whether the vendor exists and belongs to the organization."""
    return db.query(Vendor.id).filter(
        Vendor.id == vendor_id,
        Vendor.organization_id == organization_id,
    ).first() is not None


def create_vendor(db: Session, organization_id: str, data: VendorCreate) -> Vendor:
    if _find_by_name(db, organization_id, data.name):
        raise ValidationError(DUPLICATE_VENDOR_MESSAGE, field="name")

    vendor = Vendor(
        organization_id=organization_id,
        name=data.name.strip(),
        description=data.description,
    )
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return vendor


def list_vendors(
    db: Session,
    organization_id: str,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Vendor], int]:
    query = db.query(Vendor).filter(Vendor.organization_id == organization_id)
    if search:
        query = query.filter(Vendor.name.ilike(f"%{search}%"))

    total = query.count()
    vendors = query.order_by(Vendor.name).offset(offset).limit(limit).all()
    return vendors, total


def get_vendor(db: Session, organization_id: str, vendor_id: str) -> VendorWithStats:
    """Vendor with the number of transactions that reference it."""
    vendor = get_vendor_or_404(db, organization_id, vendor_id)
    count = db.query(Transaction).filter(Transaction.vendor_id == vendor_id).count()
    return VendorWithStats(
        id=vendor.id,
        organization_id=vendor.organization_id,
        name=vendor.name,
        description=vendor.description,
        created_at=vendor.created_at,
        updated_at=vendor.updated_at,
        transaction_count=count,
    )


def update_vendor(
    db: Session,
    organization_id: str,
    vendor_id: str,
    data: VendorUpdate,
) -> Vendor:
    vendor = get_vendor_or_404(db, organization_id, vendor_id)

    if data.name is not None and data.name.strip().lower() != vendor.name.lower():
        if _find_by_name(db, organization_id, data.name, exclude_id=vendor_id):
            raise ValidationError(DUPLICATE_VENDOR_MESSAGE, field="name")

    if data.name is not None:
        vendor.name = data.name.strip()
    if "description" in data.model_fields_set:
        vendor.description = data.description

    db.commit()
    db.refresh(vendor)
    return vendor


def delete_vendor(db: Session, organization_id: str, vendor_id: str) -> None:
    """Hard delete; refused while any transaction references the vendor."""
    vendor = get_vendor_or_404(db, organization_id, vendor_id)

    count = db.query(Transaction).filter(Transaction.vendor_id == vendor_id).count()
    if count > 0:
        raise ValidationError("Cannot delete vendor with transactions")

    db.delete(vendor)
    db.commit()
    logger.info("Deleted vendor", extra={"organization_id": organization_id, "vendor_id": vendor_id})
