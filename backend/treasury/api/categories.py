"""
Category API endpoints.
"""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import Optional

from treasury.dependencies import get_db
from treasury.schemas.category import (
    CategoryCreate,
    CategoryDelete,
    CategoryList,
    CategoryMove,
    CategoryResponse,
    CategoryUpdate,
)
from treasury.services import category_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryList)
def list_categories(
    organization_id: str,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List categories as a flat list."""
    categories = category_service.list_categories(db, organization_id, search)
    return CategoryList(
        items=[CategoryResponse.model_validate(c) for c in categories],
        total=len(categories)
    )


@router.get("/tree", response_model=CategoryList)
def category_tree(
    organization_id: str,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List categories with tree structure."""
    categories = category_service.list_categories(db, organization_id, search)
    return CategoryList(
        items=category_service.build_category_tree(categories),
        total=len(categories)
    )


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    organization_id: str,
    category: CategoryCreate,
    db: Session = Depends(get_db)
):
    """Create a new category."""
    return category_service.create_category(
        db, organization_id, category.name, category.parent_id
    )


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    organization_id: str,
    category_id: str,
    db: Session = Depends(get_db)
):
    return category_service.get_category(db, organization_id, category_id)


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    organization_id: str,
    category_id: str,
    category: CategoryUpdate,
    db: Session = Depends(get_db)
):
    """Rename or reparent a category."""
    return category_service.update_category(db, organization_id, category_id, category)


@router.post("/{category_id}/move", response_model=CategoryResponse)
def move_category(
    organization_id: str,
    category_id: str,
    move: CategoryMove,
    db: Session = Depends(get_db)
):
    """Move a category with its subcategories."""
    return category_service.move_category(db, organization_id, category_id, move.new_parent_id)


@router.delete("/{category_id}", status_code=204)
def delete_category(
    organization_id: str,
    category_id: str,
    options: Optional[CategoryDelete] = Body(None),
    db: Session = Depends(get_db)
):
    """
    Delete an unused category.

    A category with subcategories needs ``move_children_to`` in the body.
    """
    category_service.delete_category(db, organization_id, category_id, options)
