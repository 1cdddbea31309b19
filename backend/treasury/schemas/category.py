"""
Category Pydantic schemas for API validation.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class CategoryBase(BaseModel):
    """Base category schema."""
    name: str = Field(..., min_length=1, max_length=100)
    parent_id: Optional[str] = None


class CategoryCreate(CategoryBase):
    """Schema for creating a category."""
    pass


class CategoryUpdate(BaseModel):
    """Partial update. Sending ``parent_id: null`` moves the category to the root."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    parent_id: Optional[str] = None


class CategoryMove(BaseModel):
    new_parent_id: Optional[str] = Field(...)


class CategoryDelete(BaseModel):
    """Where subcategories go; ``null`` means the root."""
    move_children_to: Optional[str] = None


class CategoryResponse(CategoryBase):
    """Schema for category response."""
    id: str
    organization_id: str
    depth: int
    created_at: datetime
    children: list["CategoryResponse"] = []

    class Config:
        from_attributes = True


# Enable forward references for recursive model
CategoryResponse.model_rebuild()


class CategoryList(BaseModel):
    """Schema for listing categories."""
    items: list[CategoryResponse]
    total: int
