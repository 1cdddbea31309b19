"""
User registration endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from treasury.dependencies import get_db
from treasury.schemas.organization import UserCreate, UserResponse
from treasury.services import organization_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a user; send the returned id as ``X-User-Id``."""
    return organization_service.create_user(db, user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return organization_service.get_user(db, user_id)
