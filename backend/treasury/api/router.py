"""
Main API router.
"""

from fastapi import APIRouter, Depends

from treasury.api import (
    accounts,
    categories,
    organizations,
    transaction_status,
    transactions,
    users,
    vendors,
)
from treasury.dependencies import get_organization

# Everything is scoped to an organization; unknown ids answer 404
organization_router = APIRouter(
    prefix="/organizations/{organization_id}",
    dependencies=[Depends(get_organization)],
)

organization_router.include_router(accounts.router)
organization_router.include_router(categories.router)
organization_router.include_router(vendors.router)
organization_router.include_router(transaction_status.router)
organization_router.include_router(transactions.router)

api_router = APIRouter()
api_router.include_router(organizations.router)
api_router.include_router(users.router)
api_router.include_router(organization_router)
