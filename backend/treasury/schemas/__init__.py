"""
Pydantic schemas package.
"""

from treasury.schemas.account import (
    AccountBase,
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    AccountList,
)
from treasury.schemas.category import (
    CategoryBase,
    CategoryCreate,
    CategoryUpdate,
    CategoryMove,
    CategoryDelete,
    CategoryResponse,
    CategoryList,
)
from treasury.schemas.organization import (
    OrganizationCreate,
    OrganizationUpdate,
    OrganizationResponse,
    OrganizationList,
    UserCreate,
    UserResponse,
)
from treasury.schemas.vendor import (
    VendorCreate,
    VendorUpdate,
    VendorResponse,
    VendorWithStats,
    VendorList,
)
from treasury.schemas.transaction import (
    CheckVersion,
    ForceOverwrite,
    VersionPolicy,
    TransactionSplitInput,
    TransactionCreate,
    TransactionUpdate,
    TransactionResponse,
    TransactionListResponse,
    TransactionFilters,
    VersionConflictResponse,
    EditHistoryResponse,
)
from treasury.schemas.status import (
    StatusChangeRequest,
    BulkStatusChangeRequest,
    StatusHistoryResponse,
    BulkStatusChangeResult,
    ReconciliationSummary,
)

__all__ = [
    "AccountBase",
    "AccountCreate",
    "AccountUpdate",
    "AccountResponse",
    "AccountList",
    "CategoryBase",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryMove",
    "CategoryDelete",
    "CategoryResponse",
    "CategoryList",
    "OrganizationCreate",
    "OrganizationUpdate",
    "OrganizationResponse",
    "OrganizationList",
    "UserCreate",
    "UserResponse",
    "VendorCreate",
    "VendorUpdate",
    "VendorResponse",
    "VendorWithStats",
    "VendorList",
    "CheckVersion",
    "ForceOverwrite",
    "VersionPolicy",
    "TransactionSplitInput",
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "TransactionListResponse",
    "TransactionFilters",
    "VersionConflictResponse",
    "EditHistoryResponse",
    "StatusChangeRequest",
    "BulkStatusChangeRequest",
    "StatusHistoryResponse",
    "BulkStatusChangeResult",
    "ReconciliationSummary",
]
