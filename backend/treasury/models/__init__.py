"""
Database models package.
"""

from treasury.models.organization import Organization, User
from treasury.models.account import Account, AccountType
from treasury.models.category import Category
from treasury.models.vendor import Vendor
from treasury.models.transaction import (
    Transaction,
    TransactionSplit,
    TransactionStatus,
    TransactionType,
)
from treasury.models.history import EditType, TransactionEditHistory, TransactionStatusHistory

__all__ = [
    "Organization",
    "User",
    "Account",
    "AccountType",
    "Category",
    "Vendor",
    "Transaction",
    "TransactionSplit",
    "TransactionStatus",
    "TransactionType",
    "EditType",
    "TransactionEditHistory",
    "TransactionStatusHistory",
]
