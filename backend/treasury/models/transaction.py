"""
Transaction and split database models.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Text, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
import enum
from treasury.database import Base
from treasury.models.types import Money


class TransactionType(str, enum.Enum):
    """Transaction type enumeration."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


class TransactionStatus(str, enum.Enum):
    """Reconciliation status enumeration."""
    UNCLEARED = "UNCLEARED"
    CLEARED = "CLEARED"
    RECONCILED = "RECONCILED"


class Transaction(Base):
    """Transaction model.

    ``amount`` is always positive; the direction comes from
    ``transaction_type``. ``fee_amount`` is a snapshot of the account fee at
    the time it was applied.
    """

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    destination_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    vendor_id = Column(String(36), ForeignKey("vendors.id"), nullable=True)
    memo = Column(Text, nullable=True)
    amount = Column(Money, nullable=False)
    transaction_type = Column(Enum(TransactionType), default=TransactionType.EXPENSE, nullable=False)
    date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    fee_amount = Column(Money, nullable=True)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.UNCLEARED, nullable=False)
    cleared_at = Column(DateTime, nullable=True)
    reconciled_at = Column(DateTime, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    last_modified_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions", foreign_keys=[account_id])
    destination_account = relationship("Account", foreign_keys=[destination_account_id])
    vendor = relationship("Vendor", back_populates="transactions")
    created_by = relationship("User", foreign_keys=[created_by_id])
    last_modified_by = relationship("User", foreign_keys=[last_modified_by_id])
    splits = relationship(
        "TransactionSplit",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionSplit.position",
    )
    edit_history = relationship(
        "TransactionEditHistory",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )
    status_history = relationship(
        "TransactionStatusHistory",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )

    # Indexes for common queries
    __table_args__ = (
        Index("idx_transaction_account_status", "account_id", "status"),
        Index("idx_transaction_account_status_date", "account_id", "status", "date"),
        Index("idx_transaction_destination", "destination_account_id"),
        Index("idx_transaction_vendor", "vendor_id"),
    )

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None

    @property
    def created_by_name(self):
        return self.created_by.name if self.created_by else None

    @property
    def created_by_email(self):
        return self.created_by.email if self.created_by else None

    @property
    def last_modified_by_name(self):
        return self.last_modified_by.name if self.last_modified_by else None

    @property
    def last_modified_by_email(self):
        return self.last_modified_by.email if self.last_modified_by else None


class TransactionSplit(Base):
    """Portion of a transaction's amount attributed to one category."""

    __tablename__ = "transaction_splits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id = Column(
        String(36), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    position = Column(Integer, default=0, nullable=False)  # Order as entered
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    transaction = relationship("Transaction", back_populates="splits")
    category = relationship("Category", back_populates="splits")

    @property
    def category_name(self):
        return self.category.name if self.category else None
