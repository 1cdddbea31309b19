"""
Audit trail models for transaction edits and status changes.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, JSON, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
import enum
from treasury.database import Base
from treasury.models.transaction import TransactionStatus


class EditType(str, enum.Enum):
    """Edit type enumeration."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESTORE = "RESTORE"
    SPLIT_CHANGE = "SPLIT_CHANGE"


class TransactionEditHistory(Base):
    """One row per update that changed at least one field."""

    __tablename__ = "transaction_edit_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id = Column(
        String(36), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    edited_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    edited_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    edit_type = Column(Enum(EditType), nullable=False)
    changes = Column(JSON, nullable=False)  # [{field, old_value, new_value}, ...]
    previous_state = Column(JSON, nullable=True)

    # Relationships
    transaction = relationship("Transaction", back_populates="edit_history")
    edited_by = relationship("User")

    __table_args__ = (
        Index("idx_edit_history_transaction_edited_at", "transaction_id", "edited_at"),
    )

    @property
    def edited_by_name(self):
        return self.edited_by.name if self.edited_by else None

    @property
    def edited_by_email(self):
        return self.edited_by.email if self.edited_by else None


class TransactionStatusHistory(Base):
    """Append-only record of status transitions."""

    __tablename__ = "transaction_status_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id = Column(
        String(36), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status = Column(Enum(TransactionStatus), nullable=True)
    to_status = Column(Enum(TransactionStatus), nullable=False)
    changed_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Relationships
    transaction = relationship("Transaction", back_populates="status_history")
    changed_by = relationship("User")

    @property
    def changed_by_name(self):
        return self.changed_by.name if self.changed_by else None

    @property
    def changed_by_email(self):
        return self.changed_by.email if self.changed_by else None
