"""
Domain error types raised by the service layer.

The API layer maps these onto HTTP responses (see ``treasury.api.errors``);
services never raise ``HTTPException`` themselves.
"""

import enum
from datetime import datetime
from typing import Any, Optional


class TreasuryError(Exception):
    """Base class for domain-level errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TreasuryError):
    """Requested entity does not exist in the caller's organization."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(message or f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(TreasuryError):
    """User-correctable input problem caught before any write."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StatusTransitionReason(str, enum.Enum):
    """Why a status change was refused."""
    ALREADY_IN_STATUS = "ALREADY_IN_STATUS"
    RECONCILED_TERMINAL = "RECONCILED_TERMINAL"
    INVALID_TRANSITION = "INVALID_TRANSITION"


class InvalidStatusTransitionError(TreasuryError):
    """Status change refused by the transition table."""

    def __init__(self, message: str, reason: StatusTransitionReason):
        super().__init__(message)
        self.reason = reason


class VersionConflictError(TreasuryError):
    """Stored version no longer matches the version the editor read.

    Carries enough of the server-side state for the caller to render a
    merge view instead of a bare error string.
    """

    status_code = 409

    def __init__(
        self,
        current_version: int,
        last_modified_by_id: Optional[str],
        last_modified_by_name: Optional[str],
        last_modified_by_email: Optional[str],
        last_modified_at: datetime,
        current_transaction: Any,
    ):
        super().__init__(
            "Transaction has been modified by another user. Please refresh and try again."
        )
        self.current_version = current_version
        self.last_modified_by_id = last_modified_by_id
        self.last_modified_by_name = last_modified_by_name
        self.last_modified_by_email = last_modified_by_email
        self.last_modified_at = last_modified_at
        self.current_transaction = current_transaction

    def conflict_metadata(self) -> dict:
        return {
            "current_version": self.current_version,
            "last_modified_by_id": self.last_modified_by_id,
            "last_modified_by_name": self.last_modified_by_name,
            "last_modified_by_email": self.last_modified_by_email,
            "last_modified_at": self.last_modified_at.isoformat(),
        }


RECONCILED_MESSAGE = "Cannot modify reconciled transactions"


def already_in_status(status: str) -> str:
    return f"Transaction is already {status}"


def invalid_transition(current: str, new: str) -> str:
    return f"Invalid status transition from {current} to {new}"
