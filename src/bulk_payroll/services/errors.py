"""Exception taxonomy for bulk payroll operations."""

from __future__ import annotations

from uuid import UUID


class BulkPayrollError(Exception):
    """Base class for bulk payroll domain errors."""

    code = "BULK_PAYROLL_ERROR"


class ValidationError(BulkPayrollError):
    """Raised when batch input is incomplete or inconsistent.

    Raised before any write takes place.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or [message]
        super().__init__(message)


class NotFoundError(BulkPayrollError):
    """Raised when a referenced batch, item, or employee is missing."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: UUID | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class PersistenceError(BulkPayrollError):
    """Raised when a store operation fails."""

    code = "PERSISTENCE_ERROR"


class InvalidTransitionError(BulkPayrollError):
    """Raised when an invalid batch state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
