"""Bulk payroll batch and item state machines."""

from __future__ import annotations

from enum import Enum

from bulk_payroll.services.errors import InvalidTransitionError


class BatchStatus(str, Enum):
    """Bulk payroll batch status values."""

    DRAFT = "draft"
    PROCESSING = "processing"
    PAUSED = "paused"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class ItemStatus(str, Enum):
    """Bulk payroll item status values."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class BatchStateMachine:
    """State machine for bulk payroll batch transitions.

    Allowed transitions:
    - draft → processing
    - processing → paused
    - paused → processing (resume)
    - processing → completed | completed_with_errors | failed
    - paused → failed
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        BatchStatus.DRAFT: [BatchStatus.PROCESSING],
        BatchStatus.PROCESSING: [
            BatchStatus.PAUSED,
            BatchStatus.COMPLETED,
            BatchStatus.COMPLETED_WITH_ERRORS,
            BatchStatus.FAILED,
        ],
        BatchStatus.PAUSED: [BatchStatus.PROCESSING, BatchStatus.FAILED],
        BatchStatus.COMPLETED: [],  # Terminal state
        BatchStatus.COMPLETED_WITH_ERRORS: [],  # Terminal state
        BatchStatus.FAILED: [],  # Terminal state
    }

    TERMINAL = {
        BatchStatus.COMPLETED,
        BatchStatus.COMPLETED_WITH_ERRORS,
        BatchStatus.FAILED,
    }

    # Statuses a driver may claim the batch from
    STARTABLE = {
        BatchStatus.DRAFT,
        BatchStatus.PAUSED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            reason = "batch is finished" if cls.is_terminal(from_status) else None
            raise InvalidTransitionError(from_status, to_status, reason)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no further transitions are possible."""
        return status in cls.TERMINAL

    @classmethod
    def can_start(cls, status: str) -> bool:
        """Check if a driver may claim a batch in this status."""
        return status in cls.STARTABLE

    @classmethod
    def is_resume(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a resume (paused → processing)."""
        return from_status == BatchStatus.PAUSED and to_status == BatchStatus.PROCESSING

    @classmethod
    def finished_status(cls, failed_count: int) -> BatchStatus:
        """Outcome status once every item has been attempted."""
        if failed_count:
            return BatchStatus.COMPLETED_WITH_ERRORS
        return BatchStatus.COMPLETED
