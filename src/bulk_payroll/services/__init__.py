"""Bulk payroll services."""

from bulk_payroll.services.batch_service import BulkPayrollService
from bulk_payroll.services.errors import (
    BulkPayrollError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from bulk_payroll.services.pipeline import BulkPayrollPipeline, payroll_idempotency_key
from bulk_payroll.services.results import (
    BatchRunResult,
    ItemFailure,
    ItemOutcome,
    ProgressSnapshot,
)
from bulk_payroll.services.state_machine import (
    BatchStateMachine,
    BatchStatus,
    ItemStatus,
)

__all__ = [
    "BulkPayrollService",
    "BulkPayrollPipeline",
    "payroll_idempotency_key",
    "BulkPayrollError",
    "InvalidTransitionError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "BatchRunResult",
    "ItemFailure",
    "ItemOutcome",
    "ProgressSnapshot",
    "BatchStateMachine",
    "BatchStatus",
    "ItemStatus",
]
