"""Result types returned by bulk payroll operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Awaitable, Callable
from uuid import UUID

if TYPE_CHECKING:
    from bulk_payroll.models import BulkPayroll


@dataclass(frozen=True)
class BatchContext:
    """Immutable view of the batch fields a driver needs while processing."""

    batch_id: UUID
    pay_period_start: date
    pay_period_end: date
    run_id: UUID


@dataclass(frozen=True)
class ProgressSnapshot:
    """Persisted batch progress, passed to progress callbacks."""

    batch_id: UUID
    status: str
    total_records: int
    processed_records: int
    succeeded_records: int
    failed_records: int
    total_amount: Decimal

    @classmethod
    def from_batch(cls, batch: BulkPayroll) -> ProgressSnapshot:
        return cls(
            batch_id=batch.id,
            status=batch.status,
            total_records=batch.total_records,
            processed_records=batch.processed_records,
            succeeded_records=batch.succeeded_records,
            failed_records=batch.failed_records,
            total_amount=Decimal(batch.total_amount),
        )


ProgressCallback = Callable[[ProgressSnapshot], Awaitable[None]]


@dataclass(frozen=True)
class ItemFailure:
    """One entry of a batch failure manifest."""

    item_id: UUID
    profile_id: UUID
    error_message: str


@dataclass(frozen=True)
class ItemOutcome:
    """Outcome of processing a single batch item."""

    item_id: UUID
    profile_id: UUID
    status: str
    payroll_id: UUID | None = None
    net_pay: Decimal | None = None
    error_message: str | None = None
    skipped: bool = False


@dataclass
class BatchRunResult:
    """Outcome of a start_batch call."""

    batch_id: UUID
    status: str
    message: str
    total_records: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    total_amount: Decimal = Decimal("0")
    failures: list[ItemFailure] = field(default_factory=list)
