"""Bulk payroll pipeline - drives a batch through item processing."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bulk_payroll.calculators import HoursResolver, PayCalculator, PayPolicy
from bulk_payroll.models import BulkPayroll, BulkPayrollItem, Payroll, PayrollStatus, Profile
from bulk_payroll.services.batch_service import BulkPayrollService
from bulk_payroll.services.errors import (
    BulkPayrollError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from bulk_payroll.services.results import (
    BatchContext,
    BatchRunResult,
    ItemOutcome,
    ProgressCallback,
    ProgressSnapshot,
)
from bulk_payroll.services.state_machine import BatchStateMachine, BatchStatus, ItemStatus

logger = logging.getLogger(__name__)

# Failures recorded on the item; anything else fails the whole batch
ITEM_SCOPED_ERRORS = (BulkPayrollError, SQLAlchemyError, ValueError, ArithmeticError)


def payroll_idempotency_key(batch_id: UUID, profile_id: UUID) -> str:
    """Deterministic payroll key for one employee within one batch."""
    raw = f"bulk_payroll:{batch_id}:{profile_id}"
    return hashlib.sha256(raw.encode()).hexdigest()


class BulkPayrollPipeline:
    """Drives bulk payroll batches from draft to a terminal status.

    Key invariants:
    1. A batch is claimed with a conditional update (draft|paused → processing)
       and a fresh run_id; a second driver cannot claim it concurrently
    2. Items are processed strictly sequentially in position order
    3. Each item is one transaction: payroll upsert, item update, counters
    4. Payroll rows are keyed by (batch, employee), so re-running an item
       never duplicates a payroll record
    5. Item failures are recorded on the item and never abort the loop
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: PayPolicy | None = None,
    ):
        self.session = session
        self.policy = policy or PayPolicy()
        self.batches = BulkPayrollService(session)
        self.calculator = PayCalculator(self.policy)
        self.hours = HoursResolver(session, self.policy)

    async def start_batch(
        self,
        batch_id: UUID,
        on_progress: ProgressCallback | None = None,
    ) -> BatchRunResult:
        """Run (or resume) a batch until every item is attempted or it is paused.

        Raises:
            NotFoundError: If the batch does not exist
            ValidationError: If the batch has no items
            InvalidTransitionError: If the batch is already running or finished
        """
        batch = await self.batches.get_batch(batch_id)
        items = await self.batches.list_items(batch_id)
        if not items:
            raise ValidationError(f"Bulk payroll {batch_id} has no items")

        # Resume cursor: anything no longer pending was handled by an earlier run
        pending = [
            (item.id, item.profile_id)
            for item in items
            if item.status == ItemStatus.PENDING.value
        ]

        from_status = batch.status
        if not BatchStateMachine.can_start(from_status):
            if from_status == BatchStatus.PROCESSING:
                raise InvalidTransitionError(
                    from_status,
                    BatchStatus.PROCESSING.value,
                    "batch is already being processed",
                )
            BatchStateMachine.validate_transition(from_status, BatchStatus.PROCESSING.value)

        context = await self._claim(batch)
        resumed = BatchStateMachine.is_resume(from_status, BatchStatus.PROCESSING)
        logger.info(
            "Bulk payroll %s %s, run %s, %d item(s) pending",
            batch_id,
            "resumed" if resumed else "started",
            context.run_id,
            len(pending),
        )
        await self._notify(on_progress, batch_id)

        try:
            for item_id, profile_id in pending:
                if not await self._still_owned(context):
                    logger.info(
                        "Bulk payroll %s no longer held by run %s, stopping",
                        batch_id,
                        context.run_id,
                    )
                    return await self._result(batch_id, "Processing paused")

                await self.process_item(item_id, profile_id, context)
                await self._notify(on_progress, batch_id)

            status = await self._finish(context)
        except Exception as exc:
            logger.exception("Bulk payroll %s failed", batch_id)
            await self.session.rollback()
            await self._mark_failed(context)
            await self._notify(on_progress, batch_id)
            return await self._result(batch_id, f"Bulk payroll processing failed: {exc}")

        await self._notify(on_progress, batch_id)
        if status == BatchStatus.COMPLETED:
            message = "Bulk payroll processing completed successfully"
        elif status == BatchStatus.COMPLETED_WITH_ERRORS:
            message = "Bulk payroll processing completed with errors"
        else:
            message = "Processing paused"
        return await self._result(batch_id, message)

    async def process_item(
        self,
        item_id: UUID,
        profile_id: UUID,
        context: BatchContext,
    ) -> ItemOutcome:
        """Compute pay for one item and link the resulting payroll record.

        Failures are recorded on the item (status failed, error_message) and
        still count towards processed_records.
        """
        try:
            outcome = await self._process_item(item_id, profile_id, context)
        except ITEM_SCOPED_ERRORS as exc:
            await self.session.rollback()
            if isinstance(exc, SQLAlchemyError):
                exc = PersistenceError(f"Store operation failed: {exc}")
            logger.warning(
                "Bulk payroll item %s (employee %s) failed: %s",
                item_id,
                profile_id,
                exc,
            )
            return await self._record_failure(item_id, profile_id, context, str(exc))

        if outcome.skipped:
            await self.session.rollback()
            logger.info("Bulk payroll item %s already handled, skipping", item_id)
        else:
            await self.session.commit()
        return outcome

    async def _process_item(
        self,
        item_id: UUID,
        profile_id: UUID,
        context: BatchContext,
    ) -> ItemOutcome:
        result = await self.session.execute(
            select(Profile)
            .where(Profile.id == profile_id)
            .execution_options(populate_existing=True)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError("Employee", profile_id)

        total_hours = await self.hours.total_hours(
            profile_id, context.pay_period_start, context.pay_period_end
        )
        pay = self.calculator.compute(self.calculator.resolve_rate(profile), total_hours)

        payroll_id = await self._upsert_payroll(
            key=payroll_idempotency_key(context.batch_id, profile_id),
            values={
                "profile_id": profile_id,
                "pay_period_start": context.pay_period_start,
                "pay_period_end": context.pay_period_end,
                "total_hours": pay.total_hours,
                "hourly_rate": pay.hourly_rate,
                "gross_pay": pay.gross_pay,
                "deductions": pay.deductions,
                "net_pay": pay.net_pay,
                "status": PayrollStatus.PENDING.value,
            },
        )

        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(BulkPayrollItem)
            .where(
                BulkPayrollItem.id == item_id,
                BulkPayrollItem.status == ItemStatus.PENDING.value,
            )
            .values(
                status=ItemStatus.PROCESSED.value,
                payroll_id=payroll_id,
                error_message=None,
                processed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return ItemOutcome(
                item_id=item_id,
                profile_id=profile_id,
                status=ItemStatus.PROCESSED.value,
                skipped=True,
            )

        await self._increment_counters(
            context.batch_id,
            item_id,
            succeeded=1,
            amount=pay.net_pay,
        )
        return ItemOutcome(
            item_id=item_id,
            profile_id=profile_id,
            status=ItemStatus.PROCESSED.value,
            payroll_id=payroll_id,
            net_pay=pay.net_pay,
        )

    async def _upsert_payroll(self, key: str, values: dict) -> UUID:
        """Insert a payroll row unless one with this key exists. Returns its id."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            raise PersistenceError(f"Unsupported database dialect '{dialect}'")

        await self.session.execute(
            insert(Payroll)
            .values(id=uuid4(), idempotency_key=key, **values)
            .on_conflict_do_nothing(index_elements=["idempotency_key"])
        )
        result = await self.session.execute(
            select(Payroll.id).where(Payroll.idempotency_key == key)
        )
        return result.scalar_one()

    async def _record_failure(
        self,
        item_id: UUID,
        profile_id: UUID,
        context: BatchContext,
        message: str,
    ) -> ItemOutcome:
        result = await self.session.execute(
            update(BulkPayrollItem)
            .where(
                BulkPayrollItem.id == item_id,
                BulkPayrollItem.status == ItemStatus.PENDING.value,
            )
            .values(
                status=ItemStatus.FAILED.value,
                error_message=message,
                processed_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        skipped = result.rowcount == 0
        if not skipped:
            await self._increment_counters(context.batch_id, item_id, failed=1)
        await self.session.commit()

        return ItemOutcome(
            item_id=item_id,
            profile_id=profile_id,
            status=ItemStatus.FAILED.value,
            error_message=message,
            skipped=skipped,
        )

    async def _increment_counters(
        self,
        batch_id: UUID,
        item_id: UUID,
        succeeded: int = 0,
        failed: int = 0,
        amount: Decimal = Decimal("0"),
    ) -> None:
        """Atomically bump progress counters; never a read-modify-write."""
        await self.session.execute(
            update(BulkPayroll)
            .where(BulkPayroll.id == batch_id)
            .values(
                processed_records=BulkPayroll.processed_records + 1,
                succeeded_records=BulkPayroll.succeeded_records + succeeded,
                failed_records=BulkPayroll.failed_records + failed,
                total_amount=BulkPayroll.total_amount + amount,
                last_processed_item_id=item_id,
            )
            .execution_options(synchronize_session=False)
        )

    async def _claim(self, batch: BulkPayroll) -> BatchContext:
        """Move the batch to processing under a fresh run id."""
        context = BatchContext(
            batch_id=batch.id,
            pay_period_start=batch.pay_period_start,
            pay_period_end=batch.pay_period_end,
            run_id=uuid4(),
        )
        result = await self.session.execute(
            update(BulkPayroll)
            .where(
                BulkPayroll.id == context.batch_id,
                BulkPayroll.status.in_([s.value for s in BatchStateMachine.STARTABLE]),
            )
            .values(
                status=BatchStatus.PROCESSING.value,
                run_id=context.run_id,
                started_at=batch.started_at or datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        if result.rowcount == 0:
            current = await self.batches.get_batch(context.batch_id)
            raise InvalidTransitionError(
                current.status,
                BatchStatus.PROCESSING.value,
                "batch was claimed by another run",
            )
        return context

    async def _still_owned(self, context: BatchContext) -> bool:
        result = await self.session.execute(
            select(BulkPayroll.status, BulkPayroll.run_id).where(
                BulkPayroll.id == context.batch_id
            )
        )
        row = result.one()
        return row.status == BatchStatus.PROCESSING.value and row.run_id == context.run_id

    async def _finish(self, context: BatchContext) -> BatchStatus | None:
        """Persist completed / completed_with_errors. None if the run lost the batch."""
        result = await self.session.execute(
            select(BulkPayroll.failed_records).where(BulkPayroll.id == context.batch_id)
        )
        status = BatchStateMachine.finished_status(result.scalar_one())

        result = await self.session.execute(
            update(BulkPayroll)
            .where(
                BulkPayroll.id == context.batch_id,
                BulkPayroll.status == BatchStatus.PROCESSING.value,
                BulkPayroll.run_id == context.run_id,
            )
            .values(
                status=status.value,
                run_id=None,
                completed_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        if result.rowcount == 0:
            return None
        logger.info("Bulk payroll %s finished as %s", context.batch_id, status.value)
        return status

    async def _mark_failed(self, context: BatchContext) -> None:
        """Fail the batch, only while this run still holds it."""
        await self.session.execute(
            update(BulkPayroll)
            .where(
                BulkPayroll.id == context.batch_id,
                BulkPayroll.status == BatchStatus.PROCESSING.value,
                BulkPayroll.run_id == context.run_id,
            )
            .values(
                status=BatchStatus.FAILED.value,
                run_id=None,
                completed_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

    async def _notify(self, on_progress: ProgressCallback | None, batch_id: UUID) -> None:
        if on_progress is None:
            return
        batch = await self.batches.get_batch(batch_id)
        try:
            await on_progress(ProgressSnapshot.from_batch(batch))
        except Exception:
            logger.exception("Progress callback failed for bulk payroll %s", batch_id)

    async def _result(self, batch_id: UUID, message: str) -> BatchRunResult:
        batch = await self.batches.get_batch(batch_id)
        failures = await self.batches.get_failure_manifest(batch_id)
        return BatchRunResult(
            batch_id=batch.id,
            status=batch.status,
            message=message,
            total_records=batch.total_records,
            processed=batch.processed_records,
            succeeded=batch.succeeded_records,
            failed=batch.failed_records,
            total_amount=Decimal(batch.total_amount),
            failures=failures,
        )
