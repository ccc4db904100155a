"""Bulk payroll batch service - creation, reads and pause."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bulk_payroll.models import BulkPayroll, BulkPayrollItem, Profile
from bulk_payroll.services.errors import InvalidTransitionError, NotFoundError, ValidationError
from bulk_payroll.services.results import ItemFailure
from bulk_payroll.services.state_machine import BatchStatus, ItemStatus

logger = logging.getLogger(__name__)


class BulkPayrollService:
    """Service for managing bulk payroll batches.

    Operations:
    - create_batch: Persist a draft batch and one pending item per employee
    - get_batch / list_batches / list_items: Reads for observers
    - get_failure_manifest: Failed items with their error detail
    - pause_batch: Persist processing → paused so drivers stop
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_batch(
        self,
        name: str,
        period_start: date,
        period_end: date,
        employee_ids: Iterable[UUID],
        description: str | None = None,
        created_by: UUID | None = None,
    ) -> BulkPayroll:
        """Create a draft batch with one pending item per employee.

        Batch and items are written in a single transaction.

        Raises:
            ValidationError: On a blank name, an inverted period, an empty
                employee selection, or unknown employee ids. Nothing is written.
        """
        # Collapse duplicates, keeping selection order
        profile_ids = list(dict.fromkeys(employee_ids))

        errors: list[str] = []
        if not name or not name.strip():
            errors.append("Batch name is required")
        if period_start is None or period_end is None:
            errors.append("Pay period start and end are required")
        elif period_start > period_end:
            errors.append(
                f"Pay period start {period_start} is after end {period_end}"
            )
        if not profile_ids:
            errors.append("At least one employee must be selected")
        if errors:
            raise ValidationError("; ".join(errors), errors)

        result = await self.session.execute(
            select(Profile.id).where(Profile.id.in_(profile_ids))
        )
        known = set(result.scalars().all())
        missing = [str(pid) for pid in profile_ids if pid not in known]
        if missing:
            raise ValidationError(f"Unknown employee id(s): {', '.join(missing)}")

        batch = BulkPayroll(
            name=name.strip(),
            description=description,
            pay_period_start=period_start,
            pay_period_end=period_end,
            created_by=created_by,
            status=BatchStatus.DRAFT.value,
            total_records=len(profile_ids),
            processed_records=0,
            succeeded_records=0,
            failed_records=0,
            total_amount=0,
            # Sub-second precision; SQLite's CURRENT_TIMESTAMP has whole seconds
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(batch)
        await self.session.flush()

        self.session.add_all(
            BulkPayrollItem(
                bulk_payroll_id=batch.id,
                profile_id=profile_id,
                position=position,
                status=ItemStatus.PENDING.value,
            )
            for position, profile_id in enumerate(profile_ids)
        )
        await self.session.commit()
        await self.session.refresh(batch)

        logger.info(
            "Created bulk payroll %s (%s) with %d item(s)",
            batch.id,
            batch.name,
            batch.total_records,
        )
        return batch

    async def get_batch(self, batch_id: UUID) -> BulkPayroll:
        """Load a batch with its current persisted state.

        Raises:
            NotFoundError: If the batch does not exist
        """
        result = await self.session.execute(
            select(BulkPayroll)
            .where(BulkPayroll.id == batch_id)
            .execution_options(populate_existing=True)
        )
        batch = result.scalar_one_or_none()
        if batch is None:
            raise NotFoundError("Bulk payroll", batch_id)
        return batch

    async def list_batches(
        self,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[BulkPayroll], int]:
        """List batches newest first. Returns (page of batches, total count)."""
        query = select(BulkPayroll)
        if status:
            query = query.where(BulkPayroll.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.session.scalar(count_query) or 0

        query = query.order_by(BulkPayroll.created_at.desc(), BulkPayroll.id)
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(
            query.execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), total

    async def list_items(self, batch_id: UUID) -> list[BulkPayrollItem]:
        """List a batch's items in processing order."""
        result = await self.session.execute(
            select(BulkPayrollItem)
            .where(BulkPayrollItem.bulk_payroll_id == batch_id)
            .order_by(BulkPayrollItem.position)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_failure_manifest(self, batch_id: UUID) -> list[ItemFailure]:
        """List failed items of a batch with their error detail."""
        result = await self.session.execute(
            select(BulkPayrollItem)
            .where(
                BulkPayrollItem.bulk_payroll_id == batch_id,
                BulkPayrollItem.status == ItemStatus.FAILED.value,
            )
            .order_by(BulkPayrollItem.position)
            .execution_options(populate_existing=True)
        )
        return [
            ItemFailure(
                item_id=item.id,
                profile_id=item.profile_id,
                error_message=item.error_message or "",
            )
            for item in result.scalars().all()
        ]

    async def pause_batch(self, batch_id: UUID) -> BulkPayroll:
        """Pause a processing batch.

        The driver holding the batch stops before its next item. Pausing is
        also how a batch stranded in processing by a crashed driver is
        released so it can be started again.

        Raises:
            NotFoundError: If the batch does not exist
            InvalidTransitionError: If the batch is not processing
        """
        result = await self.session.execute(
            update(BulkPayroll)
            .where(
                BulkPayroll.id == batch_id,
                BulkPayroll.status == BatchStatus.PROCESSING.value,
            )
            .values(status=BatchStatus.PAUSED.value, run_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        if result.rowcount == 0:
            batch = await self.get_batch(batch_id)
            raise InvalidTransitionError(
                batch.status,
                BatchStatus.PAUSED.value,
                "only a processing batch can be paused",
            )

        logger.info("Paused bulk payroll %s", batch_id)
        return await self.get_batch(batch_id)
