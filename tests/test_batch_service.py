"""Tests for bulk payroll batch creation, reads and pause."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from bulk_payroll.models import BulkPayroll, BulkPayrollItem
from bulk_payroll.services import (
    BulkPayrollService,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

from .conftest import PERIOD_END, PERIOD_START


async def count_rows(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


class TestCreateBatch:
    """Test create_batch."""

    async def test_creates_draft_batch_with_pending_items(self, session, employees):
        service = BulkPayrollService(session)
        batch = await service.create_batch(
            name="January run",
            description="First half of January",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            employee_ids=[e.id for e in employees],
        )

        assert batch.id is not None
        assert batch.status == "draft"
        assert batch.total_records == 3
        assert batch.processed_records == 0
        assert batch.total_amount == 0
        assert batch.created_at is not None

        items = await service.list_items(batch.id)
        assert len(items) == 3
        assert {i.status for i in items} == {"pending"}
        assert [i.profile_id for i in items] == [e.id for e in employees]
        assert [i.position for i in items] == [0, 1, 2]
        assert all(i.payroll_id is None and i.error_message is None for i in items)

    async def test_duplicate_employees_collapse_to_one_item(self, session, employees):
        alice = employees[0]
        batch = await BulkPayrollService(session).create_batch(
            name="Dupes",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            employee_ids=[alice.id, alice.id, employees[1].id],
        )

        assert batch.total_records == 2
        assert await count_rows(session, BulkPayrollItem) == 2

    async def test_records_creator(self, session, employees):
        actor = employees[0].id
        batch = await BulkPayrollService(session).create_batch(
            name="Owned",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            employee_ids=[employees[1].id],
            created_by=actor,
        )
        assert batch.created_by == actor

    async def test_single_day_period_allowed(self, session, employees):
        batch = await BulkPayrollService(session).create_batch(
            name="One day",
            period_start=PERIOD_START,
            period_end=PERIOD_START,
            employee_ids=[employees[0].id],
        )
        assert batch.pay_period_start == batch.pay_period_end

    async def test_empty_selection_rejected_without_writes(self, session, employees):
        """Scenario C: no employees selected."""
        with pytest.raises(ValidationError) as exc_info:
            await BulkPayrollService(session).create_batch(
                name="Empty",
                period_start=PERIOD_START,
                period_end=PERIOD_END,
                employee_ids=[],
            )

        assert "At least one employee" in str(exc_info.value)
        assert await count_rows(session, BulkPayroll) == 0
        assert await count_rows(session, BulkPayrollItem) == 0

    async def test_blank_name_and_inverted_period_reported_together(self, session, employees):
        with pytest.raises(ValidationError) as exc_info:
            await BulkPayrollService(session).create_batch(
                name="   ",
                period_start=date(2024, 2, 1),
                period_end=date(2024, 1, 1),
                employee_ids=[employees[0].id],
            )

        assert len(exc_info.value.errors) == 2
        assert await count_rows(session, BulkPayroll) == 0

    async def test_unknown_employee_rejected(self, session, employees):
        with pytest.raises(ValidationError) as exc_info:
            await BulkPayrollService(session).create_batch(
                name="Ghost",
                period_start=PERIOD_START,
                period_end=PERIOD_END,
                employee_ids=[employees[0].id, uuid4()],
            )

        assert "Unknown employee" in str(exc_info.value)
        assert await count_rows(session, BulkPayroll) == 0


class TestReads:
    """Test get/list operations."""

    async def test_get_missing_batch(self, session):
        with pytest.raises(NotFoundError):
            await BulkPayrollService(session).get_batch(uuid4())

    async def test_list_batches_filters_and_paginates(self, session, employees):
        service = BulkPayrollService(session)
        for n in range(3):
            await service.create_batch(
                name=f"Run {n}",
                period_start=PERIOD_START,
                period_end=PERIOD_END,
                employee_ids=[employees[0].id],
            )

        batches, total = await service.list_batches(page=1, page_size=2)
        assert total == 3
        assert len(batches) == 2

        batches, total = await service.list_batches(page=2, page_size=2)
        assert len(batches) == 1

        batches, total = await service.list_batches(status="completed")
        assert total == 0
        assert batches == []

    async def test_list_batches_newest_first(self, session, employees):
        service = BulkPayrollService(session)
        for n in range(4):
            await service.create_batch(
                name=f"Run {n}",
                period_start=PERIOD_START,
                period_end=PERIOD_END,
                employee_ids=[employees[0].id],
            )

        batches, _ = await service.list_batches()
        assert [b.name for b in batches] == ["Run 3", "Run 2", "Run 1", "Run 0"]

        first_page, _ = await service.list_batches(page=1, page_size=2)
        second_page, _ = await service.list_batches(page=2, page_size=2)
        assert [b.name for b in first_page + second_page] == [b.name for b in batches]

    async def test_failure_manifest_empty_for_new_batch(self, session, employees):
        service = BulkPayrollService(session)
        batch = await service.create_batch(
            name="Clean",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            employee_ids=[employees[0].id],
        )
        assert await service.get_failure_manifest(batch.id) == []


class TestPauseBatch:
    """Test pause_batch."""

    async def test_cannot_pause_draft(self, session, employees):
        service = BulkPayrollService(session)
        batch = await service.create_batch(
            name="Draft",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            employee_ids=[employees[0].id],
        )

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.pause_batch(batch.id)
        assert exc_info.value.from_status == "draft"

        batch = await service.get_batch(batch.id)
        assert batch.status == "draft"

    async def test_pause_missing_batch(self, session):
        with pytest.raises(NotFoundError):
            await BulkPayrollService(session).pause_batch(uuid4())

    async def test_pause_releases_stranded_batch(self, session, employees):
        """A batch left processing by a crashed driver can be paused."""
        service = BulkPayrollService(session)
        batch = await service.create_batch(
            name="Stranded",
            period_start=PERIOD_START,
            period_end=PERIOD_END,
            employee_ids=[employees[0].id],
        )
        batch.status = "processing"
        batch.run_id = uuid4()
        await session.commit()

        paused = await service.pause_batch(batch.id)
        assert paused.status == "paused"
        assert paused.run_id is None
