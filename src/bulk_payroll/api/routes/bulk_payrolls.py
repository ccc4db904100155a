"""Bulk payroll API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from bulk_payroll.api.dependencies import ActorId, DbSession, Policy
from bulk_payroll.api.schemas import (
    BatchRunResponse,
    BulkPayrollCreate,
    BulkPayrollItemListResponse,
    BulkPayrollItemResponse,
    BulkPayrollListResponse,
    BulkPayrollResponse,
    ErrorResponse,
    FailureManifestResponse,
    ItemFailureResponse,
)
from bulk_payroll.services import BulkPayrollPipeline, BulkPayrollService

router = APIRouter(prefix="/bulk-payrolls", tags=["bulk-payrolls"])


# ============================================================================
# Bulk Payroll CRUD
# ============================================================================


@router.post(
    "",
    response_model=BulkPayrollResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_bulk_payroll(
    db: DbSession,
    actor_id: ActorId,
    payload: BulkPayrollCreate,
) -> BulkPayrollResponse:
    """Create a bulk payroll batch in draft status with one item per employee."""
    service = BulkPayrollService(db)
    batch = await service.create_batch(
        name=payload.name,
        description=payload.description,
        period_start=payload.pay_period_start,
        period_end=payload.pay_period_end,
        employee_ids=payload.employee_ids,
        created_by=actor_id,
    )
    return BulkPayrollResponse.model_validate(batch)


@router.get("", response_model=BulkPayrollListResponse)
async def list_bulk_payrolls(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> BulkPayrollListResponse:
    """List bulk payroll batches, newest first."""
    service = BulkPayrollService(db)
    batches, total = await service.list_batches(
        status=status_filter, page=page, page_size=page_size
    )
    return BulkPayrollListResponse(
        items=[BulkPayrollResponse.model_validate(b) for b in batches],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{bulk_payroll_id}",
    response_model=BulkPayrollResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_bulk_payroll(
    db: DbSession,
    bulk_payroll_id: Annotated[UUID, Path()],
) -> BulkPayrollResponse:
    """Get a bulk payroll batch with its current progress."""
    batch = await BulkPayrollService(db).get_batch(bulk_payroll_id)
    return BulkPayrollResponse.model_validate(batch)


@router.get(
    "/{bulk_payroll_id}/items",
    response_model=BulkPayrollItemListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_bulk_payroll_items(
    db: DbSession,
    bulk_payroll_id: Annotated[UUID, Path()],
) -> BulkPayrollItemListResponse:
    """List a batch's items in processing order."""
    service = BulkPayrollService(db)
    await service.get_batch(bulk_payroll_id)
    items = await service.list_items(bulk_payroll_id)
    return BulkPayrollItemListResponse(
        items=[BulkPayrollItemResponse.model_validate(i) for i in items],
        total=len(items),
    )


@router.get(
    "/{bulk_payroll_id}/failures",
    response_model=FailureManifestResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_failure_manifest(
    db: DbSession,
    bulk_payroll_id: Annotated[UUID, Path()],
) -> FailureManifestResponse:
    """List the employees whose items failed, with the error detail."""
    service = BulkPayrollService(db)
    await service.get_batch(bulk_payroll_id)
    failures = await service.get_failure_manifest(bulk_payroll_id)
    return FailureManifestResponse(
        bulk_payroll_id=bulk_payroll_id,
        failures=[ItemFailureResponse.model_validate(f) for f in failures],
    )


# ============================================================================
# Bulk Payroll State Transitions
# ============================================================================


@router.post(
    "/{bulk_payroll_id}/start",
    response_model=BatchRunResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def start_bulk_payroll(
    db: DbSession,
    policy: Policy,
    bulk_payroll_id: Annotated[UUID, Path()],
) -> BatchRunResponse:
    """Start, or resume after a pause, processing a batch."""
    pipeline = BulkPayrollPipeline(db, policy)
    result = await pipeline.start_batch(bulk_payroll_id)
    return BatchRunResponse.model_validate(result)


@router.post(
    "/{bulk_payroll_id}/pause",
    response_model=BulkPayrollResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pause_bulk_payroll(
    db: DbSession,
    bulk_payroll_id: Annotated[UUID, Path()],
) -> BulkPayrollResponse:
    """Pause a processing batch; its driver stops before the next item."""
    batch = await BulkPayrollService(db).pause_batch(bulk_payroll_id)
    return BulkPayrollResponse.model_validate(batch)
