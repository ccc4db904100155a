"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from bulk_payroll.calculators import to_cents


# ============================================================================
# Bulk payroll schemas
# ============================================================================


class BulkPayrollCreate(BaseModel):
    """Schema for creating a bulk payroll batch."""

    name: str
    description: str | None = None
    pay_period_start: date
    pay_period_end: date
    employee_ids: list[UUID] = Field(default_factory=list)


class BulkPayrollResponse(BaseModel):
    """Schema for bulk payroll response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    pay_period_start: date
    pay_period_end: date
    created_by: UUID | None = None
    status: str
    total_records: int
    processed_records: int
    succeeded_records: int
    failed_records: int
    total_amount: Decimal
    last_processed_item_id: UUID | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("total_amount")
    def serialize_total_amount(self, value: Decimal) -> Decimal:
        return to_cents(value)


class BulkPayrollListResponse(BaseModel):
    """Schema for listing bulk payroll batches."""

    items: list[BulkPayrollResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# Item schemas
# ============================================================================


class BulkPayrollItemResponse(BaseModel):
    """Schema for bulk payroll item response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bulk_payroll_id: UUID
    profile_id: UUID
    position: int
    status: str
    payroll_id: UUID | None = None
    error_message: str | None = None
    processed_at: datetime | None = None


class BulkPayrollItemListResponse(BaseModel):
    """Schema for listing batch items."""

    items: list[BulkPayrollItemResponse]
    total: int


class ItemFailureResponse(BaseModel):
    """One failed item of a batch."""

    model_config = ConfigDict(from_attributes=True)

    item_id: UUID
    profile_id: UUID
    error_message: str


class FailureManifestResponse(BaseModel):
    """Failed items of a batch."""

    bulk_payroll_id: UUID
    failures: list[ItemFailureResponse]


# ============================================================================
# Run schemas
# ============================================================================


class BatchRunResponse(BaseModel):
    """Outcome of starting or resuming a batch."""

    model_config = ConfigDict(from_attributes=True)

    batch_id: UUID
    status: str
    message: str
    total_records: int
    processed: int
    succeeded: int
    failed: int
    total_amount: Decimal
    failures: list[ItemFailureResponse]

    @field_serializer("total_amount")
    def serialize_total_amount(self, value: Decimal) -> Decimal:
        return to_cents(value)


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str
    code: str
    errors: list[str] | None = None
