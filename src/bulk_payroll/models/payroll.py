"""Payroll record and bulk payroll batch models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bulk_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from bulk_payroll.models.workforce import Profile


class PayrollStatus(str, Enum):
    """Payroll record status values. Owned by the payroll subsystem."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


class Payroll(Base, TimestampMixin):
    """Payroll record for one employee for one pay period."""

    __tablename__ = "payroll"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="RESTRICT"),
        nullable=False,
    )
    pay_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PayrollStatus.PENDING.value
    )
    # Deterministic key for pipeline-created records; NULL for manual entries
    idempotency_key: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="payroll_idempotency_key_unique"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'paid')",
            name="payroll_status_check",
        ),
        CheckConstraint(
            "pay_period_end >= pay_period_start",
            name="payroll_period_check",
        ),
    )

    # Relationships
    profile: Mapped[Profile] = relationship()


class BulkPayroll(Base, TimestampMixin):
    """One bulk payroll run covering a pay period and a set of employees."""

    __tablename__ = "bulk_payroll"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    pay_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    succeeded_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 4), nullable=False, default=Decimal("0")
    )
    last_processed_item_id: Mapped[UUID | None] = mapped_column(nullable=True)
    # Token of the driver currently holding the batch; rotated on every claim
    run_id: Mapped[UUID | None] = mapped_column(nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'processing', 'paused', 'completed', "
            "'completed_with_errors', 'failed')",
            name="bulk_payroll_status_check",
        ),
        CheckConstraint(
            "pay_period_end >= pay_period_start",
            name="bulk_payroll_period_check",
        ),
        CheckConstraint(
            "processed_records >= 0 AND processed_records <= total_records",
            name="bulk_payroll_progress_check",
        ),
    )

    # Relationships
    items: Mapped[list[BulkPayrollItem]] = relationship(
        back_populates="bulk_payroll",
        order_by="BulkPayrollItem.position",
    )


class BulkPayrollItem(Base):
    """One employee's unit of work within a bulk payroll batch."""

    __tablename__ = "bulk_payroll_items"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    bulk_payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("bulk_payroll.id", ondelete="CASCADE"),
        nullable=False,
    )
    # No FK: employees may be removed after the batch is created
    profile_id: Mapped[UUID] = mapped_column(nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    payroll_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll.id", ondelete="SET NULL"),
        nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("bulk_payroll_id", "profile_id", name="bulk_payroll_item_unique"),
        UniqueConstraint("bulk_payroll_id", "position", name="bulk_payroll_item_position_unique"),
        CheckConstraint(
            "status IN ('pending', 'processed', 'failed')",
            name="bulk_payroll_item_status_check",
        ),
        CheckConstraint(
            "(status = 'failed') = (error_message IS NOT NULL)",
            name="bulk_payroll_item_error_check",
        ),
    )

    # Relationships
    bulk_payroll: Mapped[BulkPayroll] = relationship(back_populates="items")
    payroll: Mapped[Payroll | None] = relationship()
