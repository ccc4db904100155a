"""Employee profile and working-hours models."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bulk_payroll.models.base import Base, TimestampMixin


class WorkingHoursStatus(str, Enum):
    """Working-hours approval status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class Profile(Base, TimestampMixin):
    """Employee profile. Read-only from the pay-run pipeline's perspective."""

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="employee")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    employment_type: Mapped[str | None] = mapped_column(String, nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'employee', 'accountant', 'operation', 'sales_manager')",
            name="profiles_role_check",
        ),
        CheckConstraint(
            "employment_type IS NULL OR employment_type IN ('full-time', 'part-time', 'casual')",
            name="profiles_employment_type_check",
        ),
        CheckConstraint(
            "hourly_rate IS NULL OR hourly_rate >= 0",
            name="profiles_hourly_rate_check",
        ),
    )

    # Relationships
    working_hours: Mapped[list[WorkingHour]] = relationship(back_populates="profile")


class WorkingHour(Base, TimestampMixin):
    """Captured working hours for one employee on one day."""

    __tablename__ = "working_hours"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    actual_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    overtime_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=WorkingHoursStatus.PENDING.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'paid')",
            name="working_hours_status_check",
        ),
        CheckConstraint("total_hours >= 0", name="working_hours_total_check"),
        Index("working_hours_profile_date_idx", "profile_id", "date"),
    )

    # Relationships
    profile: Mapped[Profile] = relationship(back_populates="working_hours")

    @property
    def payable_hours(self) -> Decimal:
        """Hours to pay: actual hours when captured, rostered hours otherwise."""
        if self.actual_hours is not None:
            return self.actual_hours
        return self.total_hours
