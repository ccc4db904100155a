"""Per-employee pay computation for bulk payroll runs."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bulk_payroll.calculators.types import CENT, HoursSource, PayComputation, PayPolicy
from bulk_payroll.models import WorkingHour, WorkingHoursStatus

if TYPE_CHECKING:
    from bulk_payroll.models import Profile


def to_cents(amount: Decimal) -> Decimal:
    """Round a money amount to cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class PayCalculator:
    """Computes gross, deductions and net pay.

    gross = hourly_rate × total_hours (exact)
    deductions = gross × deduction_rate (to cents)
    net = gross - deductions (exact)
    """

    def __init__(self, policy: PayPolicy | None = None):
        self.policy = policy or PayPolicy()

    def resolve_rate(self, profile: Profile) -> Decimal:
        """Profile rate, or the policy default when unset."""
        if profile.hourly_rate is None:
            return self.policy.default_hourly_rate
        return Decimal(profile.hourly_rate)

    def compute(self, hourly_rate: Decimal, total_hours: Decimal) -> PayComputation:
        """Compute pay for a rate and hour total.

        Gross and net are left unrounded so that both identities hold on the
        stored record; only deductions are rounded.
        """
        if hourly_rate < 0:
            raise ValueError(f"Hourly rate must be non-negative, got {hourly_rate}")
        if total_hours < 0:
            raise ValueError(f"Total hours must be non-negative, got {total_hours}")

        gross = hourly_rate * total_hours
        deductions = to_cents(gross * self.policy.deduction_rate)
        return PayComputation(
            total_hours=total_hours,
            hourly_rate=hourly_rate,
            gross_pay=gross,
            deductions=deductions,
            net_pay=gross - deductions,
        )


class HoursResolver:
    """Resolves total payable hours for an employee within a pay period."""

    def __init__(self, session: AsyncSession, policy: PayPolicy | None = None):
        self.session = session
        self.policy = policy or PayPolicy()

    async def total_hours(
        self,
        profile_id: UUID,
        period_start: date,
        period_end: date,
    ) -> Decimal:
        """Sum approved working hours inside [period_start, period_end].

        Uses actual_hours when captured, total_hours otherwise. With a fixed
        hours source the configured constant is returned instead.
        """
        if self.policy.hours_source == HoursSource.FIXED:
            return self.policy.fixed_total_hours

        result = await self.session.execute(
            select(WorkingHour).where(
                WorkingHour.profile_id == profile_id,
                WorkingHour.status == WorkingHoursStatus.APPROVED.value,
                WorkingHour.work_date >= period_start,
                WorkingHour.work_date <= period_end,
            )
        )
        entries = result.scalars().all()
        return sum((Decimal(e.payable_hours) for e in entries), Decimal("0"))
