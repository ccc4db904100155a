"""Type definitions for pay computation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

CENT = Decimal("0.01")


class HoursSource(str, Enum):
    """Where total hours for a pay period come from."""

    WORKING_HOURS = "working_hours"
    FIXED = "fixed"


@dataclass(frozen=True)
class PayPolicy:
    """Pay computation policy.

    Attributes:
        default_hourly_rate: Rate used when a profile has no hourly_rate.
        deduction_rate: Flat share of gross pay withheld, e.g. 0.10.
        hours_source: Aggregate approved working hours, or use fixed_total_hours.
        fixed_total_hours: Hours credited per period when hours_source is fixed.
    """

    default_hourly_rate: Decimal = Decimal("25.00")
    deduction_rate: Decimal = Decimal("0.10")
    hours_source: HoursSource = HoursSource.WORKING_HOURS
    fixed_total_hours: Decimal = Decimal("40")

    def __post_init__(self) -> None:
        if self.default_hourly_rate < 0:
            raise ValueError("default_hourly_rate must be non-negative")
        if self.default_hourly_rate != self.default_hourly_rate.quantize(CENT):
            raise ValueError("default_hourly_rate must be a whole number of cents")
        if not Decimal("0") <= self.deduction_rate <= Decimal("1"):
            raise ValueError("deduction_rate must be between 0 and 1")
        if self.fixed_total_hours < 0:
            raise ValueError("fixed_total_hours must be non-negative")
        if self.fixed_total_hours != self.fixed_total_hours.quantize(CENT):
            raise ValueError("fixed_total_hours must have at most two decimal places")

    @classmethod
    def from_settings(cls, settings: Any) -> PayPolicy:
        """Build a policy from application settings."""
        return cls(
            default_hourly_rate=settings.default_hourly_rate,
            deduction_rate=settings.deduction_rate,
            hours_source=HoursSource(settings.hours_source),
            fixed_total_hours=settings.fixed_total_hours,
        )


@dataclass(frozen=True)
class PayComputation:
    """Result of computing one employee's pay for one period."""

    total_hours: Decimal
    hourly_rate: Decimal
    gross_pay: Decimal
    deductions: Decimal
    net_pay: Decimal
