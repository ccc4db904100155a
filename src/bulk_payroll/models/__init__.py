"""ORM models for the bulk payroll service."""

from bulk_payroll.models.base import Base, TimestampMixin
from bulk_payroll.models.payroll import BulkPayroll, BulkPayrollItem, Payroll, PayrollStatus
from bulk_payroll.models.workforce import Profile, WorkingHour, WorkingHoursStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "BulkPayroll",
    "BulkPayrollItem",
    "Payroll",
    "PayrollStatus",
    "Profile",
    "WorkingHour",
    "WorkingHoursStatus",
]
