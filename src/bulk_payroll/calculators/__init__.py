"""Pay computation."""

from bulk_payroll.calculators.pay_calculator import HoursResolver, PayCalculator, to_cents
from bulk_payroll.calculators.types import HoursSource, PayComputation, PayPolicy

__all__ = [
    "HoursResolver",
    "HoursSource",
    "PayCalculator",
    "PayComputation",
    "PayPolicy",
    "to_cents",
]
