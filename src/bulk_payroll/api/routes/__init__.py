"""API routes."""

from bulk_payroll.api.routes.bulk_payrolls import router as bulk_payrolls_router
from bulk_payroll.api.routes.health import router as health_router

__all__ = ["bulk_payrolls_router", "health_router"]
