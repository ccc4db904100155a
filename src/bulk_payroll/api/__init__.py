"""HTTP API for bulk payroll runs."""
