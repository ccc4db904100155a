"""Bulk payroll pay-run pipeline for workforce management."""

__version__ = "0.1.0"
