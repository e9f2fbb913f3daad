"""Read-only reporting queries."""

from mandi_modules.reporting.service import ReportingService

__all__ = ["ReportingService"]
