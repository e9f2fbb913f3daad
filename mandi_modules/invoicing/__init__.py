"""Invoices and payments."""

from mandi_modules.invoicing.service import InvoicingService

__all__ = ["InvoicingService"]
