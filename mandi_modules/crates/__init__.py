"""Crate exchanges outside invoices."""

from mandi_modules.crates.service import CrateService

__all__ = ["CrateService"]
