"""Master data: tenants, vendors, retailers, items."""

from mandi_modules.masters.service import MastersService

__all__ = ["MastersService"]
