"""Manual stock movements, count corrections and balance-cache rebuilds."""

from mandi_modules.inventory.service import InventoryService

__all__ = ["InventoryService"]
