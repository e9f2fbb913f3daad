"""
Bookkeeping configuration schema.

Frozen dataclasses that the loader builds from a YAML configuration set.
These are plain data; the bridges module turns them into the parameters
kernel services accept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from mandi_kernel.domain.quantities import ItemUnit


@dataclass(frozen=True)
class InvoicePrefixes:
    """Invoice number format: ``<prefix><counter zero-padded to digits>``."""

    purchase: str = "PI"
    sales: str = "SI"
    digits: int = 6


@dataclass(frozen=True)
class LowStockThresholds:
    """Per-unit level below which an item is reported as low on stock."""

    crates: Decimal = Decimal("5")
    boxes: Decimal = Decimal("10")
    kgs: Decimal = Decimal("50")

    def by_unit(self) -> dict[ItemUnit, Decimal]:
        return {
            ItemUnit.CRATES: self.crates,
            ItemUnit.BOXES: self.boxes,
            ItemUnit.KGS: self.kgs,
        }


@dataclass(frozen=True)
class BookkeepingConfig:
    """The full configuration set, as returned by ``get_active_config()``."""

    config_id: str = "default"
    money_decimal_places: int = 2
    currency: str = "INR"
    invoice_prefixes: InvoicePrefixes = field(default_factory=InvoicePrefixes)
    crate_balance_policy: str = "allow_negative"
    low_stock_thresholds: LowStockThresholds = field(default_factory=LowStockThresholds)
    optimistic_retry_attempts: int = 3
