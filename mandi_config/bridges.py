"""
Config → Kernel Bridges.

Functions that convert a BookkeepingConfig into kernel-compatible inputs.
These live in mandi_config (the producer) because the kernel must NEVER
import mandi_config.

Usage:
    from mandi_config.bridges import crate_balance_policy, invoice_service_options

    config = get_active_config()
    InvoiceService(session, tenant_id, **invoice_service_options(config))
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from mandi_config.schema import BookkeepingConfig
from mandi_kernel.domain.quantities import ItemUnit
from mandi_kernel.services.crate_tracker import CrateBalancePolicy


def crate_balance_policy(config: BookkeepingConfig) -> CrateBalancePolicy:
    return CrateBalancePolicy(config.crate_balance_policy)


def low_stock_thresholds(config: BookkeepingConfig) -> dict[ItemUnit, Decimal]:
    return config.low_stock_thresholds.by_unit()


def invoice_service_options(config: BookkeepingConfig) -> dict[str, Any]:
    """Keyword arguments for ``InvoiceService`` derived from ``config``."""
    prefixes = config.invoice_prefixes
    return {
        "crate_policy": crate_balance_policy(config),
        "purchase_prefix": prefixes.purchase,
        "sales_prefix": prefixes.sales,
        "number_digits": prefixes.digits,
    }
