"""
Shared fixtures for module service tests.

Module services own their transactions, so these tests build on
``committed_seed`` and read results back through the services themselves
(or through ``transactions.run``).  They never use the ``session`` fixture:
with in-memory SQLite every session shares one connection, and an open
test session would see (and hold) the module's transaction.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from mandi_kernel.domain.invoices import (
    InvoiceLineDraft,
    PurchaseInvoiceDraft,
    SalesInvoiceDraft,
)
from mandi_kernel.domain.quantities import StockQuantity
from mandi_modules.banking.service import BankingService
from mandi_modules.crates.service import CrateService
from mandi_modules.expenses.service import ExpenseService
from mandi_modules.invoicing.service import InvoicingService
from mandi_modules.inventory.service import InventoryService
from mandi_modules.masters.service import MastersService
from mandi_modules.reporting.service import ReportingService


@pytest.fixture
def invoicing(transactions, config, deterministic_clock) -> InvoicingService:
    return InvoicingService(transactions, config, deterministic_clock)


@pytest.fixture
def banking(transactions, config, deterministic_clock) -> BankingService:
    return BankingService(transactions, config, deterministic_clock)


@pytest.fixture
def expenses(transactions, config, deterministic_clock) -> ExpenseService:
    return ExpenseService(transactions, config, deterministic_clock)


@pytest.fixture
def inventory(transactions, config, deterministic_clock) -> InventoryService:
    return InventoryService(transactions, config, deterministic_clock)


@pytest.fixture
def masters(transactions, config, deterministic_clock) -> MastersService:
    return MastersService(transactions, config, deterministic_clock)


@pytest.fixture
def crate_service(transactions, config, deterministic_clock) -> CrateService:
    return CrateService(transactions, config, deterministic_clock)


@pytest.fixture
def strict_crate_service(transactions, config, deterministic_clock) -> CrateService:
    """Crate exchanges under the reject_over_return policy."""
    return CrateService(
        transactions, replace(config, crate_balance_policy="reject_over_return"), deterministic_clock
    )


@pytest.fixture
def reporting(transactions, config, deterministic_clock) -> ReportingService:
    return ReportingService(transactions, config, deterministic_clock)


@pytest.fixture
def committed_stock(invoicing, committed_seed, test_actor_id):
    """A committed purchase of 200 kg tomato at 15/kg (total 3000)."""
    return invoicing.create_invoice_with_items(
        committed_seed.tenant_id,
        PurchaseInvoiceDraft(
            vendor_id=committed_seed.vendor_id,
            lines=[
                InvoiceLineDraft(
                    committed_seed.tomato_id, StockQuantity.of(weight=200), Decimal("15")
                )
            ],
        ),
        test_actor_id,
    )


@pytest.fixture
def sell(invoicing, committed_seed, committed_stock, test_actor_id):
    """
    Commit a tomato sale worth ``amount`` at 20/kg.

    Usage::

        invoice = sell(1000)    # 50 kg
    """

    def _sell(amount, invoice_date=None):
        weight = Decimal(str(amount)) / Decimal("20")
        return invoicing.create_invoice_with_items(
            committed_seed.tenant_id,
            SalesInvoiceDraft(
                retailer_id=committed_seed.retailer_id,
                lines=[
                    InvoiceLineDraft(
                        committed_seed.tomato_id, StockQuantity.of(weight=weight), Decimal("20")
                    )
                ],
                invoice_date=invoice_date,
            ),
            test_actor_id,
        )

    return _sell
