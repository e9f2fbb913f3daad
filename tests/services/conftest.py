"""
Fixtures for kernel service tests.

Every service here shares the ``session`` fixture's transaction and the
deterministic clock, so tests can observe flushed state without commits.
"""

from decimal import Decimal

import pytest

from mandi_kernel.domain.invoices import (
    InvoiceLineDraft,
    PurchaseInvoiceDraft,
    SalesInvoiceDraft,
)
from mandi_kernel.domain.quantities import StockQuantity
from mandi_kernel.services.book_recorder import BookRecorder
from mandi_kernel.services.crate_tracker import CrateTracker
from mandi_kernel.services.invoice_service import InvoiceService
from mandi_kernel.services.payment_allocator import PaymentAllocator


@pytest.fixture
def invoices(session, seeded, deterministic_clock) -> InvoiceService:
    return InvoiceService(session, seeded.tenant_id, deterministic_clock)


@pytest.fixture
def allocator(session, seeded, deterministic_clock) -> PaymentAllocator:
    return PaymentAllocator(session, seeded.tenant_id, deterministic_clock)


@pytest.fixture
def books(session, seeded, deterministic_clock) -> BookRecorder:
    return BookRecorder(session, seeded.tenant_id, deterministic_clock)


@pytest.fixture
def crates(session, seeded, deterministic_clock) -> CrateTracker:
    return CrateTracker(session, seeded.tenant_id, deterministic_clock)


@pytest.fixture
def stocked(invoices, seeded, test_actor_id):
    """A purchase of 200 kg tomato at 15/kg, so sales have stock to draw on."""
    return invoices.create_invoice(
        PurchaseInvoiceDraft(
            vendor_id=seeded.vendor_id,
            lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=200), Decimal("15"))],
        ),
        test_actor_id,
    )


@pytest.fixture
def make_sale(invoices, seeded, stocked, test_actor_id):
    """
    Create a tomato sale worth ``amount`` at 20/kg.

    Usage::

        invoice = make_sale(1000)            # 50 kg
        invoice = make_sale(400, invoice_date=date(2024, 3, 1))
    """

    def _make_sale(amount, invoice_date=None, retailer_id=None):
        weight = Decimal(str(amount)) / Decimal("20")
        draft = SalesInvoiceDraft(
            retailer_id=retailer_id or seeded.retailer_id,
            lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=weight), Decimal("20"))],
            invoice_date=invoice_date,
        )
        return invoices.create_invoice(draft, test_actor_id)

    return _make_sale
