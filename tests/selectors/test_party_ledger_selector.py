"""
PartyLedgerSelector tests: party statements, the udhaar book and crate
ledgers.
"""

from datetime import date
from decimal import Decimal

import pytest

from mandi_kernel.domain.crate_party import (
    CrateDirection,
    CratePartyType,
    RetailerCrateParty,
)
from mandi_kernel.domain.invoices import (
    InvoiceKind,
    InvoiceLineDraft,
    PurchaseInvoiceDraft,
    SalesInvoiceDraft,
)
from mandi_kernel.domain.payment_methods import CashPayment
from mandi_kernel.domain.quantities import StockQuantity
from mandi_kernel.exceptions import TenantMismatchError
from mandi_kernel.models.party import Retailer
from mandi_kernel.selectors.party_ledger_selector import (
    PartyLedgerEntryType,
    PartyLedgerSelector,
)
from mandi_kernel.services.crate_tracker import CrateTracker
from mandi_kernel.services.invoice_service import InvoiceService
from mandi_kernel.services.party_service import MasterDataService
from mandi_kernel.services.payment_allocator import PaymentAllocator

D = Decimal


@pytest.fixture
def selector(session, seeded) -> PartyLedgerSelector:
    return PartyLedgerSelector(session, seeded.tenant_id)


@pytest.fixture
def trading(session, seeded, deterministic_clock, test_actor_id):
    """
    Ramesh Farms supplies 200 kg of tomato; Gupta Fruits buys twice, pays
    once and takes five crates against a deposit.
    """
    invoices = InvoiceService(session, seeded.tenant_id, deterministic_clock)
    allocator = PaymentAllocator(session, seeded.tenant_id, deterministic_clock)
    crates = CrateTracker(session, seeded.tenant_id, deterministic_clock)

    purchase = invoices.create_invoice(
        PurchaseInvoiceDraft(
            vendor_id=seeded.vendor_id,
            lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=200), D("15"))],
            invoice_date=date(2024, 3, 31),
        ),
        test_actor_id,
    )
    allocator.apply_payment(
        InvoiceKind.PURCHASE, purchase.id, seeded.vendor_id, D("1000"), CashPayment(), test_actor_id,
        payment_date=date(2024, 4, 1),
    )

    def sale(weight, day):
        return invoices.create_invoice(
            SalesInvoiceDraft(
                retailer_id=seeded.retailer_id,
                lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=weight), D("20"))],
                invoice_date=date(2024, 4, day),
            ),
            test_actor_id,
        )

    first = sale(50, 1)
    allocator.apply_payment(
        InvoiceKind.SALES, first.id, seeded.retailer_id, D("400"), CashPayment(), test_actor_id,
        payment_date=date(2024, 4, 2),
    )
    crates.record_crate_transaction(
        RetailerCrateParty(seeded.retailer_id), CrateDirection.GIVEN, 5, test_actor_id,
        deposit_amount=D("250"), transaction_date=date(2024, 4, 3),
    )
    second = sale(30, 4)
    return {"purchase": purchase, "first": first, "second": second}


class TestRetailerStatement:
    def test_rows_in_date_order_with_running_balance(self, selector, seeded, trading):
        statement = selector.party_ledger(CratePartyType.RETAILER, seeded.retailer_id)

        assert [r.entry_type for r in statement.rows] == [
            PartyLedgerEntryType.INVOICE,
            PartyLedgerEntryType.PAYMENT,
            PartyLedgerEntryType.CRATE_DEPOSIT,
            PartyLedgerEntryType.INVOICE,
        ]
        assert [r.balance for r in statement.rows] == [D("1000"), D("600"), D("850"), D("1450")]
        assert statement.rows[1].reference_number == trading["first"].invoice_number
        assert statement.total_debit == D("1850")
        assert statement.total_credit == D("400")
        assert statement.closing_balance == D("1450")
        assert statement.party_name == "Gupta Fruits"

    def test_closing_balance_differs_from_retailer_balance_by_deposits(
        self, selector, seeded, session, trading
    ):
        statement = selector.party_ledger("retailer", seeded.retailer_id)
        retailer = session.get(Retailer, seeded.retailer_id)
        assert statement.closing_balance - retailer.balance == D("250")

    def test_foreign_retailer_rejected(self, selector, other_tenant):
        with pytest.raises(TenantMismatchError):
            selector.party_ledger(CratePartyType.RETAILER, other_tenant.retailer_id)


class TestVendorStatement:
    def test_invoice_then_payment(self, selector, seeded, trading):
        statement = selector.party_ledger(CratePartyType.VENDOR, seeded.vendor_id)
        assert [(r.debit, r.credit) for r in statement.rows] == [(D("3000"), 0), (0, D("1000"))]
        assert statement.closing_balance == D("2000")

    def test_vendor_without_activity(self, selector, seeded):
        statement = selector.party_ledger(CratePartyType.VENDOR, seeded.vendor_id)
        assert statement.rows == ()
        assert statement.closing_balance == 0


class TestUdhaarBook:
    def test_largest_balance_first(self, selector, session, seeded, trading, deterministic_clock, test_actor_id):
        small = MasterDataService(session, seeded.tenant_id).create_retailer("Bansal Stores", test_actor_id)
        InvoiceService(session, seeded.tenant_id, deterministic_clock).create_invoice(
            SalesInvoiceDraft(
                retailer_id=small.id,
                lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=10), D("20"))],
            ),
            test_actor_id,
        )
        MasterDataService(session, seeded.tenant_id).create_retailer("Zero Dues", test_actor_id)

        book = selector.udhaar_book()

        assert [r.retailer_name for r in book] == ["Gupta Fruits", "Bansal Stores"]
        assert book[0].udhaar_balance == D("1200")
        assert book[1].udhaar_balance == D("200")


class TestCrateLedger:
    def test_running_balance(self, selector, session, seeded, deterministic_clock, test_actor_id):
        tracker = CrateTracker(session, seeded.tenant_id, deterministic_clock)
        party = RetailerCrateParty(seeded.retailer_id)
        tracker.record_crate_transaction(party, "Given", 10, test_actor_id, transaction_date=date(2024, 4, 1))
        tracker.record_crate_transaction(party, "Returned", 4, test_actor_id, transaction_date=date(2024, 4, 2))
        tracker.record_crate_transaction(party, "Given", 2, test_actor_id, transaction_date=date(2024, 4, 3))

        rows = selector.crate_ledger(party)

        assert [r.signed_quantity for r in rows] == [10, -4, 2]
        assert [r.running_balance for r in rows] == [10, 6, 8]
        assert rows[-1].running_balance == session.get(Retailer, seeded.retailer_id).crate_balance
