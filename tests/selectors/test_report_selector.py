"""
ReportSelector tests: shortfall, commission and expense reports.
"""

from datetime import date
from decimal import Decimal

import pytest

from mandi_kernel.domain.invoices import (
    InvoiceKind,
    InvoiceLineDraft,
    PurchaseCharges,
    PurchaseInvoiceDraft,
    SalesInvoiceDraft,
)
from mandi_kernel.domain.payment_methods import CashPayment, PaymentMode
from mandi_kernel.domain.quantities import StockQuantity
from mandi_kernel.models.expense import Expense
from mandi_kernel.selectors.report_selector import ReportSelector
from mandi_kernel.services.invoice_service import InvoiceService
from mandi_kernel.services.party_service import MasterDataService
from mandi_kernel.services.payment_allocator import PaymentAllocator

D = Decimal


@pytest.fixture
def selector(session, seeded) -> ReportSelector:
    return ReportSelector(session, seeded.tenant_id)


@pytest.fixture
def invoices(session, seeded, deterministic_clock) -> InvoiceService:
    return InvoiceService(session, seeded.tenant_id, deterministic_clock)


def _purchase(invoices, seeded, actor_id, weight, rate, invoice_date, charges=None):
    return invoices.create_invoice(
        PurchaseInvoiceDraft(
            vendor_id=seeded.vendor_id,
            lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=weight), D(rate))],
            invoice_date=invoice_date,
            charges=charges or PurchaseCharges(),
        ),
        actor_id,
    )


def _sale(invoices, seeded, retailer_id, actor_id, weight, invoice_date):
    return invoices.create_invoice(
        SalesInvoiceDraft(
            retailer_id=retailer_id,
            lines=[InvoiceLineDraft(seeded.tomato_id, StockQuantity.of(weight=weight), D("20"))],
            invoice_date=invoice_date,
        ),
        actor_id,
    )


class TestShortfallReport:
    @pytest.fixture
    def written_off(self, session, seeded, invoices, deterministic_clock, test_actor_id):
        """
        Gupta Fruits buys 1000 on 1 April, pays 400 and is force-paid (600
        written off); Bansal Stores buys 200 on 20 March and is force-paid
        in full.
        """
        allocator = PaymentAllocator(session, seeded.tenant_id, deterministic_clock)
        bansal = MasterDataService(session, seeded.tenant_id).create_retailer("Bansal Stores", test_actor_id)
        _purchase(invoices, seeded, test_actor_id, 200, "15", date(2024, 3, 1))

        gupta_sale = _sale(invoices, seeded, seeded.retailer_id, test_actor_id, 50, date(2024, 4, 1))
        allocator.apply_payment(
            InvoiceKind.SALES, gupta_sale.id, seeded.retailer_id, D("400"), CashPayment(), test_actor_id
        )
        allocator.mark_forced_paid(gupta_sale.id, test_actor_id)

        bansal_sale = _sale(invoices, seeded, bansal.id, test_actor_id, 10, date(2024, 3, 20))
        allocator.mark_forced_paid(bansal_sale.id, test_actor_id)
        return bansal

    def test_largest_shortfall_first(self, selector, seeded, written_off):
        report = selector.shortfall_report()
        assert [(r.retailer_name, r.shortfall_balance) for r in report.rows] == [
            ("Gupta Fruits", D("600")),
            ("Bansal Stores", D("200")),
        ]
        assert report.total_shortfall == D("800")
        assert report.rows[0].last_invoice_date == date(2024, 4, 1)

    def test_window_on_last_invoice_date(self, selector, written_off):
        april = selector.shortfall_report(date_from=date(2024, 4, 1))
        assert [r.retailer_name for r in april.rows] == ["Gupta Fruits"]

        march = selector.shortfall_report(date_to=date(2024, 3, 31))
        assert [r.retailer_name for r in march.rows] == ["Bansal Stores"]
        assert march.total_shortfall == D("200")

    def test_no_write_offs(self, selector, seeded):
        report = selector.shortfall_report()
        assert report.rows == ()
        assert report.total_shortfall == 0

    def test_other_tenant_not_reported(self, session, other_tenant, written_off):
        assert ReportSelector(session, other_tenant.tenant_id).shortfall_report().rows == ()


class TestCommissionReport:
    @pytest.fixture
    def purchases(self, invoices, seeded, test_actor_id):
        with_commission = _purchase(
            invoices, seeded, test_actor_id, 200, "15", date(2024, 4, 2),
            PurchaseCharges(commission_rate=D("6"), labour=D("100")),
        )
        plain = _purchase(invoices, seeded, test_actor_id, 100, "10", date(2024, 3, 15))
        return with_commission, plain

    def test_rows_in_date_order(self, selector, purchases):
        with_commission, plain = purchases
        report = selector.commission_report()
        assert [r.invoice_id for r in report.rows] == [plain.id, with_commission.id]

        row = report.rows[1]
        assert row.vendor_name == "Ramesh Farms"
        assert row.gross_amount == D("3000")
        assert row.commission_rate == D("6")
        assert row.commission_amount == D("180")
        assert row.net_amount == D("2720")
        assert report.total_commission == D("180")

    def test_window_is_inclusive(self, selector, purchases):
        report = selector.commission_report(date(2024, 4, 2), date(2024, 4, 2))
        assert [r.invoice_number for r in report.rows] == [purchases[0].invoice_number]

    def test_empty_window(self, selector, purchases):
        report = selector.commission_report(date_from=date(2024, 5, 1))
        assert report.rows == ()
        assert report.total_commission == 0


class TestExpensesSummary:
    @pytest.fixture
    def categories(self, session, seeded, test_actor_id):
        masters = MasterDataService(session, seeded.tenant_id)
        return (
            masters.create_expense_category("Hamali", test_actor_id),
            masters.create_expense_category("Tea", test_actor_id),
        )

    @pytest.fixture
    def spent(self, session, seeded, categories, test_actor_id):
        hamali, tea = categories
        for category, amount, day in [
            (hamali, "300", date(2024, 4, 1)),
            (hamali, "100", date(2024, 4, 2)),
            (tea, "100", date(2024, 4, 2)),
            (hamali, "50", date(2024, 3, 1)),
        ]:
            session.add(
                Expense(
                    tenant_id=seeded.tenant_id,
                    category_id=category.id,
                    amount=D(amount),
                    payment_mode=PaymentMode.CASH.value,
                    payment_date=day,
                    created_by_id=test_actor_id,
                )
            )
        session.flush()
        return categories

    def test_grouped_by_category(self, selector, spent):
        hamali, tea = spent
        summary = selector.expenses_summary(date(2024, 4, 1), date(2024, 4, 30))

        assert summary.total_expenses == D("500")
        assert [(r.category_id, r.amount, r.count, r.percentage) for r in summary.rows] == [
            (hamali.id, D("400"), 2, D("80.00")),
            (tea.id, D("100"), 1, D("20.00")),
        ]

    def test_unbounded_window_includes_everything(self, selector, spent):
        summary = selector.expenses_summary()
        assert summary.total_expenses == D("550")
        assert summary.rows[0].count == 3

    def test_no_expenses(self, selector, categories):
        summary = selector.expenses_summary()
        assert summary.rows == ()
        assert summary.total_expenses == 0

    def test_other_tenant_not_counted(self, session, other_tenant, spent):
        summary = ReportSelector(session, other_tenant.tenant_id).expenses_summary()
        assert summary.total_expenses == 0
