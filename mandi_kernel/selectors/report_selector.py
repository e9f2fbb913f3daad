"""
Module: mandi_kernel.selectors.report_selector
Responsibility: Aggregate business reports over stored bookkeeping data:
    the shortfall report (amounts written off by forced-paid settlements),
    the commission earned on purchases, and expenses summarised by category.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Date windows are inclusive at both ends; None leaves that side open.
    - Totals are exact Decimal sums of the rows returned.
    - Expense percentages are each category's share of the window total,
      rounded to 2 places; an empty window reports no rows and a zero total.
    - The shortfall report lists retailers with a positive shortfall_balance.
      With a window, a retailer is kept only when its latest sales invoice
      falls inside it; retailers without any sales invoice are dropped.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from mandi_kernel.domain.amounts import ZERO, round_money
from mandi_kernel.models.expense import Expense, ExpenseCategory
from mandi_kernel.models.invoice import PurchaseInvoice, SalesInvoice
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ShortfallRow:
    retailer_id: UUID
    retailer_name: str
    shortfall_balance: Decimal
    last_invoice_date: date | None


@dataclass(frozen=True)
class ShortfallReport:
    date_from: date | None
    date_to: date | None
    rows: tuple[ShortfallRow, ...]

    @property
    def total_shortfall(self) -> Decimal:
        return sum((r.shortfall_balance for r in self.rows), ZERO)


@dataclass(frozen=True)
class CommissionRow:
    invoice_id: UUID
    invoice_number: str
    invoice_date: date
    vendor_name: str
    gross_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class CommissionReport:
    date_from: date | None
    date_to: date | None
    rows: tuple[CommissionRow, ...]

    @property
    def total_commission(self) -> Decimal:
        return sum((r.commission_amount for r in self.rows), ZERO)


@dataclass(frozen=True)
class ExpenseCategoryTotal:
    category_id: UUID
    category_name: str
    amount: Decimal
    count: int
    percentage: Decimal


@dataclass(frozen=True)
class ExpensesSummary:
    date_from: date | None
    date_to: date | None
    rows: tuple[ExpenseCategoryTotal, ...]
    total_expenses: Decimal


def _within(stmt, column, date_from: date | None, date_to: date | None):
    if date_from is not None:
        stmt = stmt.where(column >= date_from)
    if date_to is not None:
        stmt = stmt.where(column <= date_to)
    return stmt


class ReportSelector(BaseSelector):
    """Shortfall, commission and expense reports for one tenant."""

    def shortfall_report(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> ShortfallReport:
        last_invoice = (
            select(func.max(SalesInvoice.invoice_date))
            .where(SalesInvoice.retailer_id == Retailer.id)
            .where(SalesInvoice.tenant_id == self.tenant_id)
            .correlate(Retailer)
            .scalar_subquery()
        )
        result = self.session.execute(
            select(Retailer, last_invoice)
            .where(Retailer.tenant_id == self.tenant_id)
            .where(Retailer.shortfall_balance > 0)
            .order_by(Retailer.shortfall_balance.desc(), Retailer.name)
        )

        rows = []
        for retailer, last_date in result:
            if date_from is not None or date_to is not None:
                if last_date is None:
                    continue
                if date_from is not None and last_date < date_from:
                    continue
                if date_to is not None and last_date > date_to:
                    continue
            rows.append(
                ShortfallRow(
                    retailer_id=retailer.id,
                    retailer_name=retailer.name,
                    shortfall_balance=retailer.shortfall_balance,
                    last_invoice_date=last_date,
                )
            )
        return ShortfallReport(date_from=date_from, date_to=date_to, rows=tuple(rows))

    def commission_report(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> CommissionReport:
        stmt = (
            select(PurchaseInvoice, Vendor.name)
            .join(Vendor, PurchaseInvoice.vendor_id == Vendor.id)
            .where(PurchaseInvoice.tenant_id == self.tenant_id)
            .order_by(PurchaseInvoice.invoice_date, PurchaseInvoice.invoice_number)
        )
        result = self.session.execute(
            _within(stmt, PurchaseInvoice.invoice_date, date_from, date_to)
        )
        rows = tuple(
            CommissionRow(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                invoice_date=invoice.invoice_date,
                vendor_name=vendor_name,
                gross_amount=invoice.gross_amount,
                commission_rate=invoice.commission_rate,
                commission_amount=invoice.commission_amount,
                net_amount=invoice.net_amount,
            )
            for invoice, vendor_name in result
        )
        return CommissionReport(date_from=date_from, date_to=date_to, rows=rows)

    def expenses_summary(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> ExpensesSummary:
        stmt = (
            select(Expense.category_id, ExpenseCategory.name, Expense.amount)
            .join(ExpenseCategory, Expense.category_id == ExpenseCategory.id)
            .where(Expense.tenant_id == self.tenant_id)
        )
        result = self.session.execute(_within(stmt, Expense.payment_date, date_from, date_to))

        # Summed in Python: SQLite's SUM over NUMERIC is a float.
        amounts: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[UUID, int] = defaultdict(int)
        names: dict[UUID, str] = {}
        for category_id, name, amount in result:
            amounts[category_id] += amount
            counts[category_id] += 1
            names[category_id] = name

        total = sum(amounts.values(), ZERO)
        rows = [
            ExpenseCategoryTotal(
                category_id=category_id,
                category_name=names[category_id],
                amount=amount,
                count=counts[category_id],
                percentage=round_money(amount * 100 / total) if total else ZERO,
            )
            for category_id, amount in amounts.items()
        ]
        rows.sort(key=lambda r: (-r.amount, r.category_name))
        return ExpensesSummary(
            date_from=date_from,
            date_to=date_to,
            rows=tuple(rows),
            total_expenses=total,
        )
