"""
Module: mandi_kernel.models.invoice
Responsibility: ORM persistence for purchase and sales invoices, their line
    items, and the payments applied to them.
Architecture position: Kernel > Models.  May import from db/ and domain/.
Invariants enforced:
    - invoice_number is unique within a tenant per invoice kind.
    - balance_amount = total - paid_amount - shortfall_amount and status is
      derived from those amounts (domain/invoices.py); both are written only
      by services/invoice_service.py and services/payment_allocator.py.
    - Payment rows are append-only (db/immutability.py); Σ payment.amount for
      an invoice equals its paid_amount.
Failure modes:
    - IntegrityError on duplicate (tenant_id, invoice_number).
    - StaleDataError (-> OptimisticLockError) on concurrent invoice updates.
Audit relevance:
    Each payment row records mode-specific references (cheque number, UPI
    reference, payment link) so a bankbook line can be traced back to the
    instrument that produced it.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mandi_kernel.db.base import TenantScopedBase, UUIDString
from mandi_kernel.db.types import Money, Quantity
from mandi_kernel.domain.invoices import InvoiceKind, InvoiceStatus


class InvoiceColumns(TenantScopedBase):
    """Columns shared by both invoice kinds."""

    __abstract__ = True

    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False)

    invoice_date: Mapped[date] = mapped_column(nullable=False)

    paid_amount: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    balance_amount: Mapped[Money] = mapped_column(nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        String(20), nullable=False, default=InvoiceStatus.UNPAID.value
    )

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class PurchaseInvoice(InvoiceColumns):
    """
    Purchase from a vendor (patti).

    The invoice total is ``net_amount``: the gross sale value of the
    vendor's produce less commission and deductions.
    """

    __tablename__ = "purchase_invoices"
    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_purchase_invoice_number"),
        Index("idx_purchase_invoice_vendor", "tenant_id", "vendor_id"),
    )

    kind = InvoiceKind.PURCHASE

    vendor_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("vendors.id"), nullable=False
    )

    gross_amount: Mapped[Money] = mapped_column(nullable=False)
    commission_rate: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    commission_amount: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    labour: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    truck_freight: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    crate_freight: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    post_expenses: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    draft_expenses: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    vatav: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    other_expenses: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    advance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    net_amount: Mapped[Money] = mapped_column(nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    lines: Mapped[list[PurchaseInvoiceItem]] = relationship(
        order_by="PurchaseInvoiceItem.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def total(self) -> Decimal:
        return self.net_amount

    @property
    def party_id(self) -> UUID:
        return self.vendor_id

    @property
    def shortfall_amount(self) -> Decimal:
        return Decimal("0")

    def __repr__(self) -> str:
        return f"<PurchaseInvoice {self.invoice_number} {self.status}>"


class SalesInvoice(InvoiceColumns):
    """Sale to a retailer, usually on credit."""

    __tablename__ = "sales_invoices"
    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_sales_invoice_number"),
        Index("idx_sales_invoice_retailer", "tenant_id", "retailer_id"),
    )

    kind = InvoiceKind.SALES

    retailer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("retailers.id"), nullable=False
    )

    total_amount: Mapped[Money] = mapped_column(nullable=False)

    # Written off by a forced-paid override; zero otherwise
    shortfall_amount: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    is_forced_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    lines: Mapped[list[SalesInvoiceItem]] = relationship(
        order_by="SalesInvoiceItem.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def total(self) -> Decimal:
        return self.total_amount

    @property
    def party_id(self) -> UUID:
        return self.retailer_id

    def __repr__(self) -> str:
        return f"<SalesInvoice {self.invoice_number} {self.status}>"


class InvoiceLineColumns(TenantScopedBase):
    __abstract__ = True

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False
    )

    weight: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))
    crates: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))
    boxes: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))

    rate: Mapped[Money] = mapped_column(nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)


class PurchaseInvoiceItem(InvoiceLineColumns):
    __tablename__ = "purchase_invoice_items"
    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_purchase_invoice_line"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_invoices.id"), nullable=False
    )


class SalesInvoiceItem(InvoiceLineColumns):
    __tablename__ = "sales_invoice_items"
    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_sales_invoice_line"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=False
    )


class PaymentColumns(TenantScopedBase):
    """Columns shared by purchase and sales payments."""

    __abstract__ = True

    amount: Mapped[Money] = mapped_column(nullable=False)

    payment_mode: Mapped[str] = mapped_column(String(20), nullable=False)

    payment_date: Mapped[date] = mapped_column(nullable=False)

    bank_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bank_accounts.id"), nullable=True
    )

    cheque_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    upi_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Shared by every row written by one party-level FIFO distribution
    distribution_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class PurchasePayment(PaymentColumns):
    """Payment made to a vendor against one purchase invoice."""

    __tablename__ = "purchase_payments"
    __table_args__ = (
        Index("idx_purchase_payment_invoice", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_invoices.id"), nullable=False
    )

    vendor_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("vendors.id"), nullable=False
    )

    @property
    def party_id(self) -> UUID:
        return self.vendor_id


class SalesPayment(PaymentColumns):
    """Payment received from a retailer against one sales invoice."""

    __tablename__ = "sales_payments"
    __table_args__ = (
        Index("idx_sales_payment_invoice", "invoice_id"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=False
    )

    retailer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("retailers.id"), nullable=False
    )

    payment_link_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @property
    def party_id(self) -> UUID:
        return self.retailer_id
