"""
InvoiceService -- creates purchase and sales invoices with their line items,
stock movements, party balance effects and optional crate exchange.

Responsibility:
    Turns a validated InvoiceDraft into persisted rows in one flush sequence:
    invoice number, stock movements (IN for purchase, OUT for sales),
    invoice and lines, party balance, and the crate transaction when the
    draft carries one.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the invoicing module service inside one TransactionManager
    unit of work.  Delegates to StockLedger and CrateTracker.

Invariants enforced:
    - A new invoice has paid_amount = 0, balance_amount = total and status
      derived from those (Unpaid, or Paid for a zero total).
    - Sales total = Σ line amounts.  Purchase total (net) = gross - commission
      - deductions, never negative.
    - Invoice numbers are ``<prefix><zero-padded counter>``, unique per
      tenant and kind, from a locked counter.
    - Stock for a sale is validated for all lines together before any
      movement is written.
    - Lock order: party, then items (inside StockLedger, sorted by id), then
      the pool owner (inside CrateTracker/BookRecorder).

Failure modes:
    - ValidationError: empty draft, zero-quantity line, negative purchase net.
    - InsufficientStockError: a sale line exceeds the item's balance.
    - NotFoundError / TenantMismatchError: unknown or foreign party, item or
      bank account.
    - Any crate tracker error (CrateOverReturnError etc.) for an attached
      crate exchange.

Audit relevance:
    invoice_created is logged with number, kind, party and total.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from mandi_kernel.domain.amounts import ZERO
from mandi_kernel.domain.clock import Clock
from mandi_kernel.domain.crate_party import RetailerCrateParty, VendorCrateParty
from mandi_kernel.domain.invoices import (
    InvoiceDraft,
    InvoiceKind,
    InvoiceStatus,
    PurchaseInvoiceDraft,
    SalesInvoiceDraft,
    compute_purchase_totals,
    derive_invoice_status,
)
from mandi_kernel.domain.quantities import (
    ItemUnit,
    MovementDirection,
    MovementReference,
    MovementReferenceType,
    StockLine,
    StockQuantity,
)
from mandi_kernel.exceptions import ValidationError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.invoice import (
    PurchaseInvoice,
    PurchaseInvoiceItem,
    SalesInvoice,
    SalesInvoiceItem,
)
from mandi_kernel.models.item import BankAccount, Item
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.services.base import BaseService
from mandi_kernel.services.crate_tracker import (
    CrateBalancePolicy,
    CrateTracker,
    CrateTransactionInfo,
)
from mandi_kernel.services.sequence_service import SequenceService, invoice_sequence
from mandi_kernel.services.stock_ledger import StockLedger, StockMovementInfo

logger = get_logger("services.invoice")


@dataclass(frozen=True)
class InvoiceLineInfo:
    line_number: int
    item_id: UUID
    quantity: StockQuantity
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class InvoiceInfo:
    """
    Immutable DTO for a created (or read) invoice.

    ``total`` is the net amount for a purchase and the total amount for a
    sale.  The purchase breakdown fields are None for sales.
    """

    id: UUID
    kind: InvoiceKind
    invoice_number: str
    party_id: UUID
    invoice_date: date
    total: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    shortfall_amount: Decimal
    status: InvoiceStatus
    lines: tuple[InvoiceLineInfo, ...]
    movements: tuple[StockMovementInfo, ...] = ()
    crate_transaction: CrateTransactionInfo | None = None
    gross_amount: Decimal | None = None
    commission_amount: Decimal | None = None
    total_deductions: Decimal | None = None
    is_forced_paid: bool = False


def invoice_info(
    invoice: PurchaseInvoice | SalesInvoice,
    movements: tuple[StockMovementInfo, ...] = (),
    crate_transaction: CrateTransactionInfo | None = None,
) -> InvoiceInfo:
    lines = tuple(
        InvoiceLineInfo(
            line_number=line.line_number,
            item_id=line.item_id,
            quantity=StockQuantity(weight=line.weight, crates=line.crates, boxes=line.boxes),
            rate=line.rate,
            amount=line.amount,
        )
        for line in invoice.lines
    )
    purchase = isinstance(invoice, PurchaseInvoice)
    return InvoiceInfo(
        id=invoice.id,
        kind=invoice.kind,
        invoice_number=invoice.invoice_number,
        party_id=invoice.party_id,
        invoice_date=invoice.invoice_date,
        total=invoice.total,
        paid_amount=invoice.paid_amount,
        balance_amount=invoice.balance_amount,
        shortfall_amount=invoice.shortfall_amount,
        status=InvoiceStatus(invoice.status),
        lines=lines,
        movements=movements,
        crate_transaction=crate_transaction,
        gross_amount=invoice.gross_amount if purchase else None,
        commission_amount=invoice.commission_amount if purchase else None,
        total_deductions=invoice.total_deductions if purchase else None,
        is_forced_paid=False if purchase else invoice.is_forced_paid,
    )


class InvoiceService(BaseService):
    """
    Per-tenant invoice creation.

    Contract:
        ``create_invoice`` accepts a PurchaseInvoiceDraft or a
        SalesInvoiceDraft and returns an InvoiceInfo.  It flushes and never
        commits; any failure leaves the caller's transaction to roll back.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        crate_policy: CrateBalancePolicy = CrateBalancePolicy.ALLOW_NEGATIVE,
        purchase_prefix: str = "PI",
        sales_prefix: str = "SI",
        number_digits: int = 6,
    ):
        super().__init__(session, tenant_id, clock)
        self.crate_policy = crate_policy
        self._prefixes = {InvoiceKind.PURCHASE: purchase_prefix, InvoiceKind.SALES: sales_prefix}
        self._digits = number_digits

    def _next_number(self, kind: InvoiceKind) -> str:
        value = SequenceService(self.session).next_value(
            invoice_sequence(kind.value, self.tenant_id)
        )
        return f"{self._prefixes[kind]}{value:0{self._digits}d}"

    def _line_amounts(self, draft: InvoiceDraft) -> list[Decimal]:
        units: dict[UUID, ItemUnit] = {}
        for item_id in sorted({line.item_id for line in draft.lines}, key=str):
            units[item_id] = ItemUnit(self.guard.require(Item, item_id).unit)
        return [line.resolve_amount(units[line.item_id]) for line in draft.lines]

    def create_invoice(self, draft: InvoiceDraft, actor_id: UUID) -> InvoiceInfo:
        if isinstance(draft, PurchaseInvoiceDraft):
            kind, party_model = InvoiceKind.PURCHASE, Vendor
        elif isinstance(draft, SalesInvoiceDraft):
            kind, party_model = InvoiceKind.SALES, Retailer
        else:
            raise ValidationError(
                f"Unsupported invoice draft {type(draft).__name__}",
                field="draft",
                expected="PurchaseInvoiceDraft or SalesInvoiceDraft",
                actual=type(draft).__name__,
            )

        self.guard.require_tenant()
        party = self.guard.require(party_model, draft.party_id, lock=True)
        amounts = self._line_amounts(draft)
        gross = sum(amounts, ZERO)
        totals = compute_purchase_totals(gross, draft.charges) if kind == InvoiceKind.PURCHASE else None
        total = totals.net_amount if totals is not None else gross
        if draft.crates is not None:
            self.guard.require_optional(BankAccount, draft.crates.bank_account_id)

        invoice_id = uuid4()
        invoice_date = draft.invoice_date or self.clock.today()
        number = self._next_number(kind)

        reference = MovementReference(
            reference_type=(
                MovementReferenceType.PURCHASE_INVOICE
                if kind == InvoiceKind.PURCHASE
                else MovementReferenceType.SALES_INVOICE
            ),
            reference_id=invoice_id,
            reference_number=number,
            vendor_id=party.id if kind == InvoiceKind.PURCHASE else None,
            retailer_id=party.id if kind == InvoiceKind.SALES else None,
        )
        movements = StockLedger(self.session, self.tenant_id, self.clock).record_movements(
            [StockLine(line.item_id, line.quantity, line.rate) for line in draft.lines],
            MovementDirection.IN if kind == InvoiceKind.PURCHASE else MovementDirection.OUT,
            reference,
            actor_id,
            movement_date=invoice_date,
        )

        common = dict(
            id=invoice_id,
            tenant_id=self.tenant_id,
            invoice_number=number,
            invoice_date=invoice_date,
            paid_amount=ZERO,
            balance_amount=total,
            status=derive_invoice_status(total, ZERO).value,
            notes=draft.notes,
            created_by_id=actor_id,
        )
        if kind == InvoiceKind.PURCHASE:
            charges = draft.charges
            invoice = PurchaseInvoice(
                vendor_id=party.id,
                gross_amount=totals.gross_amount,
                commission_rate=charges.commission_rate,
                commission_amount=totals.commission_amount,
                labour=charges.labour,
                truck_freight=charges.truck_freight,
                crate_freight=charges.crate_freight,
                post_expenses=charges.post_expenses,
                draft_expenses=charges.draft_expenses,
                vatav=charges.vatav,
                other_expenses=charges.other_expenses,
                advance=charges.advance,
                total_deductions=totals.total_deductions,
                net_amount=totals.net_amount,
                **common,
            )
            line_model = PurchaseInvoiceItem
        else:
            invoice = SalesInvoice(
                retailer_id=party.id,
                total_amount=total,
                shortfall_amount=ZERO,
                is_forced_paid=False,
                **common,
            )
            line_model = SalesInvoiceItem
        self.session.add(invoice)
        self.session.flush()

        for number_in_invoice, (line, amount) in enumerate(zip(draft.lines, amounts), start=1):
            self.session.add(
                line_model(
                    tenant_id=self.tenant_id,
                    invoice_id=invoice.id,
                    line_number=number_in_invoice,
                    item_id=line.item_id,
                    weight=line.quantity.weight,
                    crates=line.quantity.crates,
                    boxes=line.quantity.boxes,
                    rate=line.rate,
                    amount=amount,
                    created_by_id=actor_id,
                )
            )

        party.balance = party.balance + total
        if isinstance(party, Retailer):
            party.udhaar_balance = party.udhaar_balance + total
        party.updated_by_id = actor_id
        self.session.flush()
        self.session.refresh(invoice, attribute_names=["lines"])

        crate_info = None
        if draft.crates is not None:
            crate_party = (
                VendorCrateParty(vendor_id=party.id)
                if kind == InvoiceKind.PURCHASE
                else RetailerCrateParty(retailer_id=party.id)
            )
            crate_info = CrateTracker(
                self.session, self.tenant_id, self.clock, self.crate_policy
            ).record_crate_transaction(
                crate_party,
                draft.crates.direction,
                draft.crates.quantity,
                actor_id,
                deposit_amount=draft.crates.deposit_amount,
                linked_invoice_id=invoice.id,
                bank_account_id=draft.crates.bank_account_id,
                transaction_date=invoice_date,
                notes=f"With invoice {number}",
            )

        logger.info(
            "invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": number,
                "invoice_kind": kind.value,
                "party_id": str(party.id),
                "total": total,
                "line_count": len(draft.lines),
            },
        )
        return invoice_info(invoice, tuple(movements), crate_info)
