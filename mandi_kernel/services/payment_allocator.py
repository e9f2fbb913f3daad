"""
PaymentAllocator -- applies payments to invoices and keeps every derived
amount that depends on them consistent.

Responsibility:
    - ``apply_payment``: one payment against one invoice.
    - ``distribute_party_payment``: one lump sum from (or to) a party,
      allocated oldest-invoice-first across its outstanding invoices.
    - ``mark_forced_paid``: the administrative write-off that closes a sales
      invoice without a payment, moving the remainder into the retailer's
      shortfall balance.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the invoicing module service inside one TransactionManager
    unit of work.  Delegates the ledger entry to BookRecorder.

Invariants enforced:
    - Σ payment.amount for an invoice == invoice.paid_amount.
    - invoice.balance_amount = total - paid_amount - shortfall_amount, and
      status = derive_invoice_status(...) -- both recomputed after every
      mutation, never assigned independently.
    - Exactly one ledger entry per apply_payment / distribution: cashbook
      for Cash, the payment's bank account bankbook otherwise.  Sales
      payments are inflows, purchase payments outflows.
    - Lock order: invoice(s), then party, then the pool owner (inside
      BookRecorder).  Every operation in the kernel takes locks in this
      order, so two payments on one invoice serialize without deadlock.

Failure modes (all raised before the first write):
    - InvalidAmountError: amount <= 0.
    - PaymentModeError: unknown method, PaymentLink on a purchase.
    - ValidationError: party does not own the invoice.
    - OverpaymentError: amount exceeds the outstanding balance.
    - InvoiceAlreadySettledError: force-paid on a zero-balance invoice.
    - NotFoundError / TenantMismatchError: unknown or foreign invoice,
      party or bank account.

Audit relevance:
    payment_applied, party_payment_distributed and invoice_forced_paid are
    logged with amounts before and after.  A forced-paid override writes no
    ledger entry: it is a write-off, not a cash movement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from mandi_kernel.domain.amounts import ZERO, round_money, to_decimal
from mandi_kernel.domain.invoices import (
    InvoiceKind,
    InvoiceStatus,
    compute_balance,
    derive_invoice_status,
)
from mandi_kernel.domain.ledger_pools import (
    LedgerReference,
    LedgerReferenceType,
    pool_for_method,
)
from mandi_kernel.domain.payment_methods import (
    PaymentMethod,
    PaymentMode,
    ensure_allowed_for_purchase,
    ensure_payment_method,
    method_reference_fields,
)
from mandi_kernel.exceptions import (
    InvalidAmountError,
    InvoiceAlreadySettledError,
    OverpaymentError,
    ValidationError,
)
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.invoice import (
    PurchaseInvoice,
    PurchasePayment,
    SalesInvoice,
    SalesPayment,
)
from mandi_kernel.models.item import BankAccount
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.services.base import BaseService
from mandi_kernel.services.book_recorder import BookRecorder, LedgerEntryInfo

logger = get_logger("services.payment_allocator")

_INVOICE_MODELS = {InvoiceKind.PURCHASE: PurchaseInvoice, InvoiceKind.SALES: SalesInvoice}
_PARTY_MODELS = {InvoiceKind.PURCHASE: Vendor, InvoiceKind.SALES: Retailer}


@dataclass(frozen=True)
class PaymentInfo:
    id: UUID
    invoice_kind: InvoiceKind
    invoice_id: UUID
    invoice_number: str
    party_id: UUID
    amount: Decimal
    payment_mode: PaymentMode
    payment_date: date
    paid_amount: Decimal
    balance_amount: Decimal
    status: InvoiceStatus
    distribution_id: UUID | None = None
    ledger_entry: LedgerEntryInfo | None = None


@dataclass(frozen=True)
class DistributionResult:
    """One party-level payment split across invoices, oldest first."""

    distribution_id: UUID
    invoice_kind: InvoiceKind
    party_id: UUID
    amount: Decimal
    allocations: tuple[PaymentInfo, ...]
    ledger_entry: LedgerEntryInfo


@dataclass(frozen=True)
class ForcedPaidResult:
    invoice_id: UUID
    invoice_number: str
    written_off: Decimal
    shortfall_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: InvoiceStatus
    retailer_shortfall_balance: Decimal


def _positive_amount(amount) -> Decimal:
    value = round_money(to_decimal(amount))
    if value <= 0:
        raise InvalidAmountError("amount", value, "> 0")
    return value


def _recompute(invoice: PurchaseInvoice | SalesInvoice) -> None:
    invoice.balance_amount = compute_balance(
        invoice.total, invoice.paid_amount, invoice.shortfall_amount
    )
    invoice.status = derive_invoice_status(
        invoice.total, invoice.paid_amount, invoice.shortfall_amount
    ).value


class PaymentAllocator(BaseService):
    """
    Per-tenant payment application.

    Contract:
        Every public method validates fully before its first write and
        flushes before returning.  It never commits.

    Guarantees:
        - After ``apply_payment``: paid_amount grew by exactly ``amount``,
          balance and status are recomputed, the party balance shrank by
          ``amount`` (retailer udhaar too, floored at zero), and one ledger
          entry was appended.
        - ``mark_forced_paid`` leaves paid_amount untouched.
    """

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _validate_method(self, kind: InvoiceKind, method: PaymentMethod) -> PaymentMethod:
        method = ensure_payment_method(method)
        if kind == InvoiceKind.PURCHASE:
            ensure_allowed_for_purchase(method)
        return method

    def _lock_party(self, kind: InvoiceKind, party_id: UUID) -> Vendor | Retailer:
        return self.guard.require(_PARTY_MODELS[kind], party_id, lock=True)

    # ------------------------------------------------------------------
    # Mutation helpers (called only after validation passed)
    # ------------------------------------------------------------------

    def _write_payment(
        self,
        kind: InvoiceKind,
        invoice: PurchaseInvoice | SalesInvoice,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date,
        notes: str | None,
        distribution_id: UUID | None = None,
    ) -> PurchasePayment | SalesPayment:
        fields = method_reference_fields(method)
        link_id = fields.pop("payment_link_id")
        if kind == InvoiceKind.SALES:
            payment = SalesPayment(retailer_id=invoice.retailer_id, payment_link_id=link_id, **fields)
        else:
            payment = PurchasePayment(vendor_id=invoice.vendor_id, **fields)
        payment.tenant_id = self.tenant_id
        payment.invoice_id = invoice.id
        payment.amount = amount
        payment.payment_date = payment_date
        payment.distribution_id = distribution_id
        payment.notes = notes
        payment.created_by_id = actor_id
        self.session.add(payment)

        invoice.paid_amount = invoice.paid_amount + amount
        _recompute(invoice)
        invoice.updated_by_id = actor_id
        return payment

    @staticmethod
    def _reduce_party(party: Vendor | Retailer, amount: Decimal, actor_id: UUID) -> None:
        party.balance = party.balance - amount
        if isinstance(party, Retailer):
            party.udhaar_balance = max(party.udhaar_balance - amount, ZERO)
        party.updated_by_id = actor_id

    def _payment_info(
        self,
        kind: InvoiceKind,
        invoice: PurchaseInvoice | SalesInvoice,
        payment: PurchasePayment | SalesPayment,
        entry: LedgerEntryInfo | None,
    ) -> PaymentInfo:
        return PaymentInfo(
            id=payment.id,
            invoice_kind=kind,
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            party_id=invoice.party_id,
            amount=payment.amount,
            payment_mode=PaymentMode(payment.payment_mode),
            payment_date=payment.payment_date,
            paid_amount=invoice.paid_amount,
            balance_amount=invoice.balance_amount,
            status=InvoiceStatus(invoice.status),
            distribution_id=payment.distribution_id,
            ledger_entry=entry,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def apply_payment(
        self,
        invoice_kind: InvoiceKind | str,
        invoice_id: UUID,
        party_id: UUID,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date | None = None,
        notes: str | None = None,
    ) -> PaymentInfo:
        """
        Apply one payment to one invoice.

        Checks run in order: amount, method, tenant, invoice (locked),
        party ownership (locked), bank account, overpayment.
        """
        kind = InvoiceKind(invoice_kind)
        amount = _positive_amount(amount)
        method = self._validate_method(kind, method)
        self.guard.require_tenant()

        invoice = self.guard.require(_INVOICE_MODELS[kind], invoice_id, lock=True)
        if invoice.party_id != party_id:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} does not belong to party {party_id}",
                field="party_id",
                expected=str(invoice.party_id),
                actual=str(party_id),
            )
        party = self._lock_party(kind, party_id)
        self.guard.require_optional(BankAccount, method.bank_account_id)

        if amount > invoice.balance_amount:
            logger.warning(
                "overpayment_rejected",
                extra={
                    "invoice_id": str(invoice.id),
                    "amount": amount,
                    "balance_amount": invoice.balance_amount,
                },
            )
            raise OverpaymentError(invoice.invoice_number, amount, invoice.balance_amount)

        when = payment_date or self.clock.today()
        balance_before = invoice.balance_amount
        payment = self._write_payment(kind, invoice, amount, method, actor_id, when, notes)
        self._reduce_party(party, amount, actor_id)
        self.session.flush()

        if kind == InvoiceKind.SALES:
            description = f"Received from {party.name} against {invoice.invoice_number}"
            reference = LedgerReference(LedgerReferenceType.SALES_PAYMENT, payment.id)
            signed = amount
        else:
            description = f"Paid to {party.name} against {invoice.invoice_number}"
            reference = LedgerReference(LedgerReferenceType.PURCHASE_PAYMENT, payment.id)
            signed = -amount
        entry = BookRecorder(self.session, self.tenant_id, self.clock).append_entry(
            pool_for_method(method), when, description, signed, reference, actor_id
        )

        logger.info(
            "payment_applied",
            extra={
                "payment_id": str(payment.id),
                "invoice_kind": kind.value,
                "invoice_id": str(invoice.id),
                "amount": amount,
                "payment_mode": method.mode.value,
                "balance_before": balance_before,
                "balance_after": invoice.balance_amount,
                "status": invoice.status,
            },
        )
        return self._payment_info(kind, invoice, payment, entry)

    def distribute_party_payment(
        self,
        invoice_kind: InvoiceKind | str,
        party_id: UUID,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date | None = None,
        notes: str | None = None,
    ) -> DistributionResult:
        """
        Allocate ``amount`` FIFO over the party's outstanding invoices.

        Order: oldest invoice_date first, ties by invoice_number.  One
        payment row per invoice touched, all sharing ``distribution_id``;
        one ledger entry for the whole amount.
        """
        kind = InvoiceKind(invoice_kind)
        amount = _positive_amount(amount)
        method = self._validate_method(kind, method)
        self.guard.require_tenant()
        model = _INVOICE_MODELS[kind]
        party_column = model.vendor_id if kind == InvoiceKind.PURCHASE else model.retailer_id

        # Resolve first so an unknown or foreign party fails as such
        self.guard.require(_PARTY_MODELS[kind], party_id)
        invoices = self.session.execute(
            select(model)
            .where(model.tenant_id == self.tenant_id)
            .where(party_column == party_id)
            .where(model.balance_amount > 0)
            .order_by(model.invoice_date, model.invoice_number)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        party = self._lock_party(kind, party_id)
        self.guard.require_optional(BankAccount, method.bank_account_id)

        outstanding = sum((inv.balance_amount for inv in invoices), ZERO)
        if amount > outstanding:
            logger.warning(
                "overpayment_rejected",
                extra={"party_id": str(party_id), "amount": amount, "outstanding": outstanding},
            )
            raise OverpaymentError(f"{kind.value} party {party.name}", amount, outstanding)

        distribution_id = uuid4()
        when = payment_date or self.clock.today()
        remaining = amount
        written: list[tuple[PurchaseInvoice | SalesInvoice, PurchasePayment | SalesPayment]] = []
        for invoice in invoices:
            if remaining == 0:
                break
            portion = min(remaining, invoice.balance_amount)
            payment = self._write_payment(
                kind, invoice, portion, method, actor_id, when, notes, distribution_id
            )
            written.append((invoice, payment))
            remaining -= portion
        self._reduce_party(party, amount, actor_id)
        self.session.flush()

        if kind == InvoiceKind.SALES:
            description = f"Received from {party.name} ({len(written)} invoices)"
            signed = amount
        else:
            description = f"Paid to {party.name} ({len(written)} invoices)"
            signed = -amount
        entry = BookRecorder(self.session, self.tenant_id, self.clock).append_entry(
            pool_for_method(method),
            when,
            description,
            signed,
            LedgerReference(LedgerReferenceType.PARTY_PAYMENT, distribution_id),
            actor_id,
        )

        logger.info(
            "party_payment_distributed",
            extra={
                "distribution_id": str(distribution_id),
                "invoice_kind": kind.value,
                "party_id": str(party_id),
                "amount": amount,
                "invoices_touched": len(written),
            },
        )
        return DistributionResult(
            distribution_id=distribution_id,
            invoice_kind=kind,
            party_id=party_id,
            amount=amount,
            allocations=tuple(
                self._payment_info(kind, invoice, payment, None) for invoice, payment in written
            ),
            ledger_entry=entry,
        )

    def mark_forced_paid(
        self,
        invoice_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> ForcedPaidResult:
        """
        Close a sales invoice, writing off its remaining balance.

        Postconditions:
            - shortfall_amount grew by the remainder; balance_amount == 0;
              status == Paid; is_forced_paid; paid_amount unchanged.
            - retailer.shortfall_balance grew by the remainder; retailer
              balance and udhaar (floored at zero) shrank by it.
            - No ledger entry is written.
        """
        self.guard.require_tenant()
        invoice = self.guard.require(SalesInvoice, invoice_id, lock=True)
        retailer = self.guard.require(Retailer, invoice.retailer_id, lock=True)

        remainder = invoice.balance_amount
        if remainder <= 0:
            raise InvoiceAlreadySettledError(invoice.invoice_number)

        invoice.shortfall_amount = invoice.shortfall_amount + remainder
        invoice.is_forced_paid = True
        _recompute(invoice)
        if notes:
            invoice.notes = f"{invoice.notes}\n{notes}" if invoice.notes else notes
        invoice.updated_by_id = actor_id

        retailer.shortfall_balance = retailer.shortfall_balance + remainder
        retailer.udhaar_balance = max(retailer.udhaar_balance - remainder, ZERO)
        retailer.balance = retailer.balance - remainder
        retailer.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "invoice_forced_paid",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "written_off": remainder,
                "paid_amount": invoice.paid_amount,
                "retailer_id": str(retailer.id),
            },
        )
        return ForcedPaidResult(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            written_off=remainder,
            shortfall_amount=invoice.shortfall_amount,
            paid_amount=invoice.paid_amount,
            balance_amount=invoice.balance_amount,
            status=InvoiceStatus(invoice.status),
            retailer_shortfall_balance=retailer.shortfall_balance,
        )
