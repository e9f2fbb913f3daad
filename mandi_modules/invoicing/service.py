"""
Invoicing Module Service (``mandi_modules.invoicing.service``).

Responsibility
--------------
Collaborator entry point for invoices: creation with line items, payment
application, FIFO distribution of a lump-sum party payment, and the
forced-paid override on sales invoices.

Architecture position
---------------------
**Modules layer** -- thin glue.  Each public method owns one transaction
through ``TransactionManager.run`` and delegates everything else to
``InvoiceService`` and ``PaymentAllocator``.

Invariants enforced
-------------------
* Each public method is atomic: the invoice, its lines, its stock
  movements, party balance and crate exchange (or the payment and its
  ledger entry) commit together or not at all.
* Invoice number format and the crate balance policy come from
  configuration, never from the caller.

Failure modes
-------------
Kernel errors propagate unchanged after rollback: ValidationError and its
subclasses, InsufficientStockError, TenantMismatchError, NotFoundError, and
OptimisticLockError once retries are exhausted.

Usage::

    invoicing = InvoicingService(transactions)
    invoice = invoicing.create_invoice_with_items(tenant_id, draft, actor_id)
    invoicing.apply_payment(
        tenant_id, InvoiceKind.SALES, invoice.id, retailer_id,
        Decimal("400"), CashPayment(), actor_id,
    )
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from mandi_config.bridges import invoice_service_options
from mandi_kernel.domain.invoices import InvoiceDraft, InvoiceKind
from mandi_kernel.domain.payment_methods import PaymentMethod
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.invoice import PurchaseInvoice, SalesInvoice
from mandi_kernel.services.invoice_service import InvoiceInfo, InvoiceService, invoice_info
from mandi_kernel.services.payment_allocator import (
    DistributionResult,
    ForcedPaidResult,
    PaymentAllocator,
    PaymentInfo,
)
from mandi_kernel.services.tenant_guard import TenantGuard
from mandi_modules._service_helpers import ModuleService

logger = get_logger("modules.invoicing.service")


class InvoicingService(ModuleService):
    """Invoices and payments, one committed transaction per call."""

    def create_invoice_with_items(
        self, tenant_id: UUID, draft: InvoiceDraft, actor_id: UUID
    ) -> InvoiceInfo:
        def work(session):
            service = InvoiceService(
                session, tenant_id, self.clock, **invoice_service_options(self.config)
            )
            return service.create_invoice(draft, actor_id)

        return self.run_operation("create_invoice_with_items", tenant_id, actor_id, work)

    def apply_payment(
        self,
        tenant_id: UUID,
        invoice_kind: InvoiceKind | str,
        invoice_id: UUID,
        party_id: UUID,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date | None = None,
        notes: str | None = None,
    ) -> PaymentInfo:
        def work(session):
            return PaymentAllocator(session, tenant_id, self.clock).apply_payment(
                invoice_kind,
                invoice_id,
                party_id,
                amount,
                method,
                actor_id,
                payment_date=payment_date,
                notes=notes,
            )

        return self.run_operation(
            "apply_payment", tenant_id, actor_id, work, invoice_id=invoice_id
        )

    def distribute_party_payment(
        self,
        tenant_id: UUID,
        invoice_kind: InvoiceKind | str,
        party_id: UUID,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date | None = None,
        notes: str | None = None,
    ) -> DistributionResult:
        """Spread one payment over the party's open invoices, oldest first."""

        def work(session):
            return PaymentAllocator(session, tenant_id, self.clock).distribute_party_payment(
                invoice_kind,
                party_id,
                amount,
                method,
                actor_id,
                payment_date=payment_date,
                notes=notes,
            )

        return self.run_operation("distribute_party_payment", tenant_id, actor_id, work)

    def mark_invoice_forced_paid(
        self,
        tenant_id: UUID,
        invoice_id: UUID,
        actor_id: UUID,
        notes: str | None = None,
    ) -> ForcedPaidResult:
        def work(session):
            return PaymentAllocator(session, tenant_id, self.clock).mark_forced_paid(
                invoice_id, actor_id, notes=notes
            )

        return self.run_operation(
            "mark_invoice_forced_paid", tenant_id, actor_id, work, invoice_id=invoice_id
        )

    def get_invoice(
        self, tenant_id: UUID, invoice_kind: InvoiceKind | str, invoice_id: UUID
    ) -> InvoiceInfo:
        model = PurchaseInvoice if InvoiceKind(invoice_kind) is InvoiceKind.PURCHASE else SalesInvoice

        def work(session):
            return invoice_info(TenantGuard(session, tenant_id).require(model, invoice_id))

        return self.run_operation("get_invoice", tenant_id, None, work, invoice_id=invoice_id)
