"""
CrateTracker -- crate lend/return events and the per-party crate count.

Responsibility:
    Records a crate transaction for exactly one party (retailer or vendor),
    adjusts that party's crate_balance by the signed quantity, and when a
    refundable deposit changes hands appends the matching cash or bank
    ledger entry in the same unit of work.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by the crates module service and by InvoiceService when an
    invoice carries a crate exchange.

Invariants enforced:
    - crateBalance(party) = Σ Given - Σ (Received + Returned).  The balance
      is never clamped; whether it may go negative is a policy choice
      (CrateBalancePolicy), and with ALLOW_NEGATIVE an over-return is
      recorded exactly as requested.
    - The party union is enforced at construction (domain/crate_party.py)
      and again by a CHECK constraint on the row.
    - A linked invoice belongs to the same tenant and the same party.

Failure modes:
    - InvalidAmountError: quantity not a positive integer, deposit < 0.
    - CrateOverReturnError: return beyond balance under REJECT_OVER_RETURN.
    - ValidationError: linked invoice of the wrong kind or party.
    - NotFoundError / TenantMismatchError: unknown or foreign party,
      invoice or bank account.

Audit relevance:
    crate_transaction_recorded is logged for every transaction;
    crate_balance_negative (WARNING) whenever a balance drops below zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy.orm import Session

from mandi_kernel.domain.amounts import round_money, to_decimal
from mandi_kernel.domain.clock import Clock
from mandi_kernel.domain.crate_party import (
    CrateDirection,
    CrateParty,
    CratePartyType,
    RetailerCrateParty,
    VendorCrateParty,
)
from mandi_kernel.domain.ledger_pools import (
    LedgerReference,
    LedgerReferenceType,
    pool_for_account,
)
from mandi_kernel.exceptions import (
    CrateOverReturnError,
    CratePartyError,
    InvalidAmountError,
    ValidationError,
)
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.crate import CrateTransaction
from mandi_kernel.models.invoice import PurchaseInvoice, SalesInvoice
from mandi_kernel.models.item import BankAccount
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.services.base import BaseService
from mandi_kernel.services.book_recorder import BookRecorder, LedgerEntryInfo

logger = get_logger("services.crate_tracker")


class CrateBalancePolicy(str, Enum):
    """What to do when a return exceeds the party's crate balance."""

    ALLOW_NEGATIVE = "allow_negative"
    REJECT_OVER_RETURN = "reject_over_return"


@dataclass(frozen=True)
class CrateTransactionInfo:
    id: UUID
    party: CrateParty
    direction: CrateDirection
    quantity: int
    deposit_amount: Decimal | None
    linked_invoice_id: UUID | None
    transaction_date: date
    party_crate_balance: int
    ledger_entry: LedgerEntryInfo | None


class CrateTracker(BaseService):
    """
    Per-tenant crate transaction recorder.

    Contract:
        ``record_crate_transaction`` validates everything, then locks the
        party, writes the transaction row, adjusts the crate balance and
        (deposit > 0) appends one ledger entry.

    Guarantees:
        - Given is +quantity, Received and Returned are -quantity.
        - A deposit is an inflow when crates are given (the deposit is
          collected) and an outflow when they come back (it is refunded).
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        balance_policy: CrateBalancePolicy = CrateBalancePolicy.ALLOW_NEGATIVE,
    ):
        super().__init__(session, tenant_id, clock)
        self.balance_policy = CrateBalancePolicy(balance_policy)
        self._books = BookRecorder(session, tenant_id, self.clock)

    def _resolve_party(self, party: CrateParty) -> Retailer | Vendor:
        if isinstance(party, RetailerCrateParty):
            return self.guard.require(Retailer, party.retailer_id, lock=True)
        if isinstance(party, VendorCrateParty):
            return self.guard.require(Vendor, party.vendor_id, lock=True)
        raise CratePartyError(type(party).__name__, "not a crate party")

    def _resolve_invoice(
        self, party: CrateParty, linked_invoice_id: UUID | None
    ) -> SalesInvoice | PurchaseInvoice | None:
        if linked_invoice_id is None:
            return None
        model = SalesInvoice if party.party_type == CratePartyType.RETAILER else PurchaseInvoice
        invoice = self.guard.require(model, linked_invoice_id)
        if invoice.party_id != party.party_id:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} belongs to another party",
                field="linked_invoice_id",
                expected=str(party.party_id),
                actual=str(invoice.party_id),
            )
        return invoice

    def record_crate_transaction(
        self,
        party: CrateParty,
        direction: CrateDirection | str,
        quantity: int,
        actor_id: UUID,
        deposit_amount: Decimal | None = None,
        linked_invoice_id: UUID | None = None,
        bank_account_id: UUID | None = None,
        transaction_date: date | None = None,
        notes: str | None = None,
    ) -> CrateTransactionInfo:
        direction = CrateDirection(direction)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidAmountError("quantity", quantity, "a positive integer")
        deposit = None
        if deposit_amount is not None:
            deposit = round_money(to_decimal(deposit_amount))
            if deposit < 0:
                raise InvalidAmountError("deposit_amount", deposit, ">= 0")

        self.guard.require_optional(BankAccount, bank_account_id)
        invoice = self._resolve_invoice(party, linked_invoice_id)
        holder = self._resolve_party(party)

        new_balance = holder.crate_balance + direction.sign * quantity
        if new_balance < 0:
            if self.balance_policy == CrateBalancePolicy.REJECT_OVER_RETURN:
                raise CrateOverReturnError(
                    party_id=str(party.party_id),
                    balance=holder.crate_balance,
                    quantity=quantity,
                )
            logger.warning(
                "crate_balance_negative",
                extra={
                    "party_type": party.party_type.value,
                    "party_id": str(party.party_id),
                    "crate_balance": new_balance,
                },
            )

        when = transaction_date or self.clock.today()
        row = CrateTransaction(
            tenant_id=self.tenant_id,
            party_type=party.party_type.value,
            retailer_id=getattr(party, "retailer_id", None),
            vendor_id=getattr(party, "vendor_id", None),
            direction=direction.value,
            quantity=quantity,
            deposit_amount=deposit,
            bank_account_id=bank_account_id,
            sales_invoice_id=invoice.id if isinstance(invoice, SalesInvoice) else None,
            purchase_invoice_id=invoice.id if isinstance(invoice, PurchaseInvoice) else None,
            transaction_date=when,
            notes=notes,
            created_by_id=actor_id,
        )
        self.session.add(row)
        holder.crate_balance = new_balance
        holder.updated_by_id = actor_id
        self.session.flush()

        entry = None
        if deposit is not None and deposit > 0:
            signed = deposit if direction == CrateDirection.GIVEN else -deposit
            entry = self._books.append_entry(
                pool_for_account(bank_account_id),
                when,
                f"Crate deposit {direction.value.lower()}: {quantity} crates, {holder.name}",
                signed,
                LedgerReference(LedgerReferenceType.CRATE_DEPOSIT, row.id),
                actor_id,
            )

        logger.info(
            "crate_transaction_recorded",
            extra={
                "crate_transaction_id": str(row.id),
                "party_type": party.party_type.value,
                "party_id": str(party.party_id),
                "direction": direction.value,
                "quantity": quantity,
                "deposit_amount": deposit,
                "crate_balance": new_balance,
            },
        )
        return CrateTransactionInfo(
            id=row.id,
            party=party,
            direction=direction,
            quantity=quantity,
            deposit_amount=deposit,
            linked_invoice_id=invoice.id if invoice is not None else None,
            transaction_date=when,
            party_crate_balance=new_balance,
            ledger_entry=entry,
        )
