"""
Module: mandi_kernel.selectors.party_ledger_selector
Responsibility: Party statements, the udhaar (credit) book and the crate
    ledger of a party.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Statement rows are ordered by date, then creation time, then type
      order (invoice, payment, crate deposit), then reference; the running
      balance is Σ debit - Σ credit over the rows so far.
    - Vendor statements: purchase invoices (net) are debits, payments are
      credits.  Retailer statements: sales invoices are debits, payments are
      credits, crate deposits are debits when crates are Given and credits
      when they come back.
    - The crate ledger's final running balance equals the party's stored
      crate_balance.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import select

from mandi_kernel.domain.amounts import ZERO
from mandi_kernel.domain.crate_party import (
    CrateDirection,
    CrateParty,
    CratePartyType,
    RetailerCrateParty,
)
from mandi_kernel.models.crate import CrateTransaction
from mandi_kernel.models.invoice import (
    PurchaseInvoice,
    PurchasePayment,
    SalesInvoice,
    SalesPayment,
)
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.selectors.base import BaseSelector


class PartyLedgerEntryType(str, Enum):
    INVOICE = "INVOICE"
    PAYMENT = "PAYMENT"
    CRATE_DEPOSIT = "CRATE_DEPOSIT"

    @property
    def order(self) -> int:
        return _TYPE_ORDER[self]


_TYPE_ORDER = {
    PartyLedgerEntryType.INVOICE: 0,
    PartyLedgerEntryType.PAYMENT: 1,
    PartyLedgerEntryType.CRATE_DEPOSIT: 2,
}


@dataclass(frozen=True)
class PartyLedgerRow:
    entry_date: date
    entry_type: PartyLedgerEntryType
    reference_id: UUID
    reference_number: str | None
    description: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class PartyStatement:
    party_type: CratePartyType
    party_id: UUID
    party_name: str
    rows: tuple[PartyLedgerRow, ...]

    @property
    def total_debit(self) -> Decimal:
        return sum((r.debit for r in self.rows), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((r.credit for r in self.rows), ZERO)

    @property
    def closing_balance(self) -> Decimal:
        return self.rows[-1].balance if self.rows else ZERO


@dataclass(frozen=True)
class UdhaarRow:
    retailer_id: UUID
    retailer_name: str
    phone: str | None
    udhaar_balance: Decimal
    balance: Decimal


@dataclass(frozen=True)
class CrateLedgerRow:
    transaction_id: UUID
    transaction_date: date
    direction: CrateDirection
    quantity: int
    signed_quantity: int
    deposit_amount: Decimal | None
    running_balance: int


@dataclass(frozen=True)
class _Pending:
    entry_date: date
    created_at: datetime | None
    entry_type: PartyLedgerEntryType
    reference_id: UUID
    reference_number: str | None
    description: str
    debit: Decimal
    credit: Decimal

    def sort_key(self):
        # created_at may be None only for rows still pending a flush.
        return (
            self.entry_date,
            self.created_at or datetime.min,
            self.entry_type.order,
            str(self.reference_number or ""),
            str(self.reference_id),
        )


class PartyLedgerSelector(BaseSelector):
    """Party-facing statements for one tenant."""

    def _vendor_rows(self, vendor: Vendor) -> list[_Pending]:
        pending = []
        invoices = self.session.execute(
            select(PurchaseInvoice).where(PurchaseInvoice.vendor_id == vendor.id)
        ).scalars()
        numbers = {}
        for inv in invoices:
            numbers[inv.id] = inv.invoice_number
            pending.append(
                _Pending(
                    inv.invoice_date, inv.created_at, PartyLedgerEntryType.INVOICE,
                    inv.id, inv.invoice_number, "Purchase invoice", inv.net_amount, ZERO,
                )
            )
        for pay in self.session.execute(
            select(PurchasePayment).where(PurchasePayment.vendor_id == vendor.id)
        ).scalars():
            pending.append(
                _Pending(
                    pay.payment_date, pay.created_at, PartyLedgerEntryType.PAYMENT,
                    pay.id, numbers.get(pay.invoice_id), f"Payment ({pay.payment_mode})",
                    ZERO, pay.amount,
                )
            )
        return pending

    def _retailer_rows(self, retailer: Retailer) -> list[_Pending]:
        pending = []
        numbers = {}
        for inv in self.session.execute(
            select(SalesInvoice).where(SalesInvoice.retailer_id == retailer.id)
        ).scalars():
            numbers[inv.id] = inv.invoice_number
            pending.append(
                _Pending(
                    inv.invoice_date, inv.created_at, PartyLedgerEntryType.INVOICE,
                    inv.id, inv.invoice_number, "Sales invoice", inv.total_amount, ZERO,
                )
            )
        for pay in self.session.execute(
            select(SalesPayment).where(SalesPayment.retailer_id == retailer.id)
        ).scalars():
            pending.append(
                _Pending(
                    pay.payment_date, pay.created_at, PartyLedgerEntryType.PAYMENT,
                    pay.id, numbers.get(pay.invoice_id), f"Payment ({pay.payment_mode})",
                    ZERO, pay.amount,
                )
            )
        for crate in self.session.execute(
            select(CrateTransaction)
            .where(CrateTransaction.retailer_id == retailer.id)
            .where(CrateTransaction.deposit_amount > 0)
        ).scalars():
            given = CrateDirection(crate.direction) is CrateDirection.GIVEN
            pending.append(
                _Pending(
                    crate.transaction_date, crate.created_at, PartyLedgerEntryType.CRATE_DEPOSIT,
                    crate.id, numbers.get(crate.sales_invoice_id),
                    f"Crate deposit ({crate.direction}, {crate.quantity})",
                    crate.deposit_amount if given else ZERO,
                    ZERO if given else crate.deposit_amount,
                )
            )
        return pending

    def party_ledger(self, party_type: CratePartyType | str, party_id: UUID) -> PartyStatement:
        party_type = CratePartyType(party_type)
        if party_type is CratePartyType.VENDOR:
            party = self._require(Vendor, party_id)
            pending = self._vendor_rows(party)
        else:
            party = self._require(Retailer, party_id)
            pending = self._retailer_rows(party)

        running = ZERO
        rows = []
        for p in sorted(pending, key=_Pending.sort_key):
            running = running + p.debit - p.credit
            rows.append(
                PartyLedgerRow(
                    entry_date=p.entry_date,
                    entry_type=p.entry_type,
                    reference_id=p.reference_id,
                    reference_number=p.reference_number,
                    description=p.description,
                    debit=p.debit,
                    credit=p.credit,
                    balance=running,
                )
            )
        return PartyStatement(
            party_type=party_type,
            party_id=party.id,
            party_name=party.name,
            rows=tuple(rows),
        )

    def udhaar_book(self) -> list[UdhaarRow]:
        """Active retailers owing on credit, largest balance first."""
        retailers = self.session.execute(
            select(Retailer)
            .where(Retailer.tenant_id == self.tenant_id)
            .where(Retailer.is_active.is_(True))
            .where(Retailer.udhaar_balance != 0)
            .order_by(Retailer.udhaar_balance.desc(), Retailer.name)
        ).scalars()
        return [
            UdhaarRow(
                retailer_id=r.id,
                retailer_name=r.name,
                phone=r.phone,
                udhaar_balance=r.udhaar_balance,
                balance=r.balance,
            )
            for r in retailers
        ]

    def crate_ledger(self, party: CrateParty) -> list[CrateLedgerRow]:
        if isinstance(party, RetailerCrateParty):
            owner = self._require(Retailer, party.retailer_id)
            column = CrateTransaction.retailer_id
        else:
            owner = self._require(Vendor, party.vendor_id)
            column = CrateTransaction.vendor_id
        transactions = self.session.execute(
            select(CrateTransaction)
            .where(column == owner.id)
            .order_by(CrateTransaction.transaction_date, CrateTransaction.created_at)
        ).scalars()

        running = 0
        rows = []
        for tx in transactions:
            direction = CrateDirection(tx.direction)
            signed = direction.sign * tx.quantity
            running += signed
            rows.append(
                CrateLedgerRow(
                    transaction_id=tx.id,
                    transaction_date=tx.transaction_date,
                    direction=direction,
                    quantity=tx.quantity,
                    signed_quantity=signed,
                    deposit_amount=tx.deposit_amount,
                    running_balance=running,
                )
            )
        return rows
