"""
Invoice variants, line drafts and the status function.

Responsibility:
    - ``InvoiceKind`` / ``InvoiceStatus`` tags.
    - ``derive_invoice_status``: the pure function from amounts to status.
    - Draft payloads for purchase and sales invoices, validated at
      construction, with the pure amount arithmetic (line amounts, purchase
      commission and deductions).

Architecture position:
    Kernel > Domain -- pure values, no I/O.

Invariants enforced:
    - balance = total - paid - shortfall; shortfall is non-zero only after a
      forced-paid override, so for ordinary invoices balance = total - paid.
    - Status: balance == 0 -> Paid; balance > 0 and paid > 0 -> PartiallyPaid;
      otherwise Unpaid.  Nothing else ever sets status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from mandi_kernel.domain.amounts import ZERO, round_money, to_decimal
from mandi_kernel.domain.crate_party import CrateDirection
from mandi_kernel.domain.quantities import ItemUnit, StockQuantity
from mandi_kernel.exceptions import InvalidAmountError, ValidationError


class InvoiceKind(str, Enum):
    PURCHASE = "purchase"
    SALES = "sales"


class InvoiceStatus(str, Enum):
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"


def compute_balance(
    total: Decimal,
    paid_amount: Decimal,
    shortfall_amount: Decimal = ZERO,
) -> Decimal:
    """Outstanding amount of an invoice."""
    return total - paid_amount - shortfall_amount


def derive_invoice_status(
    total: Decimal,
    paid_amount: Decimal,
    shortfall_amount: Decimal = ZERO,
) -> InvoiceStatus:
    """Status as a pure function of the invoice amounts."""
    balance = compute_balance(total, paid_amount, shortfall_amount)
    if balance == 0:
        return InvoiceStatus.PAID
    if balance > 0 and paid_amount > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID


def _non_negative(name: str, value: Any) -> Decimal:
    amount = round_money(to_decimal(value))
    if amount < 0:
        raise InvalidAmountError(name, amount, ">= 0")
    return amount


@dataclass(frozen=True)
class InvoiceLineDraft:
    """
    One invoice line.

    ``amount`` defaults to ``rate`` times the quantity along the item's
    billing unit; pass it explicitly when the mandi bills a negotiated lump.
    """

    item_id: UUID
    quantity: StockQuantity
    rate: Decimal
    amount: Decimal | None = None

    def __post_init__(self) -> None:
        if self.quantity.is_zero():
            raise ValidationError(
                f"Line for item {self.item_id} has no quantity",
                field="quantity",
                expected="non-zero weight, crates or boxes",
                actual="0",
            )
        object.__setattr__(self, "rate", _non_negative("rate", self.rate))
        if self.amount is not None:
            object.__setattr__(self, "amount", _non_negative("amount", self.amount))

    def resolve_amount(self, unit: ItemUnit) -> Decimal:
        if self.amount is not None:
            return self.amount
        return round_money(self.quantity.along(unit) * self.rate)


@dataclass(frozen=True)
class PurchaseCharges:
    """Commission percentage and deductions taken out of a purchase's gross."""

    commission_rate: Decimal = ZERO
    labour: Decimal = ZERO
    truck_freight: Decimal = ZERO
    crate_freight: Decimal = ZERO
    post_expenses: Decimal = ZERO
    draft_expenses: Decimal = ZERO
    vatav: Decimal = ZERO
    other_expenses: Decimal = ZERO
    advance: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            object.__setattr__(self, name, _non_negative(name, getattr(self, name)))
        if self.commission_rate > 100:
            raise InvalidAmountError("commission_rate", self.commission_rate, "<= 100")

    @property
    def deductions(self) -> Decimal:
        return (
            self.labour
            + self.truck_freight
            + self.crate_freight
            + self.post_expenses
            + self.draft_expenses
            + self.vatav
            + self.other_expenses
            + self.advance
        )


@dataclass(frozen=True)
class PurchaseTotals:
    gross_amount: Decimal
    commission_amount: Decimal
    total_deductions: Decimal
    net_amount: Decimal


def compute_purchase_totals(gross: Decimal, charges: PurchaseCharges) -> PurchaseTotals:
    """Net payable to the vendor: gross less commission and deductions."""
    commission = round_money(gross * charges.commission_rate / Decimal(100))
    deductions = commission + charges.deductions
    net = gross - deductions
    if net < 0:
        raise ValidationError(
            f"Deductions {deductions} exceed gross amount {gross}",
            field="charges",
            expected=f"<= {gross}",
            actual=deductions,
        )
    return PurchaseTotals(
        gross_amount=gross,
        commission_amount=commission,
        total_deductions=deductions,
        net_amount=net,
    )


@dataclass(frozen=True)
class CrateExchangeDraft:
    """Crates handed over together with an invoice; the party is the invoice's."""

    direction: CrateDirection
    quantity: int
    deposit_amount: Decimal | None = None
    bank_account_id: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", CrateDirection(self.direction))
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise InvalidAmountError("crates.quantity", self.quantity, "a positive integer")
        if self.deposit_amount is not None:
            object.__setattr__(
                self, "deposit_amount", _non_negative("crates.deposit_amount", self.deposit_amount)
            )


def _validate_lines(lines: Any) -> tuple[InvoiceLineDraft, ...]:
    lines = tuple(lines)
    if not lines:
        raise ValidationError(
            "Invoice must have at least one line",
            field="lines",
            expected=">= 1 line",
            actual=0,
        )
    return lines


@dataclass(frozen=True)
class PurchaseInvoiceDraft:
    vendor_id: UUID
    lines: tuple[InvoiceLineDraft, ...]
    invoice_date: date | None = None
    charges: PurchaseCharges = field(default_factory=PurchaseCharges)
    crates: CrateExchangeDraft | None = None
    notes: str | None = None

    kind = InvoiceKind.PURCHASE

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", _validate_lines(self.lines))

    @property
    def party_id(self) -> UUID:
        return self.vendor_id


@dataclass(frozen=True)
class SalesInvoiceDraft:
    retailer_id: UUID
    lines: tuple[InvoiceLineDraft, ...]
    invoice_date: date | None = None
    crates: CrateExchangeDraft | None = None
    notes: str | None = None

    kind = InvoiceKind.SALES

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", _validate_lines(self.lines))

    @property
    def party_id(self) -> UUID:
        return self.retailer_id


InvoiceDraft = Union[PurchaseInvoiceDraft, SalesInvoiceDraft]
