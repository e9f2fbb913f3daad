"""
Payment method variants.

Responsibility:
    Closed set of payment methods, each a frozen dataclass carrying only the
    fields its mode requires.  Construction validates those fields, so a
    method that exists is a method that can be posted.

Architecture position:
    Kernel > Domain -- pure values, no I/O.

Invariants enforced:
    - Every non-cash method names the bank account whose bankbook receives
      the ledger entry.
    - Cheque carries a cheque number, UPI a UPI reference, PaymentLink a link
      identifier; blank strings count as missing.
    - PaymentLink is a sales-side mode only (checked by ``ensure_allowed_for``).

Failure modes:
    - PaymentModeError (a ValidationError) for an unknown mode or a missing
      required field, raised before any mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union
from uuid import UUID

from mandi_kernel.exceptions import PaymentModeError


class PaymentMode(str, Enum):
    """Stored payment mode tag."""

    CASH = "Cash"
    BANK = "Bank"
    CHEQUE = "Cheque"
    UPI = "UPI"
    PAYMENT_LINK = "PaymentLink"


def _require_text(mode: PaymentMode, field: str, value: str | None) -> None:
    if value is None or not str(value).strip():
        raise PaymentModeError(mode.value, field, f"{field} is required")


def _require_account(mode: PaymentMode, value: UUID | None) -> None:
    if value is None:
        raise PaymentModeError(mode.value, "bank_account_id", "bank_account_id is required")


@dataclass(frozen=True)
class CashPayment:
    """Paid in cash; posts to the tenant's cashbook."""

    mode = PaymentMode.CASH

    @property
    def bank_account_id(self) -> None:
        return None


@dataclass(frozen=True)
class BankPayment:
    """Bank transfer into/out of a tenant bank account."""

    bank_account_id: UUID

    mode = PaymentMode.BANK

    def __post_init__(self) -> None:
        _require_account(self.mode, self.bank_account_id)


@dataclass(frozen=True)
class ChequePayment:
    bank_account_id: UUID
    cheque_number: str

    mode = PaymentMode.CHEQUE

    def __post_init__(self) -> None:
        _require_account(self.mode, self.bank_account_id)
        _require_text(self.mode, "cheque_number", self.cheque_number)


@dataclass(frozen=True)
class UpiPayment:
    bank_account_id: UUID
    upi_reference: str

    mode = PaymentMode.UPI

    def __post_init__(self) -> None:
        _require_account(self.mode, self.bank_account_id)
        _require_text(self.mode, "upi_reference", self.upi_reference)


@dataclass(frozen=True)
class PaymentLinkPayment:
    """Online payment-link collection from a retailer; settles into a bank account."""

    bank_account_id: UUID
    payment_link_id: str

    mode = PaymentMode.PAYMENT_LINK

    def __post_init__(self) -> None:
        _require_account(self.mode, self.bank_account_id)
        _require_text(self.mode, "payment_link_id", self.payment_link_id)


PaymentMethod = Union[
    CashPayment, BankPayment, ChequePayment, UpiPayment, PaymentLinkPayment
]

PAYMENT_METHOD_TYPES: tuple[type, ...] = (
    CashPayment,
    BankPayment,
    ChequePayment,
    UpiPayment,
    PaymentLinkPayment,
)


def payment_method_from_fields(
    mode: str | PaymentMode,
    *,
    bank_account_id: UUID | str | None = None,
    cheque_number: str | None = None,
    upi_reference: str | None = None,
    payment_link_id: str | None = None,
) -> PaymentMethod:
    """
    Build a payment method from a flat collaborator payload.

    Fields not used by the mode are ignored.

    Raises:
        PaymentModeError: unknown mode or missing required field.
    """
    try:
        mode = PaymentMode(mode)
    except ValueError:
        raise PaymentModeError(
            str(mode), "payment_mode", f"unknown mode, expected one of {[m.value for m in PaymentMode]}"
        ) from None

    if isinstance(bank_account_id, str):
        try:
            bank_account_id = UUID(bank_account_id)
        except ValueError:
            raise PaymentModeError(
                mode.value, "bank_account_id", "bank_account_id is not a valid identifier"
            ) from None

    if mode == PaymentMode.CASH:
        return CashPayment()
    if mode == PaymentMode.BANK:
        return BankPayment(bank_account_id=bank_account_id)
    if mode == PaymentMode.CHEQUE:
        return ChequePayment(bank_account_id=bank_account_id, cheque_number=cheque_number)
    if mode == PaymentMode.UPI:
        return UpiPayment(bank_account_id=bank_account_id, upi_reference=upi_reference)
    return PaymentLinkPayment(bank_account_id=bank_account_id, payment_link_id=payment_link_id)


def ensure_payment_method(method: Any) -> PaymentMethod:
    """Reject anything that is not one of the closed set of variants."""
    if not isinstance(method, PAYMENT_METHOD_TYPES):
        raise PaymentModeError(
            type(method).__name__, "payment_mode", "not a recognised payment method"
        )
    return method


def ensure_allowed_for_purchase(method: PaymentMethod) -> None:
    """Payment links collect from retailers; they cannot pay a vendor."""
    if isinstance(method, PaymentLinkPayment):
        raise PaymentModeError(
            method.mode.value, "payment_mode", "PaymentLink is only accepted on sales invoices"
        )


def method_reference_fields(method: PaymentMethod) -> dict[str, Any]:
    """Column values persisted for ``method`` on a payment or expense row."""
    return {
        "payment_mode": method.mode.value,
        "bank_account_id": method.bank_account_id,
        "cheque_number": getattr(method, "cheque_number", None),
        "upi_reference": getattr(method, "upi_reference", None),
        "payment_link_id": getattr(method, "payment_link_id", None),
    }
