"""
Ledger pools and entry references.

A tenant has one cash pool and one pool per bank account; each pool has its
own ordered running-balance chain.  ``LedgerReference`` names the business
transaction an entry was written for.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union
from uuid import UUID

from mandi_kernel.domain.payment_methods import CashPayment, PaymentMethod


class LedgerReferenceType(str, Enum):
    PURCHASE_PAYMENT = "PURCHASE_PAYMENT"
    SALES_PAYMENT = "SALES_PAYMENT"
    PARTY_PAYMENT = "PARTY_PAYMENT"
    CRATE_DEPOSIT = "CRATE_DEPOSIT"
    EXPENSE = "EXPENSE"
    BANK_DEPOSIT = "BANK_DEPOSIT"
    BANK_WITHDRAWAL = "BANK_WITHDRAWAL"
    OPENING_BALANCE = "OPENING_BALANCE"


@dataclass(frozen=True)
class LedgerReference:
    reference_type: LedgerReferenceType
    reference_id: UUID | None = None


@dataclass(frozen=True)
class CashPool:
    """The tenant's single cash pool (cashbook)."""

    def describe(self) -> str:
        return "cash"


@dataclass(frozen=True)
class BankPool:
    """One bank account's pool (bankbook)."""

    bank_account_id: UUID

    def describe(self) -> str:
        return f"bank account {self.bank_account_id}"


LedgerPool = Union[CashPool, BankPool]


def pool_for_method(method: PaymentMethod) -> LedgerPool:
    """Cash goes to the cashbook; every other mode to its bank account's bankbook."""
    if isinstance(method, CashPayment):
        return CashPool()
    return BankPool(bank_account_id=method.bank_account_id)


def pool_for_account(bank_account_id: UUID | None) -> LedgerPool:
    if bank_account_id is None:
        return CashPool()
    return BankPool(bank_account_id=bank_account_id)
