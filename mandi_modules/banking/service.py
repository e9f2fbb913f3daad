"""
Banking Module Service (``mandi_modules.banking.service``).

Responsibility
--------------
Bank accounts and the movements between cash and bank: opening an account
(with its opening balance as the first bankbook entry), depositing into a
bank account from cash or from outside, withdrawing cash from a bank
account, and rechaining a book's running balances for verification or
repair.

Architecture position
---------------------
**Modules layer**.  Owns the transaction; delegates to MasterDataService
and BookRecorder.

Invariants enforced
-------------------
* A cash deposit and a withdrawal each write exactly two entries, one per
  pool, with equal amounts and opposite signs, sharing one reference id.
* Funds are checked against the stored balance of the pool being drawn
  while its owner row is locked; the cash pool (tenant) is always locked
  before the bank account.

Failure modes
-------------
* InsufficientFundsError -- the drawn pool's balance is below the amount.
* InvalidAmountError -- non-positive amount, or negative opening balance.
* DuplicateNaturalKeyError -- account number already used by the tenant.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from mandi_kernel.domain.amounts import ZERO, round_money, to_decimal
from mandi_kernel.domain.ledger_pools import (
    BankPool,
    CashPool,
    LedgerPool,
    LedgerReference,
    LedgerReferenceType,
)
from mandi_kernel.exceptions import InsufficientFundsError, InvalidAmountError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.services.book_recorder import BookRecorder, LedgerEntryInfo
from mandi_kernel.services.party_service import BankAccountInfo, MasterDataService
from mandi_modules._service_helpers import ModuleService

logger = get_logger("modules.banking.service")


class DepositSource(str, Enum):
    CASH = "cash"
    EXTERNAL = "external"


@dataclass(frozen=True)
class BankTransferResult:
    """``cash_entry`` is None for a deposit from an external source."""

    transfer_id: UUID
    bank_account_id: UUID
    amount: Decimal
    bank_entry: LedgerEntryInfo
    cash_entry: LedgerEntryInfo | None


def _positive(amount) -> Decimal:
    value = round_money(to_decimal(amount))
    if value <= 0:
        raise InvalidAmountError("amount", value, "> 0")
    return value


def _require_funds(books: BookRecorder, pool: LedgerPool, amount: Decimal) -> None:
    available = books.lock_pool(pool)
    if amount > available:
        logger.warning(
            "insufficient_funds_rejected",
            extra={"pool": pool.describe(), "requested": amount, "available": available},
        )
        raise InsufficientFundsError(pool.describe(), amount, available)


class BankingService(ModuleService):
    """Bank accounts and cash/bank transfers, one committed transaction per call."""

    def open_bank_account(
        self,
        tenant_id: UUID,
        name: str,
        account_number: str,
        bank_name: str,
        actor_id: UUID,
        opening_balance: Decimal = ZERO,
        ifsc_code: str | None = None,
        opening_date: date | None = None,
    ) -> BankAccountInfo:
        opening = round_money(to_decimal(opening_balance))
        if opening < 0:
            raise InvalidAmountError("opening_balance", opening, ">= 0")

        def work(session):
            account = MasterDataService(session, tenant_id, self.clock).create_bank_account(
                name, account_number, bank_name, actor_id, ifsc_code=ifsc_code
            )
            if opening == 0:
                return account
            BookRecorder(session, tenant_id, self.clock).append_entry(
                BankPool(bank_account_id=account.id),
                opening_date,
                "Opening balance",
                opening,
                LedgerReference(LedgerReferenceType.OPENING_BALANCE, account.id),
                actor_id,
            )
            return MasterDataService(session, tenant_id, self.clock).get_bank_account(account.id)

        return self.run_operation("open_bank_account", tenant_id, actor_id, work)

    def deposit_to_bank(
        self,
        tenant_id: UUID,
        bank_account_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        source: DepositSource | str = DepositSource.CASH,
        deposit_date: date | None = None,
        description: str | None = None,
    ) -> BankTransferResult:
        """
        Deposit into a bank account.

        From cash the cashbook is drawn down by the same amount and must
        hold enough; an external deposit (a cheque from outside, a transfer
        in) only touches the bankbook.
        """
        source = DepositSource(source)
        value = _positive(amount)
        transfer_id = uuid4()
        reference = LedgerReference(LedgerReferenceType.BANK_DEPOSIT, transfer_id)

        def work(session):
            books = BookRecorder(session, tenant_id, self.clock)
            bank = BankPool(bank_account_id=bank_account_id)
            cash_entry = None
            if source is DepositSource.CASH:
                _require_funds(books, CashPool(), value)
                books.lock_pool(bank)
                cash_entry = books.append_entry(
                    CashPool(),
                    deposit_date,
                    description or "Cash deposited to bank",
                    -value,
                    reference,
                    actor_id,
                )
            bank_entry = books.append_entry(
                bank,
                deposit_date,
                description or ("Cash deposit" if cash_entry else "Deposit"),
                value,
                reference,
                actor_id,
            )
            logger.info(
                "bank_deposit_recorded",
                extra={
                    "transfer_id": str(transfer_id),
                    "bank_account_id": str(bank_account_id),
                    "amount": value,
                    "source": source.value,
                },
            )
            return BankTransferResult(transfer_id, bank_account_id, value, bank_entry, cash_entry)

        return self.run_operation("deposit_to_bank", tenant_id, actor_id, work)

    def withdraw_from_bank(
        self,
        tenant_id: UUID,
        bank_account_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        withdrawal_date: date | None = None,
        description: str | None = None,
    ) -> BankTransferResult:
        """Withdraw cash: a bankbook outflow and a matching cashbook inflow."""
        value = _positive(amount)
        transfer_id = uuid4()
        reference = LedgerReference(LedgerReferenceType.BANK_WITHDRAWAL, transfer_id)

        def work(session):
            books = BookRecorder(session, tenant_id, self.clock)
            bank = BankPool(bank_account_id=bank_account_id)
            books.lock_pool(CashPool())
            _require_funds(books, bank, value)
            bank_entry = books.append_entry(
                bank,
                withdrawal_date,
                description or "Cash withdrawal",
                -value,
                reference,
                actor_id,
            )
            cash_entry = books.append_entry(
                CashPool(),
                withdrawal_date,
                description or "Cash withdrawn from bank",
                value,
                reference,
                actor_id,
            )
            logger.info(
                "bank_withdrawal_recorded",
                extra={
                    "transfer_id": str(transfer_id),
                    "bank_account_id": str(bank_account_id),
                    "amount": value,
                },
            )
            return BankTransferResult(transfer_id, bank_account_id, value, bank_entry, cash_entry)

        return self.run_operation("withdraw_from_bank", tenant_id, actor_id, work)

    def rechain_book(
        self, tenant_id: UUID, actor_id: UUID, bank_account_id: UUID | None = None
    ) -> int:
        """
        Recompute the running balances of the cashbook, or of the bankbook of
        ``bank_account_id``, and return how many entries were corrected.
        """
        pool = CashPool() if bank_account_id is None else BankPool(bank_account_id=bank_account_id)

        def work(session):
            return BookRecorder(session, tenant_id, self.clock).rechain(pool, actor_id)

        return self.run_operation("rechain_book", tenant_id, actor_id, work)

    def get_bank_account(self, tenant_id: UUID, bank_account_id: UUID) -> BankAccountInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).get_bank_account(
                bank_account_id
            )

        return self.run_operation("get_bank_account", tenant_id, None, work)
