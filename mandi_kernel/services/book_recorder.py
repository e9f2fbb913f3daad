"""
BookRecorder -- ordered running-balance chains for the cash and bank pools.

Responsibility:
    Appends cashbook and bankbook entries, computing each entry's running
    balance from its predecessor, re-chaining later-dated entries after a
    back-dated insert, and keeping the pool owner's stored balance
    (tenant.cash_balance or bank_account.balance) equal to the latest entry.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by PaymentAllocator, CrateTracker and the banking and expense
    module services, always inside the caller's unit of work.

Invariants enforced:
    - Entries of a pool are ordered by (entry_date, entry_seq).  entry_seq is
      the pool's insertion order, allocated from a locked counter.
    - balance(N) = balance(N-1) + signed_amount(N).  No balance is ever
      assigned by any other means; ``rechain`` recomputes the whole chain
      and reports how many stored balances disagreed.
    - The pool owner row is locked (tenant for cash, bank account for bank)
      before the predecessor is read, so concurrent appends to one pool
      serialize.

Failure modes:
    - ValidationError (InvalidAmountError) for a zero amount.
    - NotFoundError / TenantMismatchError for an unknown or foreign bank
      account, or an inactive tenant.

Audit relevance:
    ledger_entry_appended is logged for every entry with pool, amount,
    balance and reference; ledger_rechained whenever stored balances of
    later entries were corrected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_, select

from mandi_kernel.domain.amounts import ZERO, round_money
from mandi_kernel.domain.ledger_pools import (
    BankPool,
    CashPool,
    LedgerPool,
    LedgerReference,
    LedgerReferenceType,
)
from mandi_kernel.exceptions import InvalidAmountError, ValidationError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.item import BankAccount
from mandi_kernel.models.ledger import BankbookEntry, CashbookEntry
from mandi_kernel.services.base import BaseService
from mandi_kernel.services.sequence_service import (
    SequenceService,
    bankbook_sequence,
    cashbook_sequence,
)

logger = get_logger("services.book_recorder")


@dataclass(frozen=True)
class LedgerEntryInfo:
    """
    One cashbook or bankbook line.

    ``inflow``/``outflow`` are the cashbook columns; for a bankbook entry
    they carry debit (money into the account) and credit (money out).
    """

    id: UUID
    bank_account_id: UUID | None
    entry_date: date
    entry_seq: int
    description: str
    inflow: Decimal
    outflow: Decimal
    balance: Decimal
    reference_type: LedgerReferenceType
    reference_id: UUID | None

    @property
    def signed_amount(self) -> Decimal:
        return self.inflow - self.outflow

    @property
    def pool(self) -> LedgerPool:
        if self.bank_account_id is None:
            return CashPool()
        return BankPool(bank_account_id=self.bank_account_id)


def entry_info(entry: CashbookEntry | BankbookEntry) -> LedgerEntryInfo:
    if isinstance(entry, CashbookEntry):
        bank_account_id, inflow, outflow = None, entry.inflow, entry.outflow
    else:
        bank_account_id, inflow, outflow = entry.bank_account_id, entry.debit, entry.credit
    return LedgerEntryInfo(
        id=entry.id,
        bank_account_id=bank_account_id,
        entry_date=entry.entry_date,
        entry_seq=entry.entry_seq,
        description=entry.description,
        inflow=inflow,
        outflow=outflow,
        balance=entry.balance,
        reference_type=LedgerReferenceType(entry.reference_type),
        reference_id=entry.reference_id,
    )


def _entry_model(pool: LedgerPool):
    if isinstance(pool, CashPool):
        return CashbookEntry
    if isinstance(pool, BankPool):
        return BankbookEntry
    raise ValidationError(
        f"Unknown ledger pool {pool!r}",
        field="pool",
        expected="CashPool or BankPool",
        actual=type(pool).__name__,
    )


class BookRecorder(BaseService):
    """
    Per-tenant cashbook/bankbook writer.

    Contract:
        ``append_entry`` is the only way a ledger entry is created.  Callers
        pass a signed amount: positive is money into the pool.

    Guarantees:
        - After every flush the chain of each pool satisfies
          balance(N) = balance(N-1) + signed_amount(N), and the owner's
          stored balance equals the last entry's balance.
    """

    def _pool_filter(self, model, pool: LedgerPool) -> Any:
        if isinstance(pool, CashPool):
            return model.tenant_id == self.tenant_id
        return and_(
            model.tenant_id == self.tenant_id,
            model.bank_account_id == pool.bank_account_id,
        )

    def _owner(self, pool: LedgerPool, lock: bool):
        _entry_model(pool)
        if isinstance(pool, CashPool):
            return self.guard.require_tenant(lock=lock)
        return self.guard.require(BankAccount, pool.bank_account_id, lock=lock)

    @staticmethod
    def _stored_balance(owner) -> Decimal:
        if isinstance(owner, BankAccount):
            return owner.balance
        return owner.cash_balance

    @staticmethod
    def _set_stored_balance(owner, balance: Decimal, actor_id: UUID) -> None:
        if isinstance(owner, BankAccount):
            owner.balance = balance
        else:
            owner.cash_balance = balance
        owner.updated_by_id = actor_id

    def lock_pool(self, pool: LedgerPool) -> Decimal:
        """
        Lock the pool owner and return its stored balance.

        Used by callers that must check funds under the same lock the
        subsequent append will hold.
        """
        return self._stored_balance(self._owner(pool, lock=True))

    def pool_balance(self, pool: LedgerPool) -> Decimal:
        """Stored balance of the pool (equal to its latest entry's balance)."""
        return self._stored_balance(self._owner(pool, lock=False))

    def append_entry(
        self,
        pool: LedgerPool,
        entry_date: date | None,
        description: str,
        signed_amount: Decimal,
        reference: LedgerReference,
        actor_id: UUID,
    ) -> LedgerEntryInfo:
        """
        Append one entry to ``pool``.

        Preconditions:
            - ``signed_amount`` != 0 (positive = inflow/debit).

        Postconditions:
            - The new entry's balance = predecessor's balance + amount,
              where the predecessor is the last entry ordered by
              (entry_date, entry_seq) before it.
            - Every later-dated entry has been re-chained.
            - The owner's stored balance equals the latest entry's balance.
        """
        model = _entry_model(pool)
        amount = round_money(signed_amount)
        if amount == 0:
            raise InvalidAmountError("signed_amount", amount, "!= 0")
        entry_date = entry_date or self.clock.today()
        owner = self._owner(pool, lock=True)

        sequence_name = (
            cashbook_sequence(self.tenant_id)
            if isinstance(pool, CashPool)
            else bankbook_sequence(pool.bank_account_id)
        )
        seq = SequenceService(self.session).next_value(sequence_name)

        predecessor = self.session.execute(
            select(model)
            .where(self._pool_filter(model, pool))
            .where(
                or_(
                    model.entry_date < entry_date,
                    and_(model.entry_date == entry_date, model.entry_seq < seq),
                )
            )
            .order_by(model.entry_date.desc(), model.entry_seq.desc())
            .limit(1)
        ).scalar_one_or_none()
        previous = predecessor.balance if predecessor is not None else ZERO

        columns: dict[str, Any] = {}
        if isinstance(pool, CashPool):
            columns["inflow"] = amount if amount > 0 else ZERO
            columns["outflow"] = -amount if amount < 0 else ZERO
        else:
            columns["bank_account_id"] = pool.bank_account_id
            columns["debit"] = amount if amount > 0 else ZERO
            columns["credit"] = -amount if amount < 0 else ZERO

        entry = model(
            tenant_id=self.tenant_id,
            entry_date=entry_date,
            entry_seq=seq,
            description=description,
            balance=previous + amount,
            reference_type=LedgerReferenceType(reference.reference_type).value,
            reference_id=reference.reference_id,
            created_by_id=actor_id,
            **columns,
        )
        self.session.add(entry)
        self.session.flush()

        later = self.session.execute(
            select(model)
            .where(self._pool_filter(model, pool))
            .where(model.entry_date > entry_date)
            .order_by(model.entry_date, model.entry_seq)
        ).scalars().all()
        running = entry.balance
        for row in later:
            running = running + row.signed_amount
            if row.balance != running:
                row.balance = running
                row.updated_by_id = actor_id

        self._set_stored_balance(owner, running, actor_id)
        self.session.flush()

        logger.info(
            "ledger_entry_appended",
            extra={
                "pool": pool.describe(),
                "entry_id": str(entry.id),
                "entry_seq": seq,
                "entry_date": entry_date,
                "signed_amount": amount,
                "balance": entry.balance,
                "reference_type": entry.reference_type,
                "reference_id": str(reference.reference_id) if reference.reference_id else None,
            },
        )
        if later:
            logger.info(
                "ledger_rechained",
                extra={"pool": pool.describe(), "entries": len(later), "trigger": "backdated"},
            )
        return entry_info(entry)

    def rechain(self, pool: LedgerPool, actor_id: UUID) -> int:
        """
        Recompute every running balance of ``pool`` from the first entry.

        Returns:
            The number of entries whose stored balance was corrected.
        """
        model = _entry_model(pool)
        owner = self._owner(pool, lock=True)
        entries = self.session.execute(
            select(model)
            .where(self._pool_filter(model, pool))
            .order_by(model.entry_date, model.entry_seq)
        ).scalars()

        running = ZERO
        corrected = 0
        for entry in entries:
            running = running + entry.signed_amount
            if entry.balance != running:
                entry.balance = running
                entry.updated_by_id = actor_id
                corrected += 1

        if self._stored_balance(owner) != running:
            self._set_stored_balance(owner, running, actor_id)
        self.session.flush()

        logger.info(
            "ledger_rechained",
            extra={"pool": pool.describe(), "corrected": corrected, "trigger": "rechain"},
        )
        return corrected
