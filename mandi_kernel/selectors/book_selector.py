"""
Module: mandi_kernel.selectors.book_selector
Responsibility: Read-only cashbook and bankbook statements.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Lines are returned in chain order (entry_date, entry_seq); each line's
      balance is the stored running balance, and the opening balance of a
      dated window is the balance of the last entry before it.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from mandi_kernel.domain.ledger_pools import LedgerReferenceType
from mandi_kernel.models.item import BankAccount
from mandi_kernel.models.ledger import BankbookEntry, CashbookEntry
from mandi_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class BookLine:
    entry_id: UUID
    entry_date: date
    entry_seq: int
    description: str
    inflow: Decimal
    outflow: Decimal
    balance: Decimal
    reference_type: LedgerReferenceType
    reference_id: UUID | None


@dataclass(frozen=True)
class BookStatement:
    """A window of one pool's chain; ``bank_account_id`` is None for cash."""

    bank_account_id: UUID | None
    date_from: date | None
    date_to: date | None
    opening_balance: Decimal
    lines: tuple[BookLine, ...]
    closing_balance: Decimal

    @property
    def total_inflow(self) -> Decimal:
        return sum((line.inflow for line in self.lines), Decimal("0"))

    @property
    def total_outflow(self) -> Decimal:
        return sum((line.outflow for line in self.lines), Decimal("0"))


class BookSelector(BaseSelector):
    """Cashbook and bankbook statements for one tenant."""

    def _statement(self, model, scope, bank_account_id, date_from, date_to) -> BookStatement:
        opening = Decimal("0")
        if date_from is not None:
            before = self.session.execute(
                select(model)
                .where(scope)
                .where(model.entry_date < date_from)
                .order_by(model.entry_date.desc(), model.entry_seq.desc())
                .limit(1)
            ).scalar_one_or_none()
            if before is not None:
                opening = before.balance

        stmt = select(model).where(scope).order_by(model.entry_date, model.entry_seq)
        if date_from is not None:
            stmt = stmt.where(model.entry_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(model.entry_date <= date_to)

        lines = []
        for entry in self.session.execute(stmt).scalars():
            if isinstance(entry, CashbookEntry):
                inflow, outflow = entry.inflow, entry.outflow
            else:
                inflow, outflow = entry.debit, entry.credit
            lines.append(
                BookLine(
                    entry_id=entry.id,
                    entry_date=entry.entry_date,
                    entry_seq=entry.entry_seq,
                    description=entry.description,
                    inflow=inflow,
                    outflow=outflow,
                    balance=entry.balance,
                    reference_type=LedgerReferenceType(entry.reference_type),
                    reference_id=entry.reference_id,
                )
            )
        return BookStatement(
            bank_account_id=bank_account_id,
            date_from=date_from,
            date_to=date_to,
            opening_balance=opening,
            lines=tuple(lines),
            closing_balance=lines[-1].balance if lines else opening,
        )

    def cashbook(self, date_from: date | None = None, date_to: date | None = None) -> BookStatement:
        return self._statement(
            CashbookEntry,
            CashbookEntry.tenant_id == self.tenant_id,
            None,
            date_from,
            date_to,
        )

    def bankbook(
        self,
        bank_account_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> BookStatement:
        account = self._require(BankAccount, bank_account_id)
        return self._statement(
            BankbookEntry,
            BankbookEntry.bank_account_id == account.id,
            account.id,
            date_from,
            date_to,
        )
