"""
Module: mandi_kernel.models.ledger
Responsibility: ORM persistence for cashbook and bankbook entries.
Architecture position: Kernel > Models.  May import from db/ and domain/.
Invariants enforced:
    - Entries of one pool are totally ordered by (entry_date, entry_seq);
      entry_seq is the per-pool insertion order from a locked counter.
    - balance = previous entry's balance + (inflow - outflow) for the
      cashbook, + (debit - credit) for a bankbook.  Only the book recorder's
      re-chaining may write ``balance`` after insert; every other column is
      immutable (db/immutability.py).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TenantScopedBase, UUIDString
from mandi_kernel.db.types import Money
from mandi_kernel.domain.ledger_pools import LedgerReferenceType


class LedgerEntryColumns(TenantScopedBase):
    __abstract__ = True

    entry_date: Mapped[date] = mapped_column(nullable=False)

    entry_seq: Mapped[int] = mapped_column(nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    balance: Mapped[Money] = mapped_column(nullable=False)

    reference_type: Mapped[LedgerReferenceType] = mapped_column(String(30), nullable=False)

    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)


class CashbookEntry(LedgerEntryColumns):
    """Cash pool entry: inflow or outflow, never both."""

    __tablename__ = "cashbook_entries"
    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_seq", name="uq_cashbook_tenant_seq"),
        Index("idx_cashbook_order", "tenant_id", "entry_date", "entry_seq"),
    )

    inflow: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    outflow: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    @property
    def signed_amount(self) -> Decimal:
        return self.inflow - self.outflow


class BankbookEntry(LedgerEntryColumns):
    """Bank pool entry: debit is money into the account, credit money out."""

    __tablename__ = "bankbook_entries"
    __table_args__ = (
        UniqueConstraint("bank_account_id", "entry_seq", name="uq_bankbook_account_seq"),
        Index("idx_bankbook_order", "bank_account_id", "entry_date", "entry_seq"),
    )

    bank_account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bank_accounts.id"), nullable=False
    )

    debit: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    credit: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    @property
    def signed_amount(self) -> Decimal:
        return self.debit - self.credit
