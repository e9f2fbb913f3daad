"""
Module: mandi_kernel.models.item
Responsibility: ORM persistence for tradeable goods and tenant bank accounts,
    the two reference entities that invoices, movements and ledger entries
    point at besides parties.
Architecture position: Kernel > Models.  May import from db/ and domain/.
Invariants enforced:
    - (tenant_id, name, quality) is unique for items; (tenant_id,
      account_number) for bank accounts.
    - bank_account.balance always equals the balance of the account's latest
      bankbook entry (maintained by services/book_recorder.py).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TenantScopedBase, UUIDString
from mandi_kernel.db.types import Money
from mandi_kernel.domain.quantities import ItemUnit


class Item(TenantScopedBase):
    """
    A tradeable good, e.g. "Tomato / Grade A", billed per ``unit``.

    Contract:
        ``unit`` selects which quantity dimension an invoice line rate is
        applied to when the line amount is not given explicitly.
    """

    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", "quality", name="uq_item_tenant_name_quality"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    quality: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    unit: Mapped[ItemUnit] = mapped_column(String(10), nullable=False, default=ItemUnit.KGS.value)

    # Preferred vendor, optional
    vendor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("vendors.id"), nullable=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Item {self.name} ({self.quality})>"


class BankAccount(TenantScopedBase):
    """A tenant bank account; each one is its own ledger pool."""

    __tablename__ = "bank_accounts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "account_number", name="uq_bank_account_tenant_number"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_number: Mapped[str] = mapped_column(String(50), nullable=False)

    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)

    ifsc_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<BankAccount {self.bank_name} {self.account_number}>"
