"""
Module: mandi_kernel.models.crate
Responsibility: ORM persistence for crate lend/return events.
Architecture position: Kernel > Models.  May import from db/ and domain/.
Invariants enforced:
    - Exactly one of retailer_id / vendor_id is set and it matches party_type
      (CHECK constraint; the domain union makes the other combinations
      unrepresentable before they reach the ORM).
    - quantity > 0 (CHECK constraint); direction carries the sign.
    - Rows are append-only (db/immutability.py).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TenantScopedBase, UUIDString
from mandi_kernel.db.types import Money
from mandi_kernel.domain.crate_party import CrateDirection, CratePartyType


class CrateTransaction(TenantScopedBase):
    __tablename__ = "crate_transactions"
    __table_args__ = (
        CheckConstraint(
            "(party_type = 'retailer' AND retailer_id IS NOT NULL AND vendor_id IS NULL) OR "
            "(party_type = 'vendor' AND vendor_id IS NOT NULL AND retailer_id IS NULL)",
            name="ck_crate_transaction_party",
        ),
        CheckConstraint("quantity > 0", name="ck_crate_transaction_quantity"),
        Index("idx_crate_transaction_retailer", "tenant_id", "retailer_id"),
        Index("idx_crate_transaction_vendor", "tenant_id", "vendor_id"),
    )

    party_type: Mapped[CratePartyType] = mapped_column(String(10), nullable=False)

    retailer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("retailers.id"), nullable=True
    )

    vendor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("vendors.id"), nullable=True
    )

    direction: Mapped[CrateDirection] = mapped_column(String(10), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    deposit_amount: Mapped[Money | None] = mapped_column(nullable=True)

    # Pool the deposit was posted to; None means cash
    bank_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bank_accounts.id"), nullable=True
    )

    sales_invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=True
    )

    purchase_invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("purchase_invoices.id"), nullable=True
    )

    transaction_date: Mapped[date] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    @property
    def party_id(self) -> UUID:
        return self.retailer_id if self.retailer_id is not None else self.vendor_id

    @property
    def signed_quantity(self) -> int:
        return CrateDirection(self.direction).sign * self.quantity

    def __repr__(self) -> str:
        return f"<CrateTransaction {self.direction} {self.quantity} {self.party_type}>"
