"""
Module: mandi_kernel.models.party
Responsibility: ORM persistence for trading counterparties -- vendors (growers
    and consignors we buy from on commission) and retailers (buyers we sell to
    on credit).
Architecture position: Kernel > Models.  May import from db/ only.
Invariants enforced:
    - Party name is unique within a tenant (composite unique constraint).
    - vendor.balance = what we still owe the vendor (Σ purchase invoice net
      less payments).
    - retailer.balance = what the retailer still owes us; udhaar_balance is
      the informal outstanding credit, floored at zero; shortfall_balance is
      the cumulative amount written off by forced-paid overrides.
    - crate_balance = Σ Given - Σ (Received + Returned); never clamped.
Failure modes:
    - IntegrityError on duplicate (tenant_id, name).
    - StaleDataError (-> OptimisticLockError) on concurrent balance updates.
Audit relevance:
    Party balances are derived aggregates; every change to them is made in the
    same transaction as the invoice, payment or crate row that justifies it.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TenantScopedBase
from mandi_kernel.db.types import Money


class PartyColumns(TenantScopedBase):
    """Columns shared by vendors and retailers."""

    __abstract__ = True

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    crate_balance: Mapped[int] = mapped_column(nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Vendor(PartyColumns):
    """
    Supplier whose produce the mandi sells on commission.

    Contract:
        ``balance`` rises with each purchase invoice's net amount and falls
        with each payment made to the vendor.
    """

    __tablename__ = "vendors"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_vendor_tenant_name"),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Vendor {self.name}>"


class Retailer(PartyColumns):
    """
    Buyer the mandi sells to, mostly on credit (udhaar).

    Contract:
        ``balance`` and ``udhaar_balance`` rise with each sales invoice total
        and fall with each payment received; a forced-paid override moves
        the unrecovered remainder into ``shortfall_balance``.
    """

    __tablename__ = "retailers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_retailer_tenant_name"),
    )

    udhaar_balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    shortfall_balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Retailer {self.name}>"
