"""
Module: mandi_kernel.models.tenant
Responsibility: ORM persistence for the tenant -- one trading business (mandi
    firm) and the isolation boundary for every other row.  Also owns the
    stored balance of the tenant's single cash pool.
Architecture position: Kernel > Models.  May import from db/ only.
Invariants enforced:
    - slug is globally unique; every other natural key is unique only within
      a tenant.
    - cash_balance always equals the balance of the latest cashbook entry
      (maintained by services/book_recorder.py, never assigned elsewhere).
Failure modes:
    - IntegrityError on duplicate slug.
    - StaleDataError (-> OptimisticLockError) on a concurrent cash_balance
      update that bypassed the row lock.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TrackedBase
from mandi_kernel.db.types import Money


class Tenant(TrackedBase):
    """
    Isolation boundary for one trading business.

    Guarantees:
        - The row is locked (SELECT ... FOR UPDATE) by every cashbook append,
          so cash running balances serialize per tenant.
    """

    __tablename__ = "tenants"
    __table_args__ = (UniqueConstraint("slug", name="uq_tenant_slug"),)

    slug: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stored balance of the cash pool (latest cashbook entry balance)
    cash_balance: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Tenant {self.slug}>"
