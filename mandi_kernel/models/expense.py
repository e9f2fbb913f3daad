"""
Module: mandi_kernel.models.expense
Responsibility: ORM persistence for business expenses and their categories.
Architecture position: Kernel > Models.  May import from db/ only.
Invariants enforced:
    - Category name unique within a tenant.
    - Each expense has exactly one outflow ledger entry, written in the same
      transaction (cashbook for Cash, the account's bankbook otherwise).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TenantScopedBase, UUIDString
from mandi_kernel.db.types import Money


class ExpenseCategory(TenantScopedBase):
    __tablename__ = "expense_categories"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_expense_category_tenant_name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Expense(TenantScopedBase):
    __tablename__ = "expenses"

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("expense_categories.id"), nullable=False
    )

    amount: Mapped[Money] = mapped_column(nullable=False)

    payment_mode: Mapped[str] = mapped_column(String(20), nullable=False)

    bank_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bank_accounts.id"), nullable=True
    )

    cheque_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    upi_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    payment_date: Mapped[date] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
