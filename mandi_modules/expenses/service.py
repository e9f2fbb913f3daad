"""
Expenses Module Service (``mandi_modules.expenses.service``).

Records a business expense (labour, rent, tea, diesel) against a category
together with its single outflow entry: the cashbook for Cash, the paying
account's bankbook for Bank, Cheque and UPI.  Payment links only collect
from retailers, so an expense paid by PaymentLink is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from mandi_kernel.domain.amounts import round_money, to_decimal
from mandi_kernel.domain.ledger_pools import (
    LedgerReference,
    LedgerReferenceType,
    pool_for_method,
)
from mandi_kernel.domain.payment_methods import (
    PaymentMethod,
    PaymentMode,
    ensure_allowed_for_purchase,
    ensure_payment_method,
    method_reference_fields,
)
from mandi_kernel.exceptions import InvalidAmountError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.expense import Expense, ExpenseCategory
from mandi_kernel.models.item import BankAccount
from mandi_kernel.services.book_recorder import BookRecorder, LedgerEntryInfo
from mandi_kernel.services.party_service import ExpenseCategoryInfo, MasterDataService
from mandi_kernel.services.tenant_guard import TenantGuard
from mandi_modules._service_helpers import ModuleService

logger = get_logger("modules.expenses.service")


@dataclass(frozen=True)
class ExpenseInfo:
    id: UUID
    category_id: UUID
    amount: Decimal
    payment_mode: PaymentMode
    payment_date: date
    description: str | None
    ledger_entry: LedgerEntryInfo


class ExpenseService(ModuleService):
    """Expense categories and expenses, one committed transaction per call."""

    def create_expense_category(
        self, tenant_id: UUID, name: str, actor_id: UUID
    ) -> ExpenseCategoryInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).create_expense_category(
                name, actor_id
            )

        return self.run_operation("create_expense_category", tenant_id, actor_id, work)

    def record_expense(
        self,
        tenant_id: UUID,
        category_id: UUID,
        amount: Decimal,
        method: PaymentMethod,
        actor_id: UUID,
        payment_date: date | None = None,
        description: str | None = None,
    ) -> ExpenseInfo:
        method = ensure_payment_method(method)
        ensure_allowed_for_purchase(method)
        value = round_money(to_decimal(amount))
        if value <= 0:
            raise InvalidAmountError("amount", value, "> 0")

        def work(session):
            guard = TenantGuard(session, tenant_id)
            guard.require_tenant()
            category = guard.require(ExpenseCategory, category_id)
            guard.require_optional(BankAccount, method.bank_account_id)

            fields = method_reference_fields(method)
            fields.pop("payment_link_id")
            expense = Expense(
                tenant_id=tenant_id,
                category_id=category.id,
                amount=value,
                payment_date=payment_date or self.clock.today(),
                description=description,
                created_by_id=actor_id,
                **fields,
            )
            session.add(expense)
            session.flush()

            entry = BookRecorder(session, tenant_id, self.clock).append_entry(
                pool_for_method(method),
                expense.payment_date,
                description or f"Expense: {category.name}",
                -value,
                LedgerReference(LedgerReferenceType.EXPENSE, expense.id),
                actor_id,
            )
            logger.info(
                "expense_recorded",
                extra={
                    "expense_id": str(expense.id),
                    "category_id": str(category.id),
                    "amount": value,
                    "payment_mode": method.mode.value,
                },
            )
            return ExpenseInfo(
                id=expense.id,
                category_id=category.id,
                amount=value,
                payment_mode=method.mode,
                payment_date=expense.payment_date,
                description=description,
                ledger_entry=entry,
            )

        return self.run_operation("record_expense", tenant_id, actor_id, work)
