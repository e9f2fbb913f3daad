"""
BookSelector tests: statement windows over the cash and bank chains.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from mandi_kernel.domain.ledger_pools import (
    BankPool,
    CashPool,
    LedgerReference,
    LedgerReferenceType,
)
from mandi_kernel.exceptions import NotFoundError, TenantMismatchError
from mandi_kernel.selectors.book_selector import BookSelector
from mandi_kernel.services.book_recorder import BookRecorder

D = Decimal
REF = LedgerReference(LedgerReferenceType.EXPENSE)


@pytest.fixture
def books(session, seeded, deterministic_clock) -> BookRecorder:
    return BookRecorder(session, seeded.tenant_id, deterministic_clock)


@pytest.fixture
def selector(session, seeded) -> BookSelector:
    return BookSelector(session, seeded.tenant_id)


@pytest.fixture
def cash_history(books, test_actor_id):
    books.append_entry(CashPool(), date(2024, 4, 1), "Sale", D("1000"), REF, test_actor_id)
    books.append_entry(CashPool(), date(2024, 4, 2), "Hamali", D("-200"), REF, test_actor_id)
    books.append_entry(CashPool(), date(2024, 4, 4), "Sale", D("500"), REF, test_actor_id)
    books.append_entry(CashPool(), date(2024, 4, 6), "Diesel", D("-50"), REF, test_actor_id)


class TestCashbook:
    def test_full_statement(self, selector, cash_history):
        statement = selector.cashbook()
        assert statement.bank_account_id is None
        assert statement.opening_balance == 0
        assert [line.balance for line in statement.lines] == [D("1000"), D("800"), D("1300"), D("1250")]
        assert statement.closing_balance == D("1250")
        assert statement.total_inflow == D("1500")
        assert statement.total_outflow == D("250")

    def test_window_opening_balance(self, selector, cash_history):
        statement = selector.cashbook(date_from=date(2024, 4, 3), date_to=date(2024, 4, 5))
        assert statement.opening_balance == D("800")
        assert [line.description for line in statement.lines] == ["Sale"]
        assert statement.closing_balance == D("1300")

    def test_empty_window_closes_at_opening(self, selector, cash_history):
        statement = selector.cashbook(date_from=date(2024, 4, 7))
        assert statement.lines == ()
        assert statement.opening_balance == statement.closing_balance == D("1250")

    def test_other_tenants_cash_hidden(self, session, other_tenant, cash_history, test_actor_id):
        theirs = BookSelector(session, other_tenant.tenant_id).cashbook()
        assert theirs.lines == ()


class TestBankbook:
    def test_debit_and_credit_shown_as_inflow_and_outflow(self, books, selector, seeded, test_actor_id):
        pool = BankPool(seeded.bank_account_id)
        books.append_entry(pool, None, "Deposit", D("5000"), REF, test_actor_id)
        books.append_entry(pool, None, "Cheque 000123", D("-1200"), REF, test_actor_id)
        statement = selector.bankbook(seeded.bank_account_id)
        assert statement.bank_account_id == seeded.bank_account_id
        assert [(line.inflow, line.outflow) for line in statement.lines] == [
            (D("5000"), 0),
            (0, D("1200")),
        ]
        assert statement.closing_balance == D("3800")

    def test_foreign_account_rejected(self, selector, other_tenant):
        with pytest.raises(TenantMismatchError):
            selector.bankbook(other_tenant.bank_account_id)

    def test_unknown_account(self, selector):
        with pytest.raises(NotFoundError):
            selector.bankbook(uuid4())
