"""
BookRecorder tests.

Running balances chain in (entry_date, entry_seq) order, back-dated entries
re-chain their successors, and the owner's stored balance tracks the last
entry.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st
from sqlalchemy import select

from mandi_kernel.domain.ledger_pools import (
    BankPool,
    CashPool,
    LedgerReference,
    LedgerReferenceType,
)
from mandi_kernel.exceptions import (
    ImmutabilityViolationError,
    InvalidAmountError,
    NotFoundError,
    TenantMismatchError,
)
from mandi_kernel.models.ledger import BankbookEntry, CashbookEntry
from mandi_kernel.models.tenant import Tenant
from mandi_kernel.services.book_recorder import BookRecorder
from mandi_kernel.services.party_service import MasterDataService

D = Decimal
REF = LedgerReference(LedgerReferenceType.OPENING_BALANCE)


def _cash_chain(session, tenant_id) -> list[CashbookEntry]:
    return list(
        session.execute(
            select(CashbookEntry)
            .where(CashbookEntry.tenant_id == tenant_id)
            .order_by(CashbookEntry.entry_date, CashbookEntry.entry_seq)
        ).scalars()
    )


def _assert_chained(entries) -> None:
    running = D("0")
    for entry in entries:
        running += entry.signed_amount
        assert entry.balance == running


class TestAppendEntry:
    def test_balances_chain(self, books, test_actor_id):
        first = books.append_entry(CashPool(), None, "Opening cash", D("1000"), REF, test_actor_id)
        second = books.append_entry(CashPool(), None, "Tea and snacks", D("-150"), REF, test_actor_id)
        third = books.append_entry(CashPool(), None, "Counter sale", D("75.50"), REF, test_actor_id)
        assert [first.balance, second.balance, third.balance] == [D("1000"), D("850"), D("925.50")]
        assert [first.entry_seq, second.entry_seq, third.entry_seq] == [1, 2, 3]
        assert books.pool_balance(CashPool()) == D("925.50")

    def test_inflow_and_outflow_columns(self, books, test_actor_id):
        inflow = books.append_entry(CashPool(), None, "in", D("10"), REF, test_actor_id)
        outflow = books.append_entry(CashPool(), None, "out", D("-4"), REF, test_actor_id)
        assert (inflow.inflow, inflow.outflow) == (D("10"), 0)
        assert (outflow.inflow, outflow.outflow) == (0, D("4"))
        assert outflow.signed_amount == D("-4")

    def test_bank_pool_uses_debit_and_credit(self, books, seeded, session, test_actor_id):
        pool = BankPool(seeded.bank_account_id)
        info = books.append_entry(pool, None, "Deposit", D("2500"), REF, test_actor_id)
        row = session.get(BankbookEntry, info.id)
        assert row.debit == D("2500")
        assert row.credit == 0
        assert info.bank_account_id == seeded.bank_account_id
        assert books.pool_balance(pool) == D("2500")

    def test_pools_are_independent(self, books, seeded, session, test_actor_id):
        second_account = MasterDataService(session, seeded.tenant_id).create_bank_account(
            "Savings", "50100099999", "SBI", test_actor_id
        )
        books.append_entry(CashPool(), None, "cash", D("100"), REF, test_actor_id)
        books.append_entry(BankPool(seeded.bank_account_id), None, "hdfc", D("200"), REF, test_actor_id)
        savings = books.append_entry(BankPool(second_account.id), None, "sbi", D("300"), REF, test_actor_id)
        assert savings.balance == D("300")
        assert savings.entry_seq == 1
        assert books.pool_balance(CashPool()) == D("100")

    def test_entry_date_defaults_to_clock(self, books, test_actor_id, deterministic_clock):
        info = books.append_entry(CashPool(), None, "x", D("1"), REF, test_actor_id)
        assert info.entry_date == deterministic_clock.today()

    def test_zero_amount_rejected(self, books, test_actor_id):
        with pytest.raises(InvalidAmountError):
            books.append_entry(CashPool(), None, "nothing", D("0.004"), REF, test_actor_id)

    def test_foreign_bank_account_rejected(self, books, other_tenant, test_actor_id):
        with pytest.raises(TenantMismatchError):
            books.append_entry(
                BankPool(other_tenant.bank_account_id), None, "x", D("1"), REF, test_actor_id
            )

    def test_inactive_tenant_has_no_cash_pool(self, books, seeded, session, test_actor_id):
        session.get(Tenant, seeded.tenant_id).is_active = False
        session.flush()
        with pytest.raises(NotFoundError):
            books.append_entry(CashPool(), None, "x", D("1"), REF, test_actor_id)


class TestBackdatedEntries:
    def test_backdated_entry_rechains_successors(self, books, seeded, session, test_actor_id):
        books.append_entry(CashPool(), date(2024, 4, 1), "a", D("100"), REF, test_actor_id)
        books.append_entry(CashPool(), date(2024, 4, 3), "c", D("-30"), REF, test_actor_id)

        middle = books.append_entry(CashPool(), date(2024, 4, 2), "b", D("50"), REF, test_actor_id)

        assert middle.balance == D("150")
        chain = _cash_chain(session, seeded.tenant_id)
        assert [e.description for e in chain] == ["a", "b", "c"]
        assert [e.balance for e in chain] == [D("100"), D("150"), D("120")]
        assert books.pool_balance(CashPool()) == D("120")

    def test_backdated_before_everything(self, books, seeded, session, test_actor_id):
        books.append_entry(CashPool(), date(2024, 4, 5), "later", D("10"), REF, test_actor_id)
        first = books.append_entry(CashPool(), date(2024, 4, 1), "earlier", D("5"), REF, test_actor_id)
        assert first.balance == D("5")
        _assert_chained(_cash_chain(session, seeded.tenant_id))

    def test_rechain_logged(self, books, test_actor_id, captured_logs):
        books.append_entry(CashPool(), date(2024, 4, 3), "c", D("1"), REF, test_actor_id)
        books.append_entry(CashPool(), date(2024, 4, 2), "b", D("1"), REF, test_actor_id)
        rechained = [r for r in captured_logs() if r["message"] == "ledger_rechained"]
        assert rechained[-1]["trigger"] == "backdated"
        assert rechained[-1]["entries"] == 1


class TestRechain:
    def test_rechain_repairs_balances(self, books, seeded, session, test_actor_id):
        books.append_entry(CashPool(), None, "a", D("100"), REF, test_actor_id)
        books.append_entry(CashPool(), None, "b", D("20"), REF, test_actor_id)
        chain = _cash_chain(session, seeded.tenant_id)
        chain[1].balance = D("999")
        session.flush()

        corrected = books.rechain(CashPool(), test_actor_id)

        assert corrected == 1
        _assert_chained(_cash_chain(session, seeded.tenant_id))
        assert books.pool_balance(CashPool()) == D("120")

    def test_rechain_of_consistent_chain(self, books, test_actor_id):
        books.append_entry(CashPool(), None, "a", D("100"), REF, test_actor_id)
        assert books.rechain(CashPool(), test_actor_id) == 0


class TestEntryImmutability:
    def test_amount_cannot_be_edited(self, books, session, test_actor_id):
        info = books.append_entry(CashPool(), None, "a", D("100"), REF, test_actor_id)
        session.get(CashbookEntry, info.id).inflow = D("1")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_description_cannot_be_edited(self, books, session, test_actor_id):
        info = books.append_entry(CashPool(), None, "a", D("100"), REF, test_actor_id)
        session.get(CashbookEntry, info.id).description = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_entry_cannot_be_deleted(self, books, session, test_actor_id):
        info = books.append_entry(CashPool(), None, "a", D("100"), REF, test_actor_id)
        session.delete(session.get(CashbookEntry, info.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


_entries = st.lists(
    st.tuples(
        st.integers(min_value=1, max_value=20),
        st.decimals(min_value=D("-500"), max_value=D("500"), places=2).filter(lambda d: d != 0),
    ),
    min_size=1,
    max_size=10,
)


class TestChainProperties:
    @settings(
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(entries=_entries)
    def test_chain_holds_for_any_date_order(self, session, seeded, test_actor_id, entries):
        account = MasterDataService(session, seeded.tenant_id).create_bank_account(
            "Scratch", f"SCR-{uuid4().hex[:12]}", "ICICI", test_actor_id
        )
        pool = BankPool(account.id)
        books = BookRecorder(session, seeded.tenant_id)
        for day, amount in entries:
            books.append_entry(pool, date(2024, 4, day), "e", amount, REF, test_actor_id)

        chain = list(
            session.execute(
                select(BankbookEntry)
                .where(BankbookEntry.bank_account_id == account.id)
                .order_by(BankbookEntry.entry_date, BankbookEntry.entry_seq)
            ).scalars()
        )
        _assert_chained(chain)
        total = sum((amount for _, amount in entries), D("0"))
        assert chain[-1].balance == total
        assert books.pool_balance(pool) == total
