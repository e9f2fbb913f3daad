"""
Reporting Module Service (``mandi_modules.reporting.service``).

Responsibility
--------------
Read-only facade over the kernel selectors for reporting and UI
collaborators: stock position, party statements, cashbook, bankbook, the
udhaar book, crate ledgers, low-stock alerts, and the shortfall, commission
and expense reports.

Architecture position
---------------------
**Modules layer**.  Each query runs in its own short transaction that
writes nothing; results are frozen DTOs detached from the session.
Formatting (PDF, spreadsheets, share links) belongs to collaborators.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from mandi_config.bridges import low_stock_thresholds
from mandi_kernel.domain.crate_party import CrateParty, CratePartyType
from mandi_kernel.selectors.book_selector import BookSelector, BookStatement
from mandi_kernel.selectors.party_ledger_selector import (
    CrateLedgerRow,
    PartyLedgerSelector,
    PartyStatement,
    UdhaarRow,
)
from mandi_kernel.selectors.report_selector import (
    CommissionReport,
    ExpensesSummary,
    ReportSelector,
    ShortfallReport,
)
from mandi_kernel.selectors.stock_selector import (
    StockBalanceRow,
    StockMovementRow,
    StockSelector,
)
from mandi_modules._service_helpers import ModuleService


class ReportingService(ModuleService):
    """Read-only queries scoped to one tenant per call."""

    def _query(self, operation: str, tenant_id: UUID, work):
        return self.run_operation(operation, tenant_id, None, work)

    def current_stock_balance(self, tenant_id: UUID, item_id: UUID) -> StockBalanceRow:
        return self._query(
            "current_stock_balance",
            tenant_id,
            lambda session: StockSelector(session, tenant_id).current_stock_balance(item_id),
        )

    def list_stock(self, tenant_id: UUID, include_empty: bool = False) -> list[StockBalanceRow]:
        return self._query(
            "list_stock",
            tenant_id,
            lambda session: StockSelector(session, tenant_id).list_stock(include_empty),
        )

    def low_stock(self, tenant_id: UUID) -> list[StockBalanceRow]:
        thresholds = low_stock_thresholds(self.config)
        return self._query(
            "low_stock",
            tenant_id,
            lambda session: StockSelector(session, tenant_id).low_stock(thresholds),
        )

    def stock_movements(
        self,
        tenant_id: UUID,
        item_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[StockMovementRow]:
        return self._query(
            "stock_movements",
            tenant_id,
            lambda session: StockSelector(session, tenant_id).movements(item_id, date_from, date_to),
        )

    def party_ledger(
        self, tenant_id: UUID, party_type: CratePartyType | str, party_id: UUID
    ) -> PartyStatement:
        return self._query(
            "party_ledger",
            tenant_id,
            lambda session: PartyLedgerSelector(session, tenant_id).party_ledger(party_type, party_id),
        )

    def udhaar_book(self, tenant_id: UUID) -> list[UdhaarRow]:
        return self._query(
            "udhaar_book",
            tenant_id,
            lambda session: PartyLedgerSelector(session, tenant_id).udhaar_book(),
        )

    def crate_ledger(self, tenant_id: UUID, party: CrateParty) -> list[CrateLedgerRow]:
        return self._query(
            "crate_ledger",
            tenant_id,
            lambda session: PartyLedgerSelector(session, tenant_id).crate_ledger(party),
        )

    def cashbook(
        self, tenant_id: UUID, date_from: date | None = None, date_to: date | None = None
    ) -> BookStatement:
        return self._query(
            "cashbook",
            tenant_id,
            lambda session: BookSelector(session, tenant_id).cashbook(date_from, date_to),
        )

    def bankbook(
        self,
        tenant_id: UUID,
        bank_account_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> BookStatement:
        return self._query(
            "bankbook",
            tenant_id,
            lambda session: BookSelector(session, tenant_id).bankbook(
                bank_account_id, date_from, date_to
            ),
        )

    def shortfall_report(
        self, tenant_id: UUID, date_from: date | None = None, date_to: date | None = None
    ) -> ShortfallReport:
        return self._query(
            "shortfall_report",
            tenant_id,
            lambda session: ReportSelector(session, tenant_id).shortfall_report(date_from, date_to),
        )

    def commission_report(
        self, tenant_id: UUID, date_from: date | None = None, date_to: date | None = None
    ) -> CommissionReport:
        return self._query(
            "commission_report",
            tenant_id,
            lambda session: ReportSelector(session, tenant_id).commission_report(date_from, date_to),
        )

    def expenses_summary(
        self, tenant_id: UUID, date_from: date | None = None, date_to: date | None = None
    ) -> ExpensesSummary:
        return self._query(
            "expenses_summary",
            tenant_id,
            lambda session: ReportSelector(session, tenant_id).expenses_summary(date_from, date_to),
        )
