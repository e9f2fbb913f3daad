"""
Kernel selectors: read-only, tenant-scoped queries returning frozen DTOs.
"""

from mandi_kernel.selectors.base import BaseSelector
from mandi_kernel.selectors.book_selector import BookLine, BookSelector, BookStatement
from mandi_kernel.selectors.party_ledger_selector import (
    CrateLedgerRow,
    PartyLedgerEntryType,
    PartyLedgerRow,
    PartyLedgerSelector,
    PartyStatement,
    UdhaarRow,
)
from mandi_kernel.selectors.report_selector import (
    CommissionReport,
    CommissionRow,
    ExpenseCategoryTotal,
    ExpensesSummary,
    ReportSelector,
    ShortfallReport,
    ShortfallRow,
)
from mandi_kernel.selectors.stock_selector import (
    StockBalanceRow,
    StockMovementRow,
    StockSelector,
)

__all__ = [
    "BaseSelector",
    "BookLine",
    "BookSelector",
    "BookStatement",
    "CommissionReport",
    "CommissionRow",
    "CrateLedgerRow",
    "ExpenseCategoryTotal",
    "ExpensesSummary",
    "PartyLedgerEntryType",
    "PartyLedgerRow",
    "PartyLedgerSelector",
    "PartyStatement",
    "ReportSelector",
    "ShortfallReport",
    "ShortfallRow",
    "StockBalanceRow",
    "StockMovementRow",
    "StockSelector",
    "UdhaarRow",
]
