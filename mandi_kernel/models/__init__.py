"""ORM models for the mandi kernel."""

from mandi_kernel.models.crate import CrateTransaction
from mandi_kernel.models.expense import Expense, ExpenseCategory
from mandi_kernel.models.invoice import (
    PurchaseInvoice,
    PurchaseInvoiceItem,
    PurchasePayment,
    SalesInvoice,
    SalesInvoiceItem,
    SalesPayment,
)
from mandi_kernel.models.item import BankAccount, Item
from mandi_kernel.models.ledger import BankbookEntry, CashbookEntry
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.models.stock import StockBalance, StockMovement
from mandi_kernel.models.tenant import Tenant

__all__ = [
    "BankAccount",
    "BankbookEntry",
    "CashbookEntry",
    "CrateTransaction",
    "Expense",
    "ExpenseCategory",
    "Item",
    "PurchaseInvoice",
    "PurchaseInvoiceItem",
    "PurchasePayment",
    "Retailer",
    "SalesInvoice",
    "SalesInvoiceItem",
    "SalesPayment",
    "StockBalance",
    "StockMovement",
    "Tenant",
    "Vendor",
]
