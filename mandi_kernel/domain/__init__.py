"""Pure domain values for the mandi kernel: no I/O, no ORM."""

from mandi_kernel.domain.amounts import round_money, round_quantity, to_decimal
from mandi_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from mandi_kernel.domain.crate_party import (
    CrateDirection,
    CrateParty,
    CratePartyType,
    RetailerCrateParty,
    VendorCrateParty,
    crate_party_from_fields,
)
from mandi_kernel.domain.invoices import (
    CrateExchangeDraft,
    InvoiceDraft,
    InvoiceKind,
    InvoiceLineDraft,
    InvoiceStatus,
    PurchaseCharges,
    PurchaseInvoiceDraft,
    SalesInvoiceDraft,
    derive_invoice_status,
)
from mandi_kernel.domain.ledger_pools import (
    BankPool,
    CashPool,
    LedgerPool,
    LedgerReference,
    LedgerReferenceType,
)
from mandi_kernel.domain.payment_methods import (
    BankPayment,
    CashPayment,
    ChequePayment,
    PaymentLinkPayment,
    PaymentMethod,
    PaymentMode,
    UpiPayment,
    payment_method_from_fields,
)
from mandi_kernel.domain.quantities import (
    ItemUnit,
    MovementDirection,
    MovementReference,
    MovementReferenceType,
    StockLine,
    StockQuantity,
)

__all__ = [
    "BankPayment",
    "BankPool",
    "CashPayment",
    "CashPool",
    "ChequePayment",
    "Clock",
    "CrateDirection",
    "CrateExchangeDraft",
    "CrateParty",
    "CratePartyType",
    "DeterministicClock",
    "InvoiceDraft",
    "InvoiceKind",
    "InvoiceLineDraft",
    "InvoiceStatus",
    "ItemUnit",
    "LedgerPool",
    "LedgerReference",
    "LedgerReferenceType",
    "MovementDirection",
    "MovementReference",
    "MovementReferenceType",
    "PaymentLinkPayment",
    "PaymentMethod",
    "PaymentMode",
    "PurchaseCharges",
    "PurchaseInvoiceDraft",
    "RetailerCrateParty",
    "SalesInvoiceDraft",
    "StockLine",
    "StockQuantity",
    "SystemClock",
    "UpiPayment",
    "VendorCrateParty",
    "crate_party_from_fields",
    "derive_invoice_status",
    "payment_method_from_fields",
    "round_money",
    "round_quantity",
    "to_decimal",
]
