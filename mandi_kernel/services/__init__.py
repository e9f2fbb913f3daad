"""
Kernel services: flush-only writers scoped to one tenant.

Every service receives a Session from its caller and never commits.
"""

from mandi_kernel.services.book_recorder import BookRecorder, LedgerEntryInfo
from mandi_kernel.services.crate_tracker import (
    CrateBalancePolicy,
    CrateTracker,
    CrateTransactionInfo,
)
from mandi_kernel.services.invoice_service import InvoiceInfo, InvoiceService
from mandi_kernel.services.party_service import MasterDataService
from mandi_kernel.services.payment_allocator import (
    DistributionResult,
    ForcedPaidResult,
    PaymentAllocator,
    PaymentInfo,
)
from mandi_kernel.services.sequence_service import SequenceService
from mandi_kernel.services.stock_ledger import StockLedger, StockLevel, StockMovementInfo
from mandi_kernel.services.tenant_guard import TenantGuard, check_same_tenant

__all__ = [
    "BookRecorder",
    "CrateBalancePolicy",
    "CrateTracker",
    "CrateTransactionInfo",
    "DistributionResult",
    "ForcedPaidResult",
    "InvoiceInfo",
    "InvoiceService",
    "LedgerEntryInfo",
    "MasterDataService",
    "PaymentAllocator",
    "PaymentInfo",
    "SequenceService",
    "StockLedger",
    "StockLevel",
    "StockMovementInfo",
    "TenantGuard",
    "check_same_tenant",
]
