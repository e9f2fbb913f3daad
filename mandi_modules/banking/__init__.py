"""Bank accounts and cash/bank transfers."""

from mandi_modules.banking.service import BankingService, BankTransferResult, DepositSource

__all__ = ["BankTransferResult", "BankingService", "DepositSource"]
