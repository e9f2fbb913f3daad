"""
Mandi Kernel - ledger and stock-reconciliation core

Keeps the derived balances of a commission-merchant business consistent:
- Invoice paid/balance amounts and status
- Party running balances (vendor payable, retailer receivable, udhaar, shortfall)
- Item stock levels folded from an append-only movement log
- Crate counts lent to and returned by parties
- Cashbook/bankbook running balances
"""

__version__ = "0.1.0"
