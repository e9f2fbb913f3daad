"""
Mandi Modules.

Transaction-owning facades over the mandi kernel, one per area of the
business:

- masters: tenants, vendors, retailers, items
- invoicing: purchase and sales invoices, payments, forced-paid override
- crates: crate exchanges outside invoices
- banking: bank accounts, cash deposits and withdrawals
- expenses: expense categories and expenses
- reporting: read-only stock, party, book and crate queries

Each public method runs in one transaction, retried on optimistic conflicts;
the kernel services underneath only flush.
"""
