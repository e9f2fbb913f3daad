"""
Crates Module Service (``mandi_modules.crates.service``).

Standalone crate exchanges with a retailer or vendor, outside any invoice
(a retailer bringing empties back, a vendor collecting crates).  A deposit
attached to the exchange is posted to the cashbook, or to the bankbook of
``bank_account_id`` when one is given, in the same transaction.

Over-returns follow the configured ``crate_balance_policy``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from mandi_config.bridges import crate_balance_policy
from mandi_kernel.domain.crate_party import CrateDirection, CrateParty
from mandi_kernel.services.crate_tracker import CrateTracker, CrateTransactionInfo
from mandi_modules._service_helpers import ModuleService


class CrateService(ModuleService):
    """Crate exchanges, one committed transaction per call."""

    def record_crate_transaction(
        self,
        tenant_id: UUID,
        party: CrateParty,
        direction: CrateDirection | str,
        quantity: int,
        actor_id: UUID,
        deposit_amount: Decimal | None = None,
        linked_invoice_id: UUID | None = None,
        bank_account_id: UUID | None = None,
        transaction_date: date | None = None,
        notes: str | None = None,
    ) -> CrateTransactionInfo:
        def work(session):
            tracker = CrateTracker(
                session, tenant_id, self.clock, crate_balance_policy(self.config)
            )
            return tracker.record_crate_transaction(
                party,
                direction,
                quantity,
                actor_id,
                deposit_amount=deposit_amount,
                linked_invoice_id=linked_invoice_id,
                bank_account_id=bank_account_id,
                transaction_date=transaction_date,
                notes=notes,
            )

        return self.run_operation(
            "record_crate_transaction", tenant_id, actor_id, work, invoice_id=linked_invoice_id
        )
