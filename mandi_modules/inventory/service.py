"""
Inventory Module Service (``mandi_modules.inventory.service``).

Responsibility
--------------
Stock entries that do not come from an invoice: a manual IN or OUT
(opening stock, a consignment received without a bill), a compensating
adjustment after a physical count or spoilage, and a rebuild of an item's
balance cache from its movement log.

Architecture position
---------------------
**Modules layer**.  Owns the transaction; delegates to StockLedger.

Invariants enforced
-------------------
* Movements are never edited.  A correction is a new MANUAL movement in
  the opposite direction, so the log still folds to the corrected balance.
* An OUT movement is validated against the locked balance row before it is
  written, exactly as for a sales invoice.

Failure modes
-------------
* InsufficientStockError -- an OUT exceeds the available balance.
* ValidationError -- zero quantity vector.
* NotFoundError / TenantMismatchError -- unknown or foreign item.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from mandi_kernel.domain.quantities import (
    MovementDirection,
    MovementReference,
    StockQuantity,
)
from mandi_kernel.services.stock_ledger import StockLedger, StockLevel, StockMovementInfo
from mandi_modules._service_helpers import ModuleService


class InventoryService(ModuleService):
    """Manual stock operations, one committed transaction per call."""

    def record_stock_movement(
        self,
        tenant_id: UUID,
        item_id: UUID,
        direction: MovementDirection | str,
        quantity: StockQuantity,
        actor_id: UUID,
        reference: MovementReference | None = None,
        movement_date: date | None = None,
        rate: Decimal | None = None,
        notes: str | None = None,
    ) -> StockMovementInfo:
        """Record one movement; ``reference`` defaults to MANUAL."""

        def work(session):
            return StockLedger(session, tenant_id, self.clock).record_movement(
                item_id,
                direction,
                quantity,
                reference or MovementReference.manual(),
                actor_id,
                movement_date=movement_date,
                rate=rate,
                notes=notes,
            )

        return self.run_operation("record_stock_movement", tenant_id, actor_id, work)

    def record_adjustment(
        self,
        tenant_id: UUID,
        item_id: UUID,
        direction: MovementDirection | str,
        quantity: StockQuantity,
        actor_id: UUID,
        notes: str | None = None,
        movement_date: date | None = None,
    ) -> StockMovementInfo:
        def work(session):
            return StockLedger(session, tenant_id, self.clock).record_adjustment(
                item_id, direction, quantity, actor_id, notes=notes, movement_date=movement_date
            )

        return self.run_operation("record_adjustment", tenant_id, actor_id, work)

    def rebuild_stock_balance(self, tenant_id: UUID, item_id: UUID, actor_id: UUID) -> StockLevel:
        def work(session):
            return StockLedger(session, tenant_id, self.clock).rebuild_balance(item_id, actor_id)

        return self.run_operation("rebuild_stock_balance", tenant_id, actor_id, work)
