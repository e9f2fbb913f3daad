"""
Module: mandi_kernel.selectors.stock_selector
Responsibility: Read-only stock queries: per-item balance, the stock list,
    low-stock alerts and the movement history of an item.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Reported balances are the cached raw nets clamped at zero per
      dimension, the same figure StockLedger.current_balance returns.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from mandi_kernel.domain.quantities import (
    ItemUnit,
    MovementDirection,
    MovementReferenceType,
    StockQuantity,
)
from mandi_kernel.models.item import Item
from mandi_kernel.models.stock import StockBalance, StockMovement
from mandi_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StockBalanceRow:
    item_id: UUID
    item_name: str
    quality: str
    unit: ItemUnit
    weight: Decimal
    crates: Decimal
    boxes: Decimal

    @property
    def quantity(self) -> StockQuantity:
        return StockQuantity(weight=self.weight, crates=self.crates, boxes=self.boxes)

    @property
    def billed_quantity(self) -> Decimal:
        """Quantity along the item's billing unit."""
        return self.quantity.along(self.unit)


@dataclass(frozen=True)
class StockMovementRow:
    movement_id: UUID
    movement_seq: int
    movement_date: date
    direction: MovementDirection
    weight: Decimal
    crates: Decimal
    boxes: Decimal
    rate: Decimal | None
    reference_type: MovementReferenceType
    reference_number: str | None
    notes: str | None


def _row(item: Item, balance: StockBalance | None) -> StockBalanceRow:
    if balance is None:
        net = StockQuantity.zero()
    else:
        net = StockQuantity(weight=balance.weight, crates=balance.crates, boxes=balance.boxes)
    clamped = net.clamped()
    return StockBalanceRow(
        item_id=item.id,
        item_name=item.name,
        quality=item.quality,
        unit=ItemUnit(item.unit),
        weight=clamped.weight,
        crates=clamped.crates,
        boxes=clamped.boxes,
    )


class StockSelector(BaseSelector):
    """Stock levels and movement history for one tenant."""

    def current_stock_balance(self, item_id: UUID) -> StockBalanceRow:
        item = self._require(Item, item_id)
        balance = self.session.execute(
            select(StockBalance).where(StockBalance.item_id == item.id)
        ).scalar_one_or_none()
        return _row(item, balance)

    def list_stock(self, include_empty: bool = False) -> list[StockBalanceRow]:
        """Every active item's balance, ordered by name and quality."""
        rows = self.session.execute(
            select(Item, StockBalance)
            .outerjoin(StockBalance, StockBalance.item_id == Item.id)
            .where(Item.tenant_id == self.tenant_id)
            .where(Item.is_active.is_(True))
            .order_by(Item.name, Item.quality)
        ).all()
        result = [_row(item, balance) for item, balance in rows]
        if include_empty:
            return result
        return [r for r in result if not r.quantity.is_zero()]

    def low_stock(self, thresholds: dict[ItemUnit, Decimal]) -> list[StockBalanceRow]:
        """
        Items whose billed quantity is below the threshold for their unit.

        Units missing from ``thresholds`` are never reported.
        """
        return [
            row
            for row in self.list_stock(include_empty=True)
            if row.unit in thresholds and row.billed_quantity < thresholds[row.unit]
        ]

    def movements(
        self,
        item_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[StockMovementRow]:
        item = self._require(Item, item_id)
        stmt = (
            select(StockMovement)
            .where(StockMovement.item_id == item.id)
            .order_by(StockMovement.movement_seq)
        )
        if date_from is not None:
            stmt = stmt.where(StockMovement.movement_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(StockMovement.movement_date <= date_to)
        return [
            StockMovementRow(
                movement_id=m.id,
                movement_seq=m.movement_seq,
                movement_date=m.movement_date,
                direction=MovementDirection(m.direction),
                weight=m.weight,
                crates=m.crates,
                boxes=m.boxes,
                rate=m.rate,
                reference_type=MovementReferenceType(m.reference_type),
                reference_number=m.reference_number,
                notes=m.notes,
            )
            for m in self.session.execute(stmt).scalars()
        ]
