"""
StockLedger -- append-only inventory movement log with a derived balance cache.

Responsibility:
    Records IN/OUT stock movements per item, maintains the per-item balance
    cache in the same flush, and validates availability before any OUT
    movement is written.  The movement log is the source of truth; the
    cache is rebuildable from it at any time.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by InvoiceService (batch movements for invoice lines) and by
    module services for manual adjustments.  Reads go through TenantGuard so
    that availability checks never resolve an item of another tenant.

Invariants enforced:
    - stockBalance(item) = Σ IN - Σ OUT, floored at zero on every dimension.
      The cache row stores the raw signed net; clamping happens on read, so
      incremental maintenance and a full replay agree exactly.
    - Validate-then-write: an OUT batch is checked for every item before the
      first movement row is added.  A rejected batch writes nothing.
    - Movements are immutable (db/immutability.py).  Corrections are new
      MANUAL movements recorded with ``record_adjustment``.
    - Per-item serialization: the item's StockBalance row is locked
      (SELECT ... FOR UPDATE) before reading availability, and its
      version_id_col catches any writer that bypassed the lock.  The locked
      row also allocates ``movement_seq``.

Failure modes:
    - InsufficientStockError: requested OUT quantity exceeds the available
      balance on some dimension (first failing dimension in the order
      weight, crates, boxes).
    - ValidationError: zero quantity vector.
    - NotFoundError / TenantMismatchError: unknown or foreign item.

Audit relevance:
    stock_movement_recorded is logged for every movement with the item,
    direction, quantities and reference; insufficient_stock_rejected for
    every rejection; stock_balance_rebuilt records whether the cache had
    drifted from the log.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mandi_kernel.domain.clock import Clock
from mandi_kernel.domain.quantities import (
    MovementDirection,
    MovementReference,
    MovementReferenceType,
    StockLine,
    StockQuantity,
)
from mandi_kernel.exceptions import InsufficientStockError, ValidationError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.item import Item
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.models.stock import StockBalance, StockMovement
from mandi_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


@dataclass(frozen=True)
class StockLevel:
    """Available stock of one item; every dimension is >= 0."""

    item_id: UUID
    weight: Decimal
    crates: Decimal
    boxes: Decimal

    @classmethod
    def from_net(cls, item_id: UUID, net: StockQuantity) -> StockLevel:
        clamped = net.clamped()
        return cls(
            item_id=item_id,
            weight=clamped.weight,
            crates=clamped.crates,
            boxes=clamped.boxes,
        )

    @property
    def quantity(self) -> StockQuantity:
        return StockQuantity(weight=self.weight, crates=self.crates, boxes=self.boxes)


@dataclass(frozen=True)
class StockMovementInfo:
    id: UUID
    item_id: UUID
    movement_seq: int
    direction: MovementDirection
    quantity: StockQuantity
    rate: Decimal | None
    reference_type: MovementReferenceType
    reference_id: UUID | None
    reference_number: str | None
    movement_date: date


def movement_info(movement: StockMovement) -> StockMovementInfo:
    return StockMovementInfo(
        id=movement.id,
        item_id=movement.item_id,
        movement_seq=movement.movement_seq,
        direction=MovementDirection(movement.direction),
        quantity=StockQuantity(
            weight=movement.weight, crates=movement.crates, boxes=movement.boxes
        ),
        rate=movement.rate,
        reference_type=MovementReferenceType(movement.reference_type),
        reference_id=movement.reference_id,
        reference_number=movement.reference_number,
        movement_date=movement.movement_date,
    )


def _cached_net(balance: StockBalance | None) -> StockQuantity:
    if balance is None:
        return StockQuantity.zero()
    return StockQuantity(weight=balance.weight, crates=balance.crates, boxes=balance.boxes)


def _require_quantity(item_id: UUID, quantity: StockQuantity) -> None:
    if quantity.is_zero():
        raise ValidationError(
            f"Movement for item {item_id} has no quantity",
            field="quantity",
            expected="non-zero weight, crates or boxes",
            actual="0",
        )


class StockLedger(BaseService):
    """
    Per-tenant stock movement recorder.

    Contract:
        Every write method resolves the item inside the tenant, locks its
        balance row, validates (OUT only), appends movement rows and updates
        the cache, then flushes.  It never commits.

    Guarantees:
        - ``current_balance`` == ``replay_balance`` after every flush.
        - A rejected OUT movement or batch leaves no movement row behind.
    """

    def __init__(self, session: Session, tenant_id: UUID, clock: Clock | None = None):
        super().__init__(session, tenant_id, clock)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _balance_row(self, item_id: UUID, lock: bool) -> StockBalance | None:
        stmt = select(StockBalance).where(StockBalance.item_id == item_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def _locked_balance(self, item: Item, actor_id: UUID) -> StockBalance:
        balance = self._balance_row(item.id, lock=True)
        if balance is None:
            balance = StockBalance(
                tenant_id=self.tenant_id,
                item_id=item.id,
                weight=Decimal("0"),
                crates=Decimal("0"),
                boxes=Decimal("0"),
                movement_count=0,
                last_movement_seq=0,
                created_by_id=actor_id,
            )
            self.session.add(balance)
            self.session.flush()
        return balance

    def _check_available(
        self, item_id: UUID, available: StockQuantity, requested: StockQuantity
    ) -> None:
        short = available.shortfalls(requested)
        if not short:
            return
        dimension = short[0]
        logger.warning(
            "insufficient_stock_rejected",
            extra={
                "item_id": str(item_id),
                "dimension": dimension,
                "requested": requested.get(dimension),
                "available": available.get(dimension),
            },
        )
        raise InsufficientStockError(
            item_id=str(item_id),
            dimension=dimension,
            requested=requested.get(dimension),
            available=available.get(dimension),
        )

    def _check_counterparties(self, reference: MovementReference) -> None:
        self.guard.require_optional(Vendor, reference.vendor_id)
        self.guard.require_optional(Retailer, reference.retailer_id)

    def _append(
        self,
        balance: StockBalance,
        item_id: UUID,
        direction: MovementDirection,
        quantity: StockQuantity,
        reference: MovementReference,
        actor_id: UUID,
        movement_date: date,
        rate: Decimal | None,
        notes: str | None,
    ) -> StockMovement:
        seq = balance.last_movement_seq + 1
        movement = StockMovement(
            tenant_id=self.tenant_id,
            item_id=item_id,
            movement_seq=seq,
            direction=direction.value,
            weight=quantity.weight,
            crates=quantity.crates,
            boxes=quantity.boxes,
            rate=rate,
            reference_type=MovementReferenceType(reference.reference_type).value,
            reference_id=reference.reference_id,
            reference_number=reference.reference_number,
            vendor_id=reference.vendor_id,
            retailer_id=reference.retailer_id,
            movement_date=movement_date,
            notes=notes,
            created_by_id=actor_id,
        )
        self.session.add(movement)

        net = _cached_net(balance) + quantity.signed(direction)
        balance.weight = net.weight
        balance.crates = net.crates
        balance.boxes = net.boxes
        balance.movement_count += 1
        balance.last_movement_seq = seq
        balance.updated_by_id = actor_id

        logger.info(
            "stock_movement_recorded",
            extra={
                "item_id": str(item_id),
                "direction": direction.value,
                "movement_seq": seq,
                "weight": quantity.weight,
                "crates": quantity.crates,
                "boxes": quantity.boxes,
                "reference_type": movement.reference_type,
                "reference_id": str(reference.reference_id) if reference.reference_id else None,
            },
        )
        return movement

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_movement(
        self,
        item_id: UUID,
        direction: MovementDirection | str,
        quantity: StockQuantity,
        reference: MovementReference,
        actor_id: UUID,
        movement_date: date | None = None,
        rate: Decimal | None = None,
        notes: str | None = None,
    ) -> StockMovementInfo:
        """
        Record one movement.

        Preconditions:
            - ``quantity`` has non-negative components, at least one non-zero.

        Raises:
            ValidationError, InsufficientStockError, NotFoundError,
            TenantMismatchError -- all before anything is written.
        """
        direction = MovementDirection(direction)
        _require_quantity(item_id, quantity)
        item = self.guard.require(Item, item_id)
        self._check_counterparties(reference)

        balance = self._locked_balance(item, actor_id)
        if direction == MovementDirection.OUT:
            self._check_available(item.id, _cached_net(balance).clamped(), quantity)

        movement = self._append(
            balance,
            item.id,
            direction,
            quantity,
            reference,
            actor_id,
            movement_date or self.clock.today(),
            rate,
            notes,
        )
        self.session.flush()
        return movement_info(movement)

    def record_movements(
        self,
        lines: Iterable[StockLine],
        direction: MovementDirection | str,
        reference: MovementReference,
        actor_id: UUID,
        movement_date: date | None = None,
        notes: str | None = None,
    ) -> list[StockMovementInfo]:
        """
        Record one movement per line, all or nothing.

        Quantities are aggregated per item before validation, so two lines
        of the same item are checked against the balance together.  Balance
        rows are locked in item-id order.
        """
        direction = MovementDirection(direction)
        lines = list(lines)
        if not lines:
            return []
        totals: dict[UUID, StockQuantity] = {}
        for line in lines:
            _require_quantity(line.item_id, line.quantity)
            totals[line.item_id] = totals.get(line.item_id, StockQuantity.zero()) + line.quantity
        self._check_counterparties(reference)

        balances: dict[UUID, StockBalance] = {}
        for item_id in sorted(totals, key=str):
            item = self.guard.require(Item, item_id)
            balances[item_id] = self._locked_balance(item, actor_id)

        if direction == MovementDirection.OUT:
            for item_id in sorted(totals, key=str):
                self._check_available(
                    item_id, _cached_net(balances[item_id]).clamped(), totals[item_id]
                )

        when = movement_date or self.clock.today()
        movements = [
            self._append(
                balances[line.item_id],
                line.item_id,
                direction,
                line.quantity,
                reference,
                actor_id,
                when,
                line.rate,
                notes,
            )
            for line in lines
        ]
        self.session.flush()
        return [movement_info(m) for m in movements]

    def record_adjustment(
        self,
        item_id: UUID,
        direction: MovementDirection | str,
        quantity: StockQuantity,
        actor_id: UUID,
        notes: str | None = None,
        movement_date: date | None = None,
    ) -> StockMovementInfo:
        """Compensating MANUAL movement (stock count correction, spoilage)."""
        return self.record_movement(
            item_id,
            direction,
            quantity,
            MovementReference.manual(),
            actor_id,
            movement_date=movement_date,
            notes=notes,
        )

    def rebuild_balance(self, item_id: UUID, actor_id: UUID) -> StockLevel:
        """
        Recompute the cache row from the movement log.

        Postconditions:
            - The cache equals the fold of the log; the returned level
              equals ``replay_balance(item_id)``.
        """
        item = self.guard.require(Item, item_id)
        balance = self._locked_balance(item, actor_id)
        before = _cached_net(balance)
        net, count, last_seq = self._fold(item.id)

        balance.weight = net.weight
        balance.crates = net.crates
        balance.boxes = net.boxes
        balance.movement_count = count
        balance.last_movement_seq = last_seq
        balance.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "stock_balance_rebuilt",
            extra={
                "item_id": str(item.id),
                "movement_count": count,
                "drift_detected": before != net,
            },
        )
        return StockLevel.from_net(item.id, net)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _fold(self, item_id: UUID) -> tuple[StockQuantity, int, int]:
        movements = self.session.execute(
            select(StockMovement)
            .where(StockMovement.item_id == item_id)
            .order_by(StockMovement.movement_seq)
        ).scalars()
        net = StockQuantity.zero()
        count = 0
        last_seq = 0
        for movement in movements:
            quantity = StockQuantity(
                weight=movement.weight, crates=movement.crates, boxes=movement.boxes
            )
            net = net + quantity.signed(MovementDirection(movement.direction))
            count += 1
            last_seq = movement.movement_seq
        return net, count, last_seq

    def current_balance(self, item_id: UUID) -> StockLevel:
        """Cached balance, clamped at zero per dimension."""
        item = self.guard.require(Item, item_id)
        return StockLevel.from_net(item.id, _cached_net(self._balance_row(item.id, lock=False)))

    def replay_balance(self, item_id: UUID) -> StockLevel:
        """Balance folded from the full movement log, clamped at the end."""
        item = self.guard.require(Item, item_id)
        net, _, _ = self._fold(item.id)
        return StockLevel.from_net(item.id, net)

    def validate_availability(self, item_id: UUID, requested: StockQuantity) -> None:
        """
        Raise InsufficientStockError if ``requested`` exceeds the current
        balance on any dimension.  Read-only; takes no lock.
        """
        level = self.current_balance(item_id)
        self._check_available(level.item_id, level.quantity, requested)
