"""
Module: mandi_kernel.models.stock
Responsibility: ORM persistence for the append-only stock movement log and
    the per-item balance cache derived from it.
Architecture position: Kernel > Models.  May import from db/ and domain/.
Invariants enforced:
    - StockMovement rows are immutable once written (db/immutability.py);
      corrections are new compensating movements.
    - movement_seq is strictly increasing per item in insertion order
      (allocated from a locked counter, never max+1).
    - StockBalance stores the raw signed net of the log (Σ IN - Σ OUT) per
      dimension; reads clamp at zero.  It is never authoritative and can be
      rebuilt from the log at any time with an identical result.
Failure modes:
    - IntegrityError on a duplicate (item_id, movement_seq).
    - StaleDataError (-> OptimisticLockError) on concurrent cache updates.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mandi_kernel.db.base import TenantScopedBase, UUIDString
from mandi_kernel.db.types import Money, Quantity
from mandi_kernel.domain.quantities import MovementDirection, MovementReferenceType


class StockMovement(TenantScopedBase):
    """
    One inventory movement.

    Contract:
        Quantities are non-negative; ``direction`` gives the sign.  The
        reference names the invoice (or manual entry) that caused it.
    """

    __tablename__ = "stock_movements"
    __table_args__ = (
        UniqueConstraint("item_id", "movement_seq", name="uq_stock_movement_item_seq"),
        Index("idx_stock_movement_reference", "reference_type", "reference_id"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False, index=True
    )

    movement_seq: Mapped[int] = mapped_column(nullable=False)

    direction: Mapped[MovementDirection] = mapped_column(String(3), nullable=False)

    weight: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))
    crates: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))
    boxes: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))

    rate: Mapped[Money | None] = mapped_column(nullable=True)

    reference_type: Mapped[MovementReferenceType] = mapped_column(String(30), nullable=False)

    reference_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reference_number: Mapped[str | None] = mapped_column(String(30), nullable=True)

    vendor_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("vendors.id"), nullable=True
    )

    retailer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("retailers.id"), nullable=True
    )

    movement_date: Mapped[date] = mapped_column(nullable=False)

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<StockMovement {self.direction} item={self.item_id} seq={self.movement_seq}>"


class StockBalance(TenantScopedBase):
    """
    Cached net stock of one item.

    Contract:
        Exactly one row per item.  Locked FOR UPDATE by every movement on the
        item, which serializes concurrent movements per item.
    """

    __tablename__ = "stock_balances"
    __table_args__ = (
        UniqueConstraint("item_id", name="uq_stock_balance_item"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=False
    )

    # Raw signed nets; clamp on read
    weight: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))
    crates: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))
    boxes: Mapped[Quantity] = mapped_column(nullable=False, default=Decimal("0"))

    movement_count: Mapped[int] = mapped_column(nullable=False, default=0)

    last_movement_seq: Mapped[int] = mapped_column(nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
