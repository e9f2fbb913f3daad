"""
Stock quantity vectors.

Responsibility:
    The three-dimensional quantity (weight in kg, crates, boxes) that every
    stock movement, invoice line and stock balance is expressed in, plus the
    enums that classify movements and items.

Architecture position:
    Kernel > Domain -- pure values, no I/O, no ORM imports.

Invariants enforced:
    - Movement quantities are non-negative on every dimension
      (``StockQuantity.of``); signed nets are built with ``StockQuantity.net``.
    - ``clamped()`` floors every dimension at zero independently; a balance is
      never reported below zero on any dimension.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from mandi_kernel.domain.amounts import ZERO, round_quantity, to_decimal
from mandi_kernel.exceptions import InvalidAmountError


class MovementDirection(str, Enum):
    """Direction of a stock movement."""

    IN = "IN"
    OUT = "OUT"


class MovementReferenceType(str, Enum):
    """What produced a stock movement."""

    PURCHASE_INVOICE = "PURCHASE_INVOICE"
    SALES_INVOICE = "SALES_INVOICE"
    MANUAL = "MANUAL"


class ItemUnit(str, Enum):
    """Billing unit of an item: which dimension a line rate applies to."""

    KGS = "Kgs"
    CRATES = "Crates"
    BOXES = "Boxes"


# Dimension names, in the order availability is checked
DIMENSIONS: tuple[str, ...] = ("weight", "crates", "boxes")


@dataclass(frozen=True)
class StockQuantity:
    """
    Weight/crates/boxes vector.

    Arithmetic is component-wise and never rounds beyond
    QUANTITY_DECIMAL_PLACES.
    """

    weight: Decimal = ZERO
    crates: Decimal = ZERO
    boxes: Decimal = ZERO

    @classmethod
    def of(cls, weight: Any = 0, crates: Any = 0, boxes: Any = 0) -> StockQuantity:
        """Build a movement quantity; every dimension must be >= 0."""
        values = {
            "weight": round_quantity(to_decimal(weight)),
            "crates": round_quantity(to_decimal(crates)),
            "boxes": round_quantity(to_decimal(boxes)),
        }
        for name, value in values.items():
            if value < 0:
                raise InvalidAmountError(name, value, ">= 0")
        return cls(**values)

    @classmethod
    def net(cls, weight: Any = 0, crates: Any = 0, boxes: Any = 0) -> StockQuantity:
        """Build a signed net quantity (may be negative)."""
        return cls(
            weight=round_quantity(to_decimal(weight)),
            crates=round_quantity(to_decimal(crates)),
            boxes=round_quantity(to_decimal(boxes)),
        )

    @classmethod
    def zero(cls) -> StockQuantity:
        return cls.net()

    def __add__(self, other: StockQuantity) -> StockQuantity:
        return StockQuantity(
            weight=self.weight + other.weight,
            crates=self.crates + other.crates,
            boxes=self.boxes + other.boxes,
        )

    def __sub__(self, other: StockQuantity) -> StockQuantity:
        return StockQuantity(
            weight=self.weight - other.weight,
            crates=self.crates - other.crates,
            boxes=self.boxes - other.boxes,
        )

    def signed(self, direction: MovementDirection) -> StockQuantity:
        """Return self for IN and the negation for OUT."""
        if direction == MovementDirection.IN:
            return self
        return StockQuantity.zero() - self

    def clamped(self) -> StockQuantity:
        """Floor every dimension at zero."""
        return StockQuantity(
            weight=max(self.weight, ZERO),
            crates=max(self.crates, ZERO),
            boxes=max(self.boxes, ZERO),
        )

    def is_zero(self) -> bool:
        return self.weight == 0 and self.crates == 0 and self.boxes == 0

    def get(self, dimension: str) -> Decimal:
        return getattr(self, dimension)

    def shortfalls(self, requested: StockQuantity) -> list[str]:
        """Dimensions on which ``requested`` exceeds this quantity, in check order."""
        return [d for d in DIMENSIONS if requested.get(d) > self.get(d)]

    def along(self, unit: ItemUnit) -> Decimal:
        """The billed dimension for an item sold by ``unit``."""
        if unit == ItemUnit.KGS:
            return self.weight
        if unit == ItemUnit.CRATES:
            return self.crates
        return self.boxes


@dataclass(frozen=True)
class MovementReference:
    """What caused a movement, and with whom."""

    reference_type: MovementReferenceType
    reference_id: UUID | None = None
    reference_number: str | None = None
    vendor_id: UUID | None = None
    retailer_id: UUID | None = None

    @classmethod
    def manual(cls) -> MovementReference:
        return cls(reference_type=MovementReferenceType.MANUAL)


@dataclass(frozen=True)
class StockLine:
    """One item's quantity within a batch of movements (an invoice's lines)."""

    item_id: UUID
    quantity: StockQuantity
    rate: Decimal | None = None
