"""Database layer - engine, transaction manager, base classes, types, guards."""

from mandi_kernel.db.base import UUID, Base, TenantScopedBase, TrackedBase, UUIDString
from mandi_kernel.db.engine import (
    TransactionManager,
    create_engine_for_url,
    create_tables,
    drop_tables,
)
from mandi_kernel.db.types import Money, Quantity, Sequence

__all__ = [
    "Base",
    "Money",
    "Quantity",
    "Sequence",
    "TenantScopedBase",
    "TrackedBase",
    "TransactionManager",
    "UUID",
    "UUIDString",
    "create_engine_for_url",
    "create_tables",
    "drop_tables",
]
