"""
ORM-Level Append-Only Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Every derived balance in the kernel (stock levels, invoice paid amounts, crate
counts, ledger running balances) is justified by a row in an append-only log.
If those rows could be edited, a balance could silently drift from the history
that is supposed to explain it.  Corrections are therefore new rows
(compensating stock movements, new payments), never edits.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events:

    session.flush()
         |
         v
    [before_update] --> _check_*_update() --> ImmutabilityViolationError
    [before_delete] --> _check_append_only_delete() --^
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                       | Mutable columns after insert
-----------------------------|------------------------------------------------
StockMovement                | none
CrateTransaction             | none
PurchasePayment/SalesPayment | none
Purchase/SalesInvoiceItem    | none
CashbookEntry/BankbookEntry  | balance (re-chaining by the book recorder only)

updated_at / updated_by_id are audit metadata and may always change.
None of the entities above may be deleted.

===============================================================================
USAGE
===============================================================================

    from mandi_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup (create_tables does it)

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from mandi_kernel.exceptions import ImmutabilityViolationError
from mandi_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})
_LEDGER_ENTRY_MUTABLE = _AUDIT_FIELDS | {"balance"}


def _changed_fields(target, allowed: frozenset[str]) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in allowed and attr.history.has_changes()
    ]


def _block(target, operation: str, reason: str, field: str | None = None):
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_append_only_update(mapper, connection, target):
    """Append-only rows accept no changes beyond audit metadata."""
    changed = _changed_fields(target, _AUDIT_FIELDS)
    if changed:
        _block(
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}'; record a compensating entry instead",
            field=changed[0],
        )


def _check_ledger_entry_update(mapper, connection, target):
    """Ledger entries accept only running-balance re-chaining."""
    changed = _changed_fields(target, _LEDGER_ENTRY_MUTABLE)
    if changed:
        _block(
            target,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a ledger entry",
            field=changed[0],
        )


def _check_append_only_delete(mapper, connection, target):
    _block(target, "DELETE", f"{type(target).__name__} rows cannot be deleted")


def _listener_table():
    from mandi_kernel.models.crate import CrateTransaction
    from mandi_kernel.models.invoice import (
        PurchaseInvoiceItem,
        PurchasePayment,
        SalesInvoiceItem,
        SalesPayment,
    )
    from mandi_kernel.models.ledger import BankbookEntry, CashbookEntry
    from mandi_kernel.models.stock import StockMovement

    table = []
    for model in (
        StockMovement,
        CrateTransaction,
        PurchasePayment,
        SalesPayment,
        PurchaseInvoiceItem,
        SalesInvoiceItem,
    ):
        table.append((model, "before_update", _check_append_only_update))
        table.append((model, "before_delete", _check_append_only_delete))
    for model in (CashbookEntry, BankbookEntry):
        table.append((model, "before_update", _check_ledger_entry_update))
        table.append((model, "before_delete", _check_append_only_delete))
    return table


def register_immutability_listeners():
    """Register all append-only enforcement listeners (idempotent)."""
    for target, event_name, fn in _listener_table():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners():
    """
    Remove append-only enforcement listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    for target, event_name, fn in _listener_table():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)
