"""
Module: mandi_kernel.db.tenancy
Responsibility: Repository-layer tenant invariant.  A ``before_flush`` session
    listener that refuses to write any tenant-scoped row whose foreign keys
    point at a row owned by a different tenant.
Architecture position: Kernel > DB.  Complements services/tenant_guard.py:
    the guard rejects bad references while an operation is validating its
    inputs; this listener is the backstop that runs before every flush, so a
    cross-tenant reference can never reach the database even from code that
    forgot to call the guard.

Invariants enforced:
    - For any entity E referencing entity F, E.tenant_id == F.tenant_id.

Failure modes:
    - TenantMismatchError raised from session.flush(); the flush is aborted
      and the caller's transaction must be rolled back.
"""

from sqlalchemy import event
from sqlalchemy.orm import Mapper, Session

from mandi_kernel.db.base import Base, TenantScopedBase
from mandi_kernel.exceptions import TenantMismatchError
from mandi_kernel.logging_config import get_logger

logger = get_logger("db.tenancy")


def _tenant_scoped_references(mapper: Mapper) -> list[tuple[str, type]]:
    """(attribute key, referenced model) for every FK to a tenant-scoped table."""
    classes_by_table = {
        m.local_table.name: m.class_
        for m in Base.registry.mappers
        if issubclass(m.class_, TenantScopedBase)
    }
    references = []
    for column in mapper.columns:
        for fk in column.foreign_keys:
            target_cls = classes_by_table.get(fk.column.table.name)
            if target_cls is None:
                continue
            references.append((mapper.get_property_by_column(column).key, target_cls))
    return references


def _check_tenant_references(session: Session, flush_context, instances):
    with session.no_autoflush:
        for obj in list(session.new) + list(session.dirty):
            if not isinstance(obj, TenantScopedBase):
                continue
            mapper = obj.__mapper__
            for key, target_cls in _tenant_scoped_references(mapper):
                ref_id = getattr(obj, key)
                if ref_id is None:
                    continue
                target = session.get(target_cls, ref_id)
                if target is None or target.tenant_id == obj.tenant_id:
                    continue
                logger.warning(
                    "tenant_mismatch_rejected",
                    extra={
                        "entity_type": type(obj).__name__,
                        "reference": key,
                        "referenced_type": target_cls.__name__,
                        "referenced_id": str(ref_id),
                        "expected_tenant": str(obj.tenant_id),
                        "actual_tenant": str(target.tenant_id),
                    },
                )
                raise TenantMismatchError(
                    entity_type=target_cls.__name__,
                    entity_id=str(ref_id),
                    expected_tenant=str(obj.tenant_id),
                    actual_tenant=str(target.tenant_id),
                )


def register_tenant_listeners() -> None:
    """Install the cross-tenant reference check on every Session (idempotent)."""
    if not event.contains(Session, "before_flush", _check_tenant_references):
        event.listen(Session, "before_flush", _check_tenant_references)


def unregister_tenant_listeners() -> None:
    """Remove the check. FOR TESTING ONLY."""
    if event.contains(Session, "before_flush", _check_tenant_references):
        event.remove(Session, "before_flush", _check_tenant_references)
