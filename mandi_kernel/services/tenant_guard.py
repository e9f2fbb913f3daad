"""
Module: mandi_kernel.services.tenant_guard
Responsibility: Resolve every entity an operation references inside the
    operation's tenant, and reject cross-tenant references before any write.
Architecture position: Kernel > Services.  Used by every kernel write
    service through BaseService.guard.  The before_flush listener in
    db/tenancy.py is the repository-layer backstop for the same invariant.

Invariants enforced:
    - For any entity E referencing entity F, E.tenant_id == F.tenant_id.
    - Reads used for validation (stock availability, invoice balance) go
      through the guard too, so a foreign tenant's row is never even read
      as input to a decision.

Failure modes:
    - NotFoundError when the referenced id does not exist at all.
    - TenantMismatchError when it exists but belongs to another tenant.
      Both are raised before the calling operation writes anything.

Audit relevance:
    Every rejection is logged as tenant_mismatch_rejected with the offending
    entity and both tenant ids.
"""

from collections.abc import Iterable
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from mandi_kernel.db.base import Base
from mandi_kernel.exceptions import NotFoundError, TenantMismatchError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.tenant import Tenant

logger = get_logger("services.tenant_guard")

M = TypeVar("M", bound=Base)


def _reject(entity: Any, expected_tenant: UUID) -> None:
    entity_type = type(entity).__name__
    logger.warning(
        "tenant_mismatch_rejected",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity.id),
            "expected_tenant": str(expected_tenant),
            "actual_tenant": str(entity.tenant_id),
        },
    )
    raise TenantMismatchError(
        entity_type=entity_type,
        entity_id=str(entity.id),
        expected_tenant=str(expected_tenant),
        actual_tenant=str(entity.tenant_id),
    )


def check_same_tenant(tenant_id: UUID, references: Iterable[Any]) -> None:
    """
    Succeed only if every referenced entity carries ``tenant_id``.

    ``None`` entries (unset optional references) are skipped.

    Raises:
        TenantMismatchError: on the first foreign entity.
    """
    for entity in references:
        if entity is None:
            continue
        if entity.tenant_id != tenant_id:
            _reject(entity, tenant_id)


class TenantGuard:
    """
    Tenant-scoped entity resolver.

    Contract:
        ``require`` returns the entity for an id only when it belongs to the
        guard's tenant.  With ``lock=True`` the row is read with
        ``SELECT ... FOR UPDATE`` and refreshed from the database, so the
        caller sees committed state under the lock.

    Guarantees:
        - Never returns an entity of another tenant.
        - Never writes.
    """

    def __init__(self, session: Session, tenant_id: UUID):
        self._session = session
        self.tenant_id = tenant_id

    def require(self, model_cls: type[M], entity_id: UUID, lock: bool = False) -> M:
        if entity_id is None:
            raise NotFoundError(model_cls.__name__, "None")
        if lock:
            entity = self._session.get(
                model_cls, entity_id, with_for_update=True, populate_existing=True
            )
        else:
            entity = self._session.get(model_cls, entity_id)
        if entity is None:
            raise NotFoundError(model_cls.__name__, str(entity_id))
        if entity.tenant_id != self.tenant_id:
            _reject(entity, self.tenant_id)
        return entity

    def require_optional(
        self, model_cls: type[M], entity_id: UUID | None, lock: bool = False
    ) -> M | None:
        if entity_id is None:
            return None
        return self.require(model_cls, entity_id, lock=lock)

    def require_tenant(self, lock: bool = False) -> Tenant:
        """The guard's own tenant row; inactive tenants are treated as missing."""
        if lock:
            tenant = self._session.get(
                Tenant, self.tenant_id, with_for_update=True, populate_existing=True
            )
        else:
            tenant = self._session.get(Tenant, self.tenant_id)
        if tenant is None or not tenant.is_active:
            raise NotFoundError("Tenant", str(self.tenant_id))
        return tenant
