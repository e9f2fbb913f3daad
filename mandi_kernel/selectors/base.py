"""
Module: mandi_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.  Selectors
    form the query side of the kernel, giving reporting and UI collaborators
    structured read access without any mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/ or outer layers.
    Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), session.delete(),
      session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses, NOT ORM
      instances.
    - Tenant scope: every query filters on the selector's tenant_id, and an
      explicitly requested entity of another tenant is rejected with
      TenantMismatchError rather than silently returned.

Failure modes:
    - NotFoundError / TenantMismatchError for an unknown or foreign id.
"""

from abc import ABC
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from mandi_kernel.db.base import TenantScopedBase
from mandi_kernel.exceptions import NotFoundError, TenantMismatchError

M = TypeVar("M", bound=TenantScopedBase)


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session and a tenant id from the caller, perform
        read-only queries, and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session, tenant_id: UUID):
        self.session = session
        self.tenant_id = tenant_id

    def _require(self, model_cls: type[M], entity_id: UUID) -> M:
        entity = self.session.get(model_cls, entity_id)
        if entity is None:
            raise NotFoundError(model_cls.__name__, str(entity_id))
        if entity.tenant_id != self.tenant_id:
            raise TenantMismatchError(
                entity_type=model_cls.__name__,
                entity_id=str(entity_id),
                expected_tenant=str(self.tenant_id),
                actual_tenant=str(entity.tenant_id),
            )
        return entity
