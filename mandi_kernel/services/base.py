"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel layer.  All concrete services
    receive a SQLAlchemy ``Session`` and the authenticated tenant, and use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Every service in ``mandi_kernel/services/`` that performs write
    operations extends this class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  The caller
      (a mandi_modules service via TransactionManager, or a test) owns
      commit/rollback, so a multi-step operation is atomic.
    - Tenant scope: each service instance is bound to exactly one tenant
      and resolves every referenced entity through its TenantGuard.

Failure modes:
    - If a subclass violates the flush-only contract by calling
      ``session.commit()``, the all-or-nothing guarantee of invoice and
      payment operations is broken.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session

from mandi_kernel.domain.clock import Clock, SystemClock
from mandi_kernel.services.tenant_guard import TenantGuard


class BaseService(ABC):
    """
    Abstract base class for all kernel write services.

    Contract:
        Accepts a SQLAlchemy ``Session``, the tenant id every operation is
        scoped to, and an injectable ``Clock`` for default dates.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - ``self.guard`` resolves references inside ``tenant_id`` only.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``mandi_kernel/selectors/``.
    """

    def __init__(self, session: Session, tenant_id: UUID, clock: Clock | None = None):
        self.session = session
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
        self.guard = TenantGuard(session, tenant_id)
