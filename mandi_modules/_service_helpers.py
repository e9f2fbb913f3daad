"""
Shared plumbing for module services.

Every module service owns the transaction boundary for its public
operations.  ``ModuleService.run_operation`` wraps one operation: it binds
the operation's log context, runs the kernel work through
``TransactionManager.run`` (one fresh transaction per attempt, optimistic
conflicts retried) and logs the outcome.

Architecture: Modules layer.  Imports from mandi_kernel and mandi_config.
"""

from __future__ import annotations

from typing import Callable, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from mandi_config import BookkeepingConfig, get_active_config
from mandi_kernel.db.engine import TransactionManager
from mandi_kernel.domain.clock import Clock, SystemClock
from mandi_kernel.logging_config import LogContext, get_logger

T = TypeVar("T")

logger = get_logger("modules")


class ModuleService:
    """
    Base for transaction-owning facades.

    Contract:
        Subclasses expose one public method per collaborator operation and
        implement it as a ``work(session)`` closure handed to
        ``run_operation``.  Kernel services are built inside the closure so
        every retry sees a fresh Session.

    Guarantees:
        - On success the unit of work is committed before the result is
          returned.
        - On any error everything the operation wrote is rolled back and the
          error propagates unchanged.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        config: BookkeepingConfig | None = None,
        clock: Clock | None = None,
    ):
        self.transactions = transactions
        self.config = config or get_active_config()
        self.clock = clock or SystemClock()

    def run_operation(
        self,
        operation: str,
        tenant_id: UUID,
        actor_id: UUID | None,
        work: Callable[[Session], T],
        invoice_id: UUID | None = None,
    ) -> T:
        with LogContext.bind(
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=uuid4(),
            operation=operation,
            invoice_id=invoice_id,
        ):
            logger.debug("operation_started")
            try:
                result = self.transactions.run(
                    work, attempts=self.config.optimistic_retry_attempts
                )
            except Exception as exc:
                logger.info(
                    "operation_failed",
                    extra={"error_type": type(exc).__name__, "error_code": getattr(exc, "code", None)},
                )
                raise
            logger.debug("operation_committed")
            return result
