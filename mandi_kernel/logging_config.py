"""Structured JSON logging for the mandi kernel."""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextvars import ContextVar
from dataclasses import fields, is_dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """Thread-safe / async-safe context holder for operation-scoped log fields."""

    _tenant_id: ContextVar[str | None] = ContextVar(
        "log_tenant_id", default=None
    )
    _actor_id: ContextVar[str | None] = ContextVar(
        "log_actor_id", default=None
    )
    _correlation_id: ContextVar[str | None] = ContextVar(
        "log_correlation_id", default=None
    )
    _operation: ContextVar[str | None] = ContextVar(
        "log_operation", default=None
    )
    _invoice_id: ContextVar[str | None] = ContextVar(
        "log_invoice_id", default=None
    )

    _FIELD_NAMES = (
        "tenant_id",
        "actor_id",
        "correlation_id",
        "operation",
        "invoice_id",
    )

    @classmethod
    def set(
        cls,
        *,
        tenant_id: str | None = None,
        actor_id: str | None = None,
        correlation_id: str | None = None,
        operation: str | None = None,
        invoice_id: str | None = None,
    ) -> None:
        """Set context fields. Only non-None values are updated."""
        if tenant_id is not None:
            cls._tenant_id.set(tenant_id)
        if actor_id is not None:
            cls._actor_id.set(actor_id)
        if correlation_id is not None:
            cls._correlation_id.set(correlation_id)
        if operation is not None:
            cls._operation.set(operation)
        if invoice_id is not None:
            cls._invoice_id.set(invoice_id)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Return all non-None context fields as a dict."""
        ctx: dict[str, str] = {}
        for name in cls._FIELD_NAMES:
            val = getattr(cls, f"_{name}").get()
            if val is not None:
                ctx[name] = val
        return ctx

    @classmethod
    def clear(cls) -> None:
        """Reset all context fields to None."""
        for name in cls._FIELD_NAMES:
            getattr(cls, f"_{name}").set(None)

    @classmethod
    def bind(cls, **kwargs: Any) -> "_LogContextManager":
        """Context manager that sets fields on entry and restores on exit."""
        return _LogContextManager(**kwargs)


class _LogContextManager:
    """Context manager for LogContext.bind()."""

    def __init__(self, **kwargs: Any):
        self._kwargs = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> type[LogContext]:
        for key, val in self._kwargs.items():
            if val is not None:
                var = getattr(LogContext, f"_{key}", None)
                if var is not None:
                    self._tokens[key] = var.set(str(val))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for key, token in self._tokens.items():
            var = getattr(LogContext, f"_{key}", None)
            if var is not None:
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

_CENTS = Decimal("0.01")


def _log_decimal(value: Decimal) -> str:
    """
    Render a money or quantity Decimal for a log line.

    Values read back from Numeric(38, 9) columns carry nine places of zero
    padding.  Padding beyond two places is dropped (700.000000000 logs as
    "700.00") while significant places are kept (a 0.125 kg weight stays
    "0.125").  Values with two places or fewer are logged as given.
    """
    if not value.is_finite() or value.as_tuple().exponent >= -2:
        return str(value)
    trimmed = value.normalize()
    if trimmed.as_tuple().exponent >= -2:
        return str(trimmed.quantize(_CENTS))
    return str(trimmed)


class _JSONEncoder(json.JSONEncoder):
    """
    Handle UUID, datetime, date and Decimal in log payloads, and log frozen
    value objects (StockQuantity, ledger pools, crate parties) as objects of
    their fields.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return _log_decimal(obj)
        if is_dataclass(obj) and not isinstance(obj, type):
            return {f.name: getattr(obj, f.name) for f in fields(obj)}
        return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """
    ``exc_*`` fields for an exception.

    Public attributes are copied.  Rejections that compare a request with
    what was there also get the gap: ``exc_shortfall`` (requested -
    available) for stock and funds, ``exc_excess`` (amount - outstanding)
    for an overpayment.
    """
    out: dict[str, Any] = {
        f"exc_{k}": v
        for k, v in vars(exc).items()
        if not k.startswith("_") and k not in ("args", "code")
    }
    requested = getattr(exc, "requested", None)
    available = getattr(exc, "available", None)
    if isinstance(requested, Decimal) and isinstance(available, Decimal):
        out["exc_shortfall"] = requested - available
    amount = getattr(exc, "amount", None)
    outstanding = getattr(exc, "outstanding", None)
    if isinstance(amount, Decimal) and isinstance(outstanding, Decimal):
        out["exc_excess"] = amount - outstanding
    return out


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Bound operation context wins over a same-named extra.
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            payload.update(_exception_fields(exc))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "mandi_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the mandi_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Configure the mandi_kernel logger hierarchy (idempotent)."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
