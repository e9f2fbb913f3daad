"""
Typed Exception Hierarchy for the Mandi Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger core (invoice screens, payment forms, crate registers,
report pages) must present an actionable message when an operation is
rejected.  Parsing message strings for that is fragile, so every error:

  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA (offending field, expected vs. actual)

Example:
    try:
        allocator.apply_payment(...)
    except OverpaymentError as e:
        api_response(code=e.code, field=e.field, expected=e.expected, actual=e.actual)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MandiKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- PaymentModeError
    |   +-- CratePartyError
    |   +-- OverpaymentError
    |   +-- InvoiceAlreadySettledError
    |   +-- CrateOverReturnError
    |   +-- InsufficientFundsError
    |   +-- DuplicateNaturalKeyError
    |
    +-- TenantMismatchError
    |
    +-- InsufficientStockError
    |
    +-- NotFoundError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed payload rejected pre-mutation
                | INVALID_AMOUNT              | Amount not strictly positive / negative
                | PAYMENT_MODE_INVALID        | Mode missing its required fields
                | CRATE_PARTY_INVALID         | Crate party union both/neither/mismatch
                | OVERPAYMENT                 | Payment exceeds outstanding balance
                | INVOICE_ALREADY_SETTLED     | Force-paid on a zero-balance invoice
                | CRATE_OVER_RETURN           | Return beyond balance under reject policy
                | INSUFFICIENT_FUNDS          | Pool balance too low for a transfer
                | DUPLICATE_NATURAL_KEY       | Name/number already used in the tenant
----------------|-----------------------------|-----------------------------------------
Tenancy         | TENANT_MISMATCH             | Cross-tenant reference
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | OUT movement beyond available balance
----------------|-----------------------------|-----------------------------------------
Lookup          | NOT_FOUND                   | Referenced entity does not exist
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Concurrent modification detected
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying an append-only record

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Every rejection happens before the first write of the operation; the
   owning transaction is rolled back by the module service and the error
   propagates unchanged.

2. ConcurrencyError subclasses are retried by TransactionManager.run();
   everything else is surfaced to the caller on the first occurrence.

3. Structured attributes survive logging: StructuredFormatter copies every
   public attribute into ``exc_*`` fields.

===============================================================================
"""

from decimal import Decimal
from typing import Any


class MandiKernelError(Exception):
    """
    Base exception for all mandi kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MANDI_KERNEL_ERROR"


# Validation exceptions


class ValidationError(MandiKernelError):
    """
    A payload failed validation before any mutation.

    ``field`` names the offending input; ``expected`` and ``actual`` describe
    what was required and what was supplied, when that is meaningful.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class InvalidAmountError(ValidationError):
    """Amount is not strictly positive (or negative where zero is allowed)."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: Any, requirement: str = "> 0"):
        super().__init__(
            f"{field} must be {requirement}, got {amount}",
            field=field,
            expected=requirement,
            actual=amount,
        )


class PaymentModeError(ValidationError):
    """Payment mode is unknown, disallowed, or missing a required field."""

    code: str = "PAYMENT_MODE_INVALID"

    def __init__(self, mode: str, field: str, reason: str):
        self.mode = mode
        super().__init__(
            f"Payment mode {mode}: {reason}",
            field=field,
            expected=reason,
            actual=None,
        )


class CratePartyError(ValidationError):
    """Crate party must name exactly one of retailer/vendor, matching its tag."""

    code: str = "CRATE_PARTY_INVALID"

    def __init__(self, party_type: str | None, reason: str):
        self.party_type = party_type
        super().__init__(
            f"Invalid crate party ({party_type}): {reason}",
            field="party_type",
            expected="exactly one of retailer_id/vendor_id matching party_type",
            actual=reason,
        )


class OverpaymentError(ValidationError):
    """Payment amount exceeds the outstanding balance."""

    code: str = "OVERPAYMENT"

    def __init__(self, target: str, amount: Decimal, outstanding: Decimal):
        self.target = target
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount} exceeds outstanding {outstanding} on {target}",
            field="amount",
            expected=f"<= {outstanding}",
            actual=amount,
        )


class InvoiceAlreadySettledError(ValidationError):
    """Invoice has no outstanding balance to write off."""

    code: str = "INVOICE_ALREADY_SETTLED"

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice {invoice_number} has no outstanding balance",
            field="balance_amount",
            expected="> 0",
            actual="0",
        )


class CrateOverReturnError(ValidationError):
    """Return would push a party's crate balance below zero."""

    code: str = "CRATE_OVER_RETURN"

    def __init__(self, party_id: str, balance: int, quantity: int):
        self.party_id = party_id
        super().__init__(
            f"Cannot take back {quantity} crates from party {party_id}: "
            f"only {balance} outstanding",
            field="quantity",
            expected=f"<= {balance}",
            actual=quantity,
        )


class InsufficientFundsError(ValidationError):
    """Pool balance too low for a transfer out of it."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, pool: str, requested: Decimal, available: Decimal):
        self.pool = pool
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient balance in {pool}: requested {requested}, available {available}",
            field="amount",
            expected=f"<= {available}",
            actual=requested,
        )


class DuplicateNaturalKeyError(ValidationError):
    """Natural key already used within the tenant."""

    code: str = "DUPLICATE_NATURAL_KEY"

    def __init__(self, entity_type: str, key: str):
        self.entity_type = entity_type
        super().__init__(
            f"{entity_type} '{key}' already exists in this tenant",
            field="name",
            expected="unique within tenant",
            actual=key,
        )


# Tenancy


class TenantMismatchError(MandiKernelError):
    """A referenced entity belongs to a different tenant."""

    code: str = "TENANT_MISMATCH"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_tenant: str,
        actual_tenant: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_tenant = expected_tenant
        self.actual_tenant = actual_tenant
        super().__init__(
            f"{entity_type} {entity_id} belongs to tenant {actual_tenant}, "
            f"expected {expected_tenant}"
        )


# Stock


class InsufficientStockError(MandiKernelError):
    """Requested OUT quantity exceeds the available balance on one dimension."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        dimension: str,
        requested: Decimal,
        available: Decimal,
    ):
        self.item_id = item_id
        self.dimension = dimension
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: requested {requested} "
            f"{dimension}, available {available}"
        )


# Lookup


class NotFoundError(MandiKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


# Concurrency


class ConcurrencyError(MandiKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability


class ImmutabilityError(MandiKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Stock movements, crate transactions, payments and the financial fields
    of ledger entries never change after insert; corrections are new rows.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
