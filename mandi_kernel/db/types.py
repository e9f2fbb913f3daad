"""
Module: mandi_kernel.db.types
Responsibility: Annotated type aliases for money and quantity columns so
    that every model declares identical storage precision.
Architecture position: Kernel > DB.  May be imported by models/, services/,
    and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money and Quantity are both Numeric(38, 9); floats are never mapped.
      Rounding to business precision happens in domain/amounts.py before a
      value reaches a column.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import BigInteger, Numeric, String

# Monetary amount: 38 digits total, 9 decimal places of storage
Money = Annotated[Decimal, Numeric(38, 9)]

# Weight / crate / box quantity, same storage precision as money
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Monotonic sequence number for ordering
Sequence = Annotated[int, BigInteger]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for descriptions
LongText = Annotated[str, String(4000)]
