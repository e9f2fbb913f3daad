"""
Crate party union and crate directions.

A crate transaction belongs to exactly one party: a retailer or a vendor,
never both and never neither.  The two variants below make the illegal
combinations unrepresentable; ``crate_party_from_fields`` is the single
place a flat collaborator payload is turned into one of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union
from uuid import UUID

from mandi_kernel.exceptions import CratePartyError


class CratePartyType(str, Enum):
    RETAILER = "retailer"
    VENDOR = "vendor"


class CrateDirection(str, Enum):
    """
    Given increases the party's crate balance (crates are now with them);
    Received and Returned decrease it.
    """

    GIVEN = "Given"
    RECEIVED = "Received"
    RETURNED = "Returned"

    @property
    def sign(self) -> int:
        return 1 if self is CrateDirection.GIVEN else -1


@dataclass(frozen=True)
class RetailerCrateParty:
    retailer_id: UUID

    party_type = CratePartyType.RETAILER

    def __post_init__(self) -> None:
        if self.retailer_id is None:
            raise CratePartyError(self.party_type.value, "retailer_id is required")

    @property
    def party_id(self) -> UUID:
        return self.retailer_id


@dataclass(frozen=True)
class VendorCrateParty:
    vendor_id: UUID

    party_type = CratePartyType.VENDOR

    def __post_init__(self) -> None:
        if self.vendor_id is None:
            raise CratePartyError(self.party_type.value, "vendor_id is required")

    @property
    def party_id(self) -> UUID:
        return self.vendor_id


CrateParty = Union[RetailerCrateParty, VendorCrateParty]


def crate_party_from_fields(
    party_type: str | CratePartyType | None,
    retailer_id: UUID | None = None,
    vendor_id: UUID | None = None,
) -> CrateParty:
    """
    Build the party union from a tagged payload.

    Raises:
        CratePartyError: both ids set, neither set, unknown tag, or the
            set id does not match the tag.
    """
    if retailer_id is not None and vendor_id is not None:
        raise CratePartyError(
            str(party_type), "both retailer_id and vendor_id are set"
        )
    if retailer_id is None and vendor_id is None:
        raise CratePartyError(
            str(party_type), "neither retailer_id nor vendor_id is set"
        )
    try:
        tag = CratePartyType(party_type)
    except ValueError:
        raise CratePartyError(str(party_type), "unknown party_type") from None

    if tag == CratePartyType.RETAILER:
        if retailer_id is None:
            raise CratePartyError(tag.value, "party_type is retailer but vendor_id is set")
        return RetailerCrateParty(retailer_id=retailer_id)
    if vendor_id is None:
        raise CratePartyError(tag.value, "party_type is vendor but retailer_id is set")
    return VendorCrateParty(vendor_id=vendor_id)
