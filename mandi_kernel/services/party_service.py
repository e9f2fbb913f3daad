"""
Service layer for master data: tenants, vendors, retailers, items, bank
accounts and expense categories.

Returns frozen *Info DTOs instead of ORM entities.  Natural keys are unique
only within a tenant; a duplicate is rejected with DuplicateNaturalKeyError
before the INSERT, so the caller gets a typed error rather than an
IntegrityError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from mandi_kernel.domain.quantities import ItemUnit
from mandi_kernel.exceptions import DuplicateNaturalKeyError, ValidationError
from mandi_kernel.logging_config import get_logger
from mandi_kernel.models.expense import ExpenseCategory
from mandi_kernel.models.item import BankAccount, Item
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.models.stock import StockBalance
from mandi_kernel.models.tenant import Tenant
from mandi_kernel.services.base import BaseService

logger = get_logger("services.master_data")


@dataclass(frozen=True)
class TenantInfo:
    id: UUID
    slug: str
    name: str
    cash_balance: Decimal
    is_active: bool


@dataclass(frozen=True)
class VendorInfo:
    id: UUID
    name: str
    phone: str | None
    balance: Decimal
    crate_balance: int
    is_active: bool


@dataclass(frozen=True)
class RetailerInfo:
    """
    Immutable DTO for a retailer.

    ``balance`` is what the retailer owes on invoices; ``udhaar_balance``
    the informal credit outstanding; ``shortfall_balance`` the cumulative
    write-off from forced-paid overrides.
    """

    id: UUID
    name: str
    phone: str | None
    balance: Decimal
    udhaar_balance: Decimal
    shortfall_balance: Decimal
    crate_balance: int
    is_active: bool


@dataclass(frozen=True)
class ItemInfo:
    id: UUID
    name: str
    quality: str
    unit: ItemUnit
    vendor_id: UUID | None


@dataclass(frozen=True)
class BankAccountInfo:
    id: UUID
    name: str
    account_number: str
    bank_name: str
    balance: Decimal
    is_active: bool


@dataclass(frozen=True)
class ExpenseCategoryInfo:
    id: UUID
    name: str


def tenant_info(tenant: Tenant) -> TenantInfo:
    return TenantInfo(
        id=tenant.id,
        slug=tenant.slug,
        name=tenant.name,
        cash_balance=tenant.cash_balance,
        is_active=tenant.is_active,
    )


def vendor_info(vendor: Vendor) -> VendorInfo:
    return VendorInfo(
        id=vendor.id,
        name=vendor.name,
        phone=vendor.phone,
        balance=vendor.balance,
        crate_balance=vendor.crate_balance,
        is_active=vendor.is_active,
    )


def retailer_info(retailer: Retailer) -> RetailerInfo:
    return RetailerInfo(
        id=retailer.id,
        name=retailer.name,
        phone=retailer.phone,
        balance=retailer.balance,
        udhaar_balance=retailer.udhaar_balance,
        shortfall_balance=retailer.shortfall_balance,
        crate_balance=retailer.crate_balance,
        is_active=retailer.is_active,
    )


def bank_account_info(account: BankAccount) -> BankAccountInfo:
    return BankAccountInfo(
        id=account.id,
        name=account.name,
        account_number=account.account_number,
        bank_name=account.bank_name,
        balance=account.balance,
        is_active=account.is_active,
    )


def _require_name(field: str, value: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(
            f"{field} must not be blank", field=field, expected="non-blank", actual=value
        )
    return value.strip()


class MasterDataService(BaseService):
    """
    Creates and reads the reference entities every transaction points at.

    Contract:
        Each ``create_*`` method validates, checks the natural key within the
        tenant, flushes, and returns a DTO.  ``create_tenant`` is the only
        operation not scoped to an existing tenant and is a static method.

    Guarantees:
        - New parties and accounts start with zero balances; balances only
          change through invoices, payments, crate transactions and ledger
          entries.
    """

    @staticmethod
    def create_tenant(session: Session, slug: str, name: str, actor_id: UUID) -> TenantInfo:
        slug = _require_name("slug", slug)
        existing = session.execute(
            select(Tenant.id).where(Tenant.slug == slug)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateNaturalKeyError("Tenant", slug)
        tenant = Tenant(
            slug=slug,
            name=_require_name("name", name),
            cash_balance=Decimal("0"),
            created_by_id=actor_id,
        )
        session.add(tenant)
        session.flush()
        logger.info("tenant_created", extra={"tenant_id": str(tenant.id), "slug": slug})
        return tenant_info(tenant)

    def _ensure_unique(self, model_cls, entity_type: str, key: str, **filters) -> None:
        stmt = select(model_cls.id).where(model_cls.tenant_id == self.tenant_id)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model_cls, column) == value)
        if self.session.execute(stmt).scalar_one_or_none() is not None:
            raise DuplicateNaturalKeyError(entity_type, key)

    def create_vendor(
        self,
        name: str,
        actor_id: UUID,
        phone: str | None = None,
        address: str | None = None,
    ) -> VendorInfo:
        self.guard.require_tenant()
        name = _require_name("name", name)
        self._ensure_unique(Vendor, "Vendor", name, name=name)
        vendor = Vendor(
            tenant_id=self.tenant_id,
            name=name,
            phone=phone,
            address=address,
            balance=Decimal("0"),
            crate_balance=0,
            created_by_id=actor_id,
        )
        self.session.add(vendor)
        self.session.flush()
        logger.info("vendor_created", extra={"vendor_id": str(vendor.id), "vendor_name": name})
        return vendor_info(vendor)

    def create_retailer(
        self,
        name: str,
        actor_id: UUID,
        phone: str | None = None,
        address: str | None = None,
    ) -> RetailerInfo:
        self.guard.require_tenant()
        name = _require_name("name", name)
        self._ensure_unique(Retailer, "Retailer", name, name=name)
        retailer = Retailer(
            tenant_id=self.tenant_id,
            name=name,
            phone=phone,
            address=address,
            balance=Decimal("0"),
            udhaar_balance=Decimal("0"),
            shortfall_balance=Decimal("0"),
            crate_balance=0,
            created_by_id=actor_id,
        )
        self.session.add(retailer)
        self.session.flush()
        logger.info("retailer_created", extra={"retailer_id": str(retailer.id), "retailer_name": name})
        return retailer_info(retailer)

    def create_item(
        self,
        name: str,
        actor_id: UUID,
        quality: str = "",
        unit: ItemUnit | str = ItemUnit.KGS,
        vendor_id: UUID | None = None,
    ) -> ItemInfo:
        self.guard.require_tenant()
        name = _require_name("name", name)
        try:
            unit = ItemUnit(unit)
        except ValueError:
            raise ValidationError(
                f"Unknown unit {unit!r}",
                field="unit",
                expected=[u.value for u in ItemUnit],
                actual=unit,
            ) from None
        self.guard.require_optional(Vendor, vendor_id)
        quality = (quality or "").strip()
        self._ensure_unique(Item, "Item", f"{name} ({quality})", name=name, quality=quality)
        item = Item(
            tenant_id=self.tenant_id,
            name=name,
            quality=quality,
            unit=unit.value,
            vendor_id=vendor_id,
            created_by_id=actor_id,
        )
        self.session.add(item)
        self.session.flush()
        # Balance row exists from the start so movements only ever lock it
        self.session.add(
            StockBalance(
                tenant_id=self.tenant_id,
                item_id=item.id,
                weight=Decimal("0"),
                crates=Decimal("0"),
                boxes=Decimal("0"),
                movement_count=0,
                last_movement_seq=0,
                created_by_id=actor_id,
            )
        )
        self.session.flush()
        logger.info("item_created", extra={"item_id": str(item.id), "item_name": name})
        return ItemInfo(
            id=item.id,
            name=item.name,
            quality=item.quality,
            unit=unit,
            vendor_id=item.vendor_id,
        )

    def create_bank_account(
        self,
        name: str,
        account_number: str,
        bank_name: str,
        actor_id: UUID,
        ifsc_code: str | None = None,
    ) -> BankAccountInfo:
        """
        Create an account with a zero balance.

        An opening balance is a ledger entry, not a column value; see
        mandi_modules.banking for the operation that records both.
        """
        self.guard.require_tenant()
        account_number = _require_name("account_number", account_number)
        self._ensure_unique(
            BankAccount, "BankAccount", account_number, account_number=account_number
        )
        account = BankAccount(
            tenant_id=self.tenant_id,
            name=_require_name("name", name),
            account_number=account_number,
            bank_name=_require_name("bank_name", bank_name),
            ifsc_code=ifsc_code,
            balance=Decimal("0"),
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()
        logger.info("bank_account_created", extra={"bank_account_id": str(account.id)})
        return bank_account_info(account)

    def create_expense_category(self, name: str, actor_id: UUID) -> ExpenseCategoryInfo:
        self.guard.require_tenant()
        name = _require_name("name", name)
        self._ensure_unique(ExpenseCategory, "ExpenseCategory", name, name=name)
        category = ExpenseCategory(tenant_id=self.tenant_id, name=name, created_by_id=actor_id)
        self.session.add(category)
        self.session.flush()
        logger.info("expense_category_created", extra={"category_id": str(category.id)})
        return ExpenseCategoryInfo(id=category.id, name=category.name)

    def get_tenant(self) -> TenantInfo:
        return tenant_info(self.guard.require_tenant())

    def get_vendor(self, vendor_id: UUID) -> VendorInfo:
        return vendor_info(self.guard.require(Vendor, vendor_id))

    def get_retailer(self, retailer_id: UUID) -> RetailerInfo:
        return retailer_info(self.guard.require(Retailer, retailer_id))

    def get_bank_account(self, bank_account_id: UUID) -> BankAccountInfo:
        return bank_account_info(self.guard.require(BankAccount, bank_account_id))
