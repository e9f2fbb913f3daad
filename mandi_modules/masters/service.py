"""
Masters Module Service (``mandi_modules.masters.service``).

Collaborator entry point for master data: tenants (mandi firms), vendors
(farmers and suppliers), retailers (buyers) and items.  Bank accounts are
opened through ``mandi_modules.banking`` because an opening balance is a
ledger entry, and expense categories through ``mandi_modules.expenses``.
"""

from __future__ import annotations

from uuid import UUID

from mandi_kernel.domain.quantities import ItemUnit
from mandi_kernel.services.party_service import (
    ItemInfo,
    MasterDataService,
    RetailerInfo,
    TenantInfo,
    VendorInfo,
)
from mandi_modules._service_helpers import ModuleService


class MastersService(ModuleService):
    """Master data, one committed transaction per call."""

    def create_tenant(self, slug: str, name: str, actor_id: UUID) -> TenantInfo:
        def work(session):
            return MasterDataService.create_tenant(session, slug, name, actor_id)

        return self.transactions.run(work, attempts=self.config.optimistic_retry_attempts)

    def create_vendor(
        self,
        tenant_id: UUID,
        name: str,
        actor_id: UUID,
        phone: str | None = None,
        address: str | None = None,
    ) -> VendorInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).create_vendor(
                name, actor_id, phone=phone, address=address
            )

        return self.run_operation("create_vendor", tenant_id, actor_id, work)

    def create_retailer(
        self,
        tenant_id: UUID,
        name: str,
        actor_id: UUID,
        phone: str | None = None,
        address: str | None = None,
    ) -> RetailerInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).create_retailer(
                name, actor_id, phone=phone, address=address
            )

        return self.run_operation("create_retailer", tenant_id, actor_id, work)

    def create_item(
        self,
        tenant_id: UUID,
        name: str,
        actor_id: UUID,
        quality: str = "",
        unit: ItemUnit | str = ItemUnit.KGS,
        vendor_id: UUID | None = None,
    ) -> ItemInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).create_item(
                name, actor_id, quality=quality, unit=unit, vendor_id=vendor_id
            )

        return self.run_operation("create_item", tenant_id, actor_id, work)

    def get_tenant(self, tenant_id: UUID) -> TenantInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).get_tenant()

        return self.run_operation("get_tenant", tenant_id, None, work)

    def get_vendor(self, tenant_id: UUID, vendor_id: UUID) -> VendorInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).get_vendor(vendor_id)

        return self.run_operation("get_vendor", tenant_id, None, work)

    def get_retailer(self, tenant_id: UUID, retailer_id: UUID) -> RetailerInfo:
        def work(session):
            return MasterDataService(session, tenant_id, self.clock).get_retailer(retailer_id)

        return self.run_operation("get_retailer", tenant_id, None, work)
