"""
TenantGuard tests.

No read or write may resolve an entity of another tenant, whatever the
caller passes in.
"""

from uuid import uuid4

import pytest

from mandi_kernel.exceptions import NotFoundError, TenantMismatchError
from mandi_kernel.models.item import BankAccount, Item
from mandi_kernel.models.party import Retailer, Vendor
from mandi_kernel.models.tenant import Tenant
from mandi_kernel.services.tenant_guard import TenantGuard, check_same_tenant


class TestRequire:
    def test_own_entity_resolved(self, session, seeded):
        guard = TenantGuard(session, seeded.tenant_id)
        assert guard.require(Vendor, seeded.vendor_id).name == "Ramesh Farms"

    def test_foreign_entity_rejected(self, session, seeded, other_tenant):
        guard = TenantGuard(session, seeded.tenant_id)
        with pytest.raises(TenantMismatchError) as exc_info:
            guard.require(Retailer, other_tenant.retailer_id)
        err = exc_info.value
        assert err.entity_type == "Retailer"
        assert err.expected_tenant == str(seeded.tenant_id)
        assert err.actual_tenant == str(other_tenant.tenant_id)

    def test_unknown_id(self, session, seeded):
        with pytest.raises(NotFoundError):
            TenantGuard(session, seeded.tenant_id).require(Item, uuid4())

    def test_none_id(self, session, seeded):
        with pytest.raises(NotFoundError):
            TenantGuard(session, seeded.tenant_id).require(Item, None)

    def test_optional_none_passes(self, session, seeded):
        assert TenantGuard(session, seeded.tenant_id).require_optional(BankAccount, None) is None

    def test_lock_returns_same_entity(self, session, seeded):
        guard = TenantGuard(session, seeded.tenant_id)
        assert guard.require(Item, seeded.tomato_id, lock=True).id == seeded.tomato_id

    def test_rejection_logged(self, session, seeded, other_tenant, captured_logs):
        with pytest.raises(TenantMismatchError):
            TenantGuard(session, seeded.tenant_id).require(Item, other_tenant.apple_id)
        rejected = [r for r in captured_logs() if r["message"] == "tenant_mismatch_rejected"]
        assert rejected[-1]["entity_type"] == "Item"
        assert rejected[-1]["entity_id"] == str(other_tenant.apple_id)


class TestRequireTenant:
    def test_active_tenant(self, session, seeded):
        assert TenantGuard(session, seeded.tenant_id).require_tenant().slug == "sharma-traders"

    def test_inactive_tenant_is_missing(self, session, seeded):
        session.get(Tenant, seeded.tenant_id).is_active = False
        session.flush()
        with pytest.raises(NotFoundError):
            TenantGuard(session, seeded.tenant_id).require_tenant()

    def test_unknown_tenant(self, session):
        with pytest.raises(NotFoundError):
            TenantGuard(session, uuid4()).require_tenant()


class TestCheckSameTenant:
    def test_all_own(self, session, seeded):
        vendor = session.get(Vendor, seeded.vendor_id)
        item = session.get(Item, seeded.tomato_id)
        check_same_tenant(seeded.tenant_id, [vendor, None, item])

    def test_first_foreign_entity_rejected(self, session, seeded, other_tenant):
        own = session.get(Vendor, seeded.vendor_id)
        foreign = session.get(BankAccount, other_tenant.bank_account_id)
        with pytest.raises(TenantMismatchError) as exc_info:
            check_same_tenant(seeded.tenant_id, [own, foreign])
        assert exc_info.value.entity_type == "BankAccount"


class TestFlushBackstop:
    """The before_flush listener catches references the guard never saw."""

    def test_cross_tenant_foreign_key_rejected_on_flush(self, session, seeded, other_tenant, captured_logs):
        item = session.get(Item, seeded.tomato_id)
        item.vendor_id = other_tenant.vendor_id
        with pytest.raises(TenantMismatchError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "Vendor"
        rejected = [r for r in captured_logs() if r["message"] == "tenant_mismatch_rejected"]
        assert rejected[-1]["reference"] == "vendor_id"
        session.rollback()

    def test_same_tenant_reference_flushes(self, session, seeded):
        item = session.get(Item, seeded.mango_id)
        item.vendor_id = seeded.vendor_id
        session.flush()
        assert session.get(Item, seeded.mango_id).vendor_id == seeded.vendor_id
