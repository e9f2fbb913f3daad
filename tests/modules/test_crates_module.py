"""
Tests for the Crates Module Service: configured over-return policy and
deposits posted with the exchange.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from mandi_kernel.domain.crate_party import (
    CrateDirection,
    RetailerCrateParty,
    VendorCrateParty,
)
from mandi_kernel.exceptions import CrateOverReturnError

D = Decimal


class TestCratePolicy:
    def test_default_policy_lets_balance_go_negative(self, crate_service, masters, committed_seed, test_actor_id):
        party = RetailerCrateParty(committed_seed.retailer_id)
        crate_service.record_crate_transaction(committed_seed.tenant_id, party, "Given", 2, test_actor_id)
        info = crate_service.record_crate_transaction(
            committed_seed.tenant_id, party, CrateDirection.RETURNED, 5, test_actor_id
        )
        assert info.party_crate_balance == -3
        assert masters.get_retailer(committed_seed.tenant_id, committed_seed.retailer_id).crate_balance == -3

    def test_strict_policy_rejects_and_rolls_back(
        self, strict_crate_service, reporting, committed_seed, test_actor_id
    ):
        party = RetailerCrateParty(committed_seed.retailer_id)
        strict_crate_service.record_crate_transaction(committed_seed.tenant_id, party, "Given", 2, test_actor_id)
        with pytest.raises(CrateOverReturnError):
            strict_crate_service.record_crate_transaction(
                committed_seed.tenant_id, party, "Returned", 5, test_actor_id,
                deposit_amount=D("100"),
            )
        rows = reporting.crate_ledger(committed_seed.tenant_id, party)
        assert [r.running_balance for r in rows] == [2]
        assert reporting.cashbook(committed_seed.tenant_id).lines == ()


class TestCrateDeposits:
    def test_deposit_taken_in_cash(self, crate_service, reporting, committed_seed, test_actor_id):
        info = crate_service.record_crate_transaction(
            committed_seed.tenant_id, RetailerCrateParty(committed_seed.retailer_id), "Given", 10,
            test_actor_id, deposit_amount=D("500"), transaction_date=date(2024, 4, 3),
        )
        cashbook = reporting.cashbook(committed_seed.tenant_id)
        assert [(line.entry_date, line.inflow) for line in cashbook.lines] == [(date(2024, 4, 3), D("500"))]
        assert cashbook.lines[0].reference_id == info.id

    def test_vendor_crates_given_then_received(self, crate_service, masters, committed_seed, test_actor_id):
        party = VendorCrateParty(committed_seed.vendor_id)
        crate_service.record_crate_transaction(committed_seed.tenant_id, party, "Given", 7, test_actor_id)
        info = crate_service.record_crate_transaction(
            committed_seed.tenant_id, party, "Received", 4, test_actor_id, notes="empties from last week",
        )
        assert info.party_crate_balance == 3
        assert masters.get_vendor(committed_seed.tenant_id, committed_seed.vendor_id).crate_balance == 3
