"""Tests for CampaignRegistry: proves creation and enumeration bookkeeping."""

import pytest
from datetime import datetime, timezone
from web3 import Web3

from crowdfund.errors import InvalidAmount, NotFound
from crowdfund.escrow.registry import CampaignRegistry
from crowdfund.escrow.transfer import LedgerRail


MANAGER = "0x" + "a1" * 20
OTHER = "0x" + "f6" * 20


def _now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestCreateCampaign:
    def test_create_assigns_caller_as_manager(self) -> None:
        registry = CampaignRegistry()
        campaign = registry.create_campaign(100, caller=MANAGER)
        assert campaign.manager == Web3.to_checksum_address(MANAGER)
        assert campaign.minimum_contribution == 100

    def test_new_campaign_is_empty(self) -> None:
        registry = CampaignRegistry()
        summary = registry.create_campaign(100, caller=MANAGER).get_summary()
        assert summary.balance == 0
        assert summary.contributor_count == 0
        assert summary.number_of_requests == 0

    def test_generated_ids_are_opaque_and_unique(self) -> None:
        registry = CampaignRegistry()
        a = registry.create_campaign(100, caller=MANAGER)
        b = registry.create_campaign(100, caller=MANAGER)
        assert a.campaign_id.startswith("campaign_")
        assert a.campaign_id != b.campaign_id

    def test_explicit_id(self) -> None:
        registry = CampaignRegistry()
        campaign = registry.create_campaign(
            100, caller=MANAGER, campaign_id="custom", now=_now(),
        )
        assert campaign.campaign_id == "custom"
        assert campaign.created_utc == _now()

    def test_rejects_duplicate_id(self) -> None:
        registry = CampaignRegistry()
        registry.create_campaign(100, caller=MANAGER, campaign_id="c1")
        with pytest.raises(ValueError, match="Campaign ID already exists"):
            registry.create_campaign(200, caller=OTHER, campaign_id="c1")
        assert registry.count == 1

    def test_rejects_invalid_minimum(self) -> None:
        registry = CampaignRegistry()
        with pytest.raises(InvalidAmount):
            registry.create_campaign(0, caller=MANAGER)
        assert registry.get_deployed_campaigns() == []

    def test_campaigns_share_the_registry_rail(self) -> None:
        rail = LedgerRail()
        registry = CampaignRegistry(rail)
        assert registry.rail is rail


class TestEnumeration:
    def test_deployed_campaigns_in_creation_order(self) -> None:
        registry = CampaignRegistry()
        ids = [
            registry.create_campaign(100, caller=MANAGER).campaign_id
            for _ in range(4)
        ]
        assert registry.get_deployed_campaigns() == ids
        assert registry.count == 4

    def test_returned_list_is_a_copy(self) -> None:
        registry = CampaignRegistry()
        registry.create_campaign(100, caller=MANAGER)
        listing = registry.get_deployed_campaigns()
        listing.clear()
        assert registry.count == 1

    def test_get_campaign(self) -> None:
        registry = CampaignRegistry()
        campaign = registry.create_campaign(100, caller=MANAGER)
        assert registry.get_campaign(campaign.campaign_id) is campaign

    def test_unknown_campaign(self) -> None:
        registry = CampaignRegistry()
        with pytest.raises(NotFound, match="Unknown campaign ID"):
            registry.get_campaign("campaign_missing")

    def test_campaigns_are_independent(self) -> None:
        registry = CampaignRegistry()
        a = registry.create_campaign(100, caller=MANAGER)
        b = registry.create_campaign(100, caller=OTHER)
        a.contribute(500, OTHER)
        assert a.balance == 500
        assert b.balance == 0
        assert not b.is_contributor(OTHER)
