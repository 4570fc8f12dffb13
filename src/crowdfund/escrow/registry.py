"""Campaign registry: factory and directory of independent campaigns.

Campaigns live in an arena keyed by opaque ids. The registry only
creates and enumerates; it holds no cross-campaign invariants and never
touches a campaign's contribution or request state.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from crowdfund.errors import NotFound
from crowdfund.escrow.campaign import Campaign
from crowdfund.escrow.transfer import LedgerRail, TransferRail


class CampaignRegistry:
    """Creates campaigns and lists them in creation order.

    Usage:
        registry = CampaignRegistry(rail)
        campaign = registry.create_campaign(100, caller=manager)
        registry.get_deployed_campaigns()  # ["campaign_..."]
    """

    def __init__(self, rail: Optional[TransferRail] = None) -> None:
        self._rail: TransferRail = rail if rail is not None else LedgerRail()
        self._campaigns: dict[str, Campaign] = {}
        self._lock = threading.Lock()

    @property
    def rail(self) -> TransferRail:
        return self._rail

    def create_campaign(
        self,
        minimum_contribution: int,
        caller: str,
        campaign_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Campaign:
        """Create a campaign managed by caller.

        Args:
            minimum_contribution: Positive integer threshold per contribution.
            caller: The creating identity; becomes the manager.
            campaign_id: Optional explicit ID (auto-generated if absent).
            now: Creation time (defaults to UTC now).

        Raises:
            InvalidAmount: If minimum_contribution is not a positive integer.
            InvalidIdentity: If caller is not a valid address.
            ValueError: If an explicit campaign_id is already taken.
        """
        if campaign_id is None:
            campaign_id = f"campaign_{uuid4().hex[:12]}"
        if now is None:
            now = datetime.now(timezone.utc)
        campaign = Campaign(
            campaign_id=campaign_id,
            manager=caller,
            minimum_contribution=minimum_contribution,
            rail=self._rail,
            now=now,
        )
        with self._lock:
            if campaign_id in self._campaigns:
                raise ValueError(f"Campaign ID already exists: {campaign_id}")
            self._campaigns[campaign_id] = campaign
        return campaign

    def get_deployed_campaigns(self) -> list[str]:
        """All campaign ids in creation order."""
        with self._lock:
            return list(self._campaigns)

    def get_campaign(self, campaign_id: str) -> Campaign:
        with self._lock:
            campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            raise NotFound(f"Unknown campaign ID: {campaign_id}")
        return campaign

    def campaigns(self) -> list[Campaign]:
        with self._lock:
            return list(self._campaigns.values())

    @property
    def count(self) -> int:
        return len(self._campaigns)
