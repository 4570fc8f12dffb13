"""Escrow subsystem: campaigns, the campaign registry and transfer rails."""

from crowdfund.escrow.campaign import Campaign
from crowdfund.escrow.registry import CampaignRegistry
from crowdfund.escrow.transfer import LedgerRail, TransferRail

__all__ = [
    "Campaign",
    "CampaignRegistry",
    "LedgerRail",
    "TransferRail",
]
