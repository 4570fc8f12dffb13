"""Core data models for crowdfund campaigns."""

from crowdfund.models.campaign import (
    REQUEST_TRANSITIONS,
    CampaignSummary,
    ContributionReceipt,
    PayoutReceipt,
    RequestSnapshot,
    RequestState,
    SpendingRequest,
)

__all__ = [
    "REQUEST_TRANSITIONS",
    "CampaignSummary",
    "ContributionReceipt",
    "PayoutReceipt",
    "RequestSnapshot",
    "RequestState",
    "SpendingRequest",
]
