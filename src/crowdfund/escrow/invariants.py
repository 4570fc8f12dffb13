"""Invariant checks over live campaigns.

Each check returns a list of violation descriptions. Empty list means
the campaign is consistent. These never mutate anything.
"""

from __future__ import annotations

from crowdfund.escrow.campaign import Campaign
from crowdfund.escrow.registry import CampaignRegistry


def check_campaign(campaign: Campaign) -> list[str]:
    """Validate the balance, contributor and approval invariants of one campaign."""
    errors: list[str] = []
    label = campaign.campaign_id
    summary = campaign.get_summary()
    contributed, disbursed = campaign.totals()
    contributors = campaign.contributors()

    # --- Pool accounting ---
    if summary.balance < 0:
        errors.append(f"{label}: balance is negative ({summary.balance})")
    if summary.balance != contributed - disbursed:
        errors.append(
            f"{label}: balance {summary.balance} != contributed {contributed} "
            f"- disbursed {disbursed}"
        )
    if disbursed > contributed:
        errors.append(
            f"{label}: disbursed {disbursed} exceeds contributed {contributed}"
        )

    # --- Contributor set ---
    if summary.contributor_count != len(contributors):
        errors.append(
            f"{label}: contributor_count {summary.contributor_count} != "
            f"{len(contributors)} distinct contributors"
        )

    # --- Requests ---
    finalized_total = 0
    for snapshot in campaign.list_requests():
        approvals = campaign.approvals_of(snapshot.index)
        if snapshot.approval_count != len(approvals):
            errors.append(
                f"{label}: request {snapshot.index} approval_count "
                f"{snapshot.approval_count} != {len(approvals)} approvers"
            )
        strangers = approvals - contributors
        if strangers:
            errors.append(
                f"{label}: request {snapshot.index} approved by non-contributors: "
                f"{', '.join(sorted(strangers))}"
            )
        if snapshot.value <= 0:
            errors.append(f"{label}: request {snapshot.index} has non-positive value")
        if snapshot.complete:
            finalized_total += snapshot.value

    if finalized_total != disbursed:
        errors.append(
            f"{label}: finalized request values {finalized_total} != "
            f"disbursed {disbursed}"
        )
    return errors


def check_registry(registry: CampaignRegistry) -> list[str]:
    """Run check_campaign over every campaign in creation order."""
    errors: list[str] = []
    for campaign in registry.campaigns():
        errors.extend(check_campaign(campaign))
    return errors
