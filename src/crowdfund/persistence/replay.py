"""State reconstruction from the event log.

Replays every logged operation, in log order, against a fresh registry
and ledger. Campaign ids and timestamps come from the events, so the
rebuilt state is identical to the state that produced the log.

Fail-closed: if a logged operation no longer validates, the log and the
rules disagree and replay stops with a ValueError naming the event.
"""

from __future__ import annotations

from typing import Optional

from crowdfund.escrow.registry import CampaignRegistry
from crowdfund.escrow.transfer import LedgerRail
from crowdfund.persistence.event_log import EventKind, EventLog, EventRecord


def rebuild(
    event_log: EventLog,
    rail: Optional[LedgerRail] = None,
) -> tuple[CampaignRegistry, LedgerRail]:
    """Rebuild registry and ledger state from an event log.

    Returns:
        Tuple of (registry, ledger rail).

    Raises:
        ValueError: If any event cannot be re-applied.
    """
    if rail is None:
        rail = LedgerRail()
    registry = CampaignRegistry(rail)
    for event in event_log.events():
        try:
            _apply(registry, rail, event)
        except (ValueError, KeyError) as e:
            raise ValueError(
                f"Replay failed at {event.event_id} ({event.event_kind.value}): {e}"
            ) from e
    return registry, rail


def _apply(registry: CampaignRegistry, rail: LedgerRail, event: EventRecord) -> None:
    payload = event.payload
    kind = event.event_kind

    if kind == EventKind.ACCOUNT_FUNDED:
        rail.fund(payload["address"], payload["amount"])
        return

    if kind == EventKind.CAMPAIGN_CREATED:
        registry.create_campaign(
            payload["minimum_contribution"],
            caller=event.actor_id,
            campaign_id=payload["campaign_id"],
            now=event.timestamp,
        )
        return

    campaign = registry.get_campaign(payload["campaign_id"])
    if kind == EventKind.CONTRIBUTION_RECEIVED:
        campaign.contribute(payload["amount"], event.actor_id)
    elif kind == EventKind.REQUEST_CREATED:
        index = campaign.create_request(
            payload["description"],
            payload["value"],
            payload["recipient"],
            event.actor_id,
            now=event.timestamp,
        )
        if index != payload["request_index"]:
            raise ValueError(
                f"Request index mismatch: logged {payload['request_index']}, "
                f"replayed {index}"
            )
    elif kind == EventKind.REQUEST_APPROVED:
        campaign.approve_request(payload["request_index"], event.actor_id)
    elif kind == EventKind.REQUEST_FINALIZED:
        campaign.finalize_request(
            payload["request_index"], event.actor_id, now=event.timestamp,
        )
    else:
        raise ValueError(f"Unhandled event kind: {kind.value}")
